"""
Main entry point for findash
Provides CLI commands over the data-acquisition layer
"""

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable

import click

from findash.admin import cache_delete_handler, cache_stats_handler
from findash.analysis import InsightGenerator, build_analysis_payload
from findash.config import get_config
from findash.data import (
    FundamentalsManager,
    MarketDataManager,
    NewsManager,
    StockDataManager,
    get_cache_manager
)
from findash.utils import ErrorKind, classify_error, get_logger, setup_logger

logger = get_logger(__name__)

def _echo_json(data: Any):
    click.echo(json.dumps(data, indent=2, default=str))

def _run(main: Callable[[], Awaitable[Any]]):
    """Run a coroutine, print its result as JSON, map failures to exit codes"""
    try:
        result = asyncio.run(main())
    except Exception as e:
        record = classify_error(e)
        logger.error(f"Command failed: {record.tag}: {record.message}")
        click.echo(json.dumps(record.to_response(), indent=2), err=True)
        sys.exit(2 if record.kind is ErrorKind.VALIDATION else 1)
    _echo_json(result)

@click.group()
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default=None, help='Override LOG_LEVEL')
def cli(log_level):
    """Financial dashboard data CLI"""
    if log_level:
        setup_logger(level=log_level)

@cli.command()
def status():
    """Check configuration"""
    config = get_config()

    click.echo("\n📋 Configuration Status:")
    click.echo(f"  • Log Level: {config.system.log_level}")
    click.echo(f"  • Quote TTL: {config.cache.quote_ttl_seconds}s")
    click.echo(f"  • Retries: {config.retry.max_retries} attempts, "
               f"{config.retry.initial_delay_seconds}s to {config.retry.max_delay_seconds}s")

    click.echo("\n🔑 API Keys:")
    api_keys = [
        ("Alpha Vantage", bool(config.api.alpha_vantage_key)),
        ("NewsAPI", bool(config.api.news_api_key)),
        ("OpenAI", bool(config.api.openai_api_key))
    ]
    for name, is_set in api_keys:
        state = "✅ Set" if is_set else "❌ Missing"
        click.echo(f"  • {name}: {state}")

    click.echo("\n📁 Directories:")
    for name, path in [("Cache", config.system.cache_dir), ("Logs", config.system.logs_dir)]:
        exists = "✅" if path.exists() else "❌"
        click.echo(f"  • {name}: {exists} {path}")

@cli.command()
@click.argument('symbol')
def quote(symbol):
    """Latest quote for SYMBOL"""
    async def main():
        manager = MarketDataManager()
        try:
            return (await manager.get_quote(symbol)).to_dict()
        finally:
            await manager.shutdown()

    _run(main)

@cli.command()
@click.argument('symbol')
def stock(symbol):
    """Quote, profile, statistics, dividends and news for SYMBOL"""
    async def main():
        manager = StockDataManager()
        try:
            return (await manager.get_stock_data(symbol)).to_dict()
        finally:
            await manager.shutdown()

    _run(main)

@cli.command()
@click.argument('symbol')
def news(symbol):
    """Deduplicated news with sentiment for SYMBOL"""
    async def main():
        manager = NewsManager()
        try:
            return [item.to_dict() for item in await manager.get_company_news(symbol)]
        finally:
            await manager.shutdown()

    _run(main)

@cli.command()
@click.argument('symbols', nargs=-1, required=True)
def sentiment(symbols):
    """News sentiment score per symbol, from -1 to 1"""
    async def main():
        manager = NewsManager()
        try:
            return await manager.get_market_sentiment(list(symbols))
        finally:
            await manager.shutdown()

    _run(main)

@cli.command()
@click.argument('symbol')
@click.option('--statement', type=click.Choice(['overview', 'income', 'balance', 'cashflow', 'earnings']),
              default='overview', help='Which report to fetch')
def fundamentals(symbol, statement):
    """Alpha Vantage fundamentals for SYMBOL"""
    async def main():
        manager = FundamentalsManager()
        calls = {
            'overview': manager.get_overview,
            'income': manager.get_income_statement,
            'balance': manager.get_balance_sheet,
            'cashflow': manager.get_cash_flow,
            'earnings': manager.get_earnings
        }
        try:
            return await calls[statement](symbol)
        finally:
            await manager.shutdown()

    _run(main)

@cli.command()
def indices():
    """S&P 500, Dow Jones, Nasdaq and Russell 2000"""
    async def main():
        manager = MarketDataManager()
        try:
            return [index.to_dict() for index in await manager.get_market_indices()]
        finally:
            await manager.shutdown()

    _run(main)

@cli.command()
@click.argument('symbol')
def insights(symbol):
    """AI analysis of SYMBOL"""
    async def main():
        manager = StockDataManager()
        try:
            stock_data = await manager.get_stock_data(symbol)
        finally:
            await manager.shutdown()

        analysis = await InsightGenerator().generate_insights(symbol, build_analysis_payload(stock_data))
        return analysis.to_dict()

    _run(main)

@cli.group()
def cache():
    """Inspect and manage the data cache"""
    pass

def _run_handler(handler: Callable[[], Awaitable[Any]]):
    status_code, body = asyncio.run(handler())
    _echo_json(body)
    if status_code != 200:
        sys.exit(2 if status_code == 400 else 1)

@cache.command('stats')
def cache_stats():
    """Hit/miss counters and record counts"""
    _run_handler(lambda: cache_stats_handler(get_cache_manager()))

@cache.command('invalidate')
@click.argument('key')
def cache_invalidate(key):
    """Remove KEY (e.g. quote_aapl) from both tiers"""
    _run_handler(lambda: cache_delete_handler(get_cache_manager(), key))

@cache.command('cleanup')
def cache_cleanup():
    """Sweep expired entries from memory"""
    removed = get_cache_manager().cleanup()
    click.echo(f"🧹 Removed {removed} expired entries")

@cache.command('clear')
@click.confirmation_option(prompt='Remove every cached record?')
def cache_clear():
    """Empty both cache tiers"""
    asyncio.run(get_cache_manager().clear())
    click.echo("✅ Cache cleared")

if __name__ == "__main__":
    cli()
