"""
Market data manager
Cached, retried quotes and the headline market indices from Yahoo Finance
"""

import asyncio
from typing import List, Optional

from ..utils import get_logger, log_error, validate_symbol, with_retry, RetryConfig
from .base import Quote, MarketIndex, QuoteAdapter
from .cache import get_cache_key
from .cache_manager import CacheManager, get_cache_manager
from .yahoo import YahooFinanceAdapter

logger = get_logger(__name__)

# (display name, Yahoo symbol)
MARKET_INDICES = (
    ('S&P 500', '^GSPC'),
    ('Dow Jones', '^DJI'),
    ('Nasdaq', '^IXIC'),
    ('Russell 2000', '^RUT')
)

class MarketDataManager:
    """
    Manages quote acquisition through the shared cache
    Every upstream call is retried with the configured backoff policy
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        provider: Optional[QuoteAdapter] = None,
        retry_config: Optional[RetryConfig] = None
    ):
        self.cache = cache or get_cache_manager()
        self.provider = provider or YahooFinanceAdapter()
        self.retry_config = retry_config

    async def initialize(self):
        """Initialize the quote provider"""
        logger.info("Initializing market data manager...")
        try:
            await self.provider.connect()
            logger.info(f"Connected {self.provider.provider.value} adapter")
        except Exception as e:
            logger.error(f"Failed to connect {self.provider.provider.value}: {e}")

    async def shutdown(self):
        """Shutdown the quote provider"""
        logger.info("Shutting down market data manager...")
        try:
            await self.provider.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting {self.provider.provider.value}: {e}")

    async def fetch_quote(self, symbol: str) -> Quote:
        """Uncached, retried quote"""
        return await with_retry(
            lambda: self.provider.get_quote(symbol),
            self.retry_config,
            description=f"quote for {symbol}"
        )

    async def get_quote(self, symbol: str) -> Quote:
        """Latest quote for symbol, served from cache within the quote TTL"""
        validate_symbol(symbol)

        async def fetch():
            quote = await self.fetch_quote(symbol)
            return quote.to_dict()

        data = await self.cache.get_cached_data(
            get_cache_key('quote', symbol),
            self.cache.ttl.quote,
            fetch
        )
        return Quote.from_dict(data)

    async def _fetch_index(self, name: str, symbol: str) -> MarketIndex:
        quote = await self.fetch_quote(symbol)
        return MarketIndex(
            name=name,
            symbol=symbol,
            value=quote.price,
            change=quote.change_percent
        )

    async def _fetch_indices(self) -> List[dict]:
        results = await asyncio.gather(
            *(self._fetch_index(name, symbol) for name, symbol in MARKET_INDICES),
            return_exceptions=True
        )

        indices = []
        errors = []
        for (name, symbol), result in zip(MARKET_INDICES, results):
            if isinstance(result, Exception):
                log_error(result, context={'symbol': symbol, 'service': 'get_market_indices'})
                errors.append(result)
            else:
                indices.append(result.to_dict())

        # Nothing to show; do not cache an empty board
        if not indices and errors:
            raise errors[0]
        return indices

    async def get_market_indices(self) -> List[MarketIndex]:
        """S&P 500, Dow Jones, Nasdaq and Russell 2000, fetched concurrently"""
        data = await self.cache.get_cached_data(
            get_cache_key('market', 'indices'),
            self.cache.ttl.market,
            self._fetch_indices
        )
        return [MarketIndex.from_dict(item) for item in data]
