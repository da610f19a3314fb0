"""
Fundamentals manager
Cached, retried Alpha Vantage overview, statements and earnings
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..utils import get_logger, validate_symbol, with_retry, RetryConfig
from .alpha_vantage import AlphaVantageAdapter
from .cache import get_cache_key
from .cache_manager import CacheManager, get_cache_manager

logger = get_logger(__name__)

class FundamentalsManager:
    """Company fundamentals through the shared cache (fundamentals TTL)"""

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        provider: Optional[AlphaVantageAdapter] = None,
        retry_config: Optional[RetryConfig] = None
    ):
        self.cache = cache or get_cache_manager()
        self.provider = provider or AlphaVantageAdapter()
        self.retry_config = retry_config

    async def shutdown(self):
        try:
            await self.provider.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting {self.provider.provider.value}: {e}")

    async def _get(self, prefix: str, symbol: str, call: Callable[[str], Awaitable[Any]]) -> Any:
        validate_symbol(symbol)
        return await self.cache.get_cached_data(
            get_cache_key(prefix, symbol),
            self.cache.ttl.fundamentals,
            lambda: with_retry(
                lambda: call(symbol),
                self.retry_config,
                description=f"{prefix} for {symbol}"
            )
        )

    async def get_overview(self, symbol: str) -> Dict[str, Any]:
        return await self._get('overview', symbol, self.provider.get_overview)

    async def get_income_statement(self, symbol: str) -> List[Dict[str, Any]]:
        return await self._get('income', symbol, self.provider.get_income_statement)

    async def get_balance_sheet(self, symbol: str) -> List[Dict[str, Any]]:
        return await self._get('balance', symbol, self.provider.get_balance_sheet)

    async def get_cash_flow(self, symbol: str) -> List[Dict[str, Any]]:
        return await self._get('cashflow', symbol, self.provider.get_cash_flow)

    async def get_earnings(self, symbol: str) -> List[Dict[str, Any]]:
        return await self._get('earnings', symbol, self.provider.get_earnings)
