"""
Stock data manager
Builds the full stock page snapshot by fanning out to every data source
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from ..utils import (
    get_logger,
    log_async_performance,
    log_error,
    validate_symbol,
    with_retry,
    APIError,
    FinDashError,
    RetryConfig
)
from .base import StockData, CompanyProfile, KeyStatistics, DividendInfo
from .cache import get_cache_key
from .cache_manager import CacheManager, get_cache_manager
from .market import MarketDataManager
from .news_manager import NewsManager

logger = get_logger(__name__)

class StockDataManager:
    """
    Quote, profile, statistics, dividends and news for one symbol

    Each branch is cached and retried on its own. News degrades per source
    inside NewsManager; any other branch failing fails the whole snapshot.
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        market: Optional[MarketDataManager] = None,
        news: Optional[NewsManager] = None,
        retry_config: Optional[RetryConfig] = None
    ):
        self.cache = cache or get_cache_manager()
        self.retry_config = retry_config
        self.market = market or MarketDataManager(cache=self.cache, retry_config=retry_config)
        self.news = news or NewsManager(cache=self.cache, retry_config=retry_config)

    async def initialize(self):
        await self.market.initialize()
        await self.news.initialize()

    async def shutdown(self):
        await self.market.shutdown()
        await self.news.shutdown()

    async def _get_record(
        self,
        prefix: str,
        symbol: str,
        ttl: float,
        call: Callable[[str], Awaitable[Any]],
        record_cls: Type
    ) -> Any:
        async def fetch() -> Dict[str, Any]:
            record = await with_retry(
                lambda: call(symbol),
                self.retry_config,
                description=f"{prefix} for {symbol}"
            )
            return record.to_dict()

        data = await self.cache.get_cached_data(get_cache_key(prefix, symbol), ttl, fetch)
        return record_cls.from_dict(data)

    async def get_profile(self, symbol: str) -> CompanyProfile:
        validate_symbol(symbol)
        return await self._get_record(
            'profile', symbol, self.cache.ttl.profile,
            self.market.provider.get_profile, CompanyProfile
        )

    async def get_key_statistics(self, symbol: str) -> KeyStatistics:
        validate_symbol(symbol)
        return await self._get_record(
            'statistics', symbol, self.cache.ttl.statistics,
            self.market.provider.get_key_statistics, KeyStatistics
        )

    async def get_dividends(self, symbol: str) -> DividendInfo:
        validate_symbol(symbol)
        return await self._get_record(
            'dividends', symbol, self.cache.ttl.statistics,
            self.market.provider.get_dividends, DividendInfo
        )

    @log_async_performance()
    async def get_stock_data(self, symbol: str) -> StockData:
        """
        Full snapshot for symbol

        Raises:
            ValidationError: symbol is malformed (no upstream call is made)
            FinDashError: any classified failure, unchanged
            APIError: status 500 wrapping anything unclassified
        """
        try:
            validate_symbol(symbol)

            results = await asyncio.gather(
                self.market.get_quote(symbol),
                self.get_profile(symbol),
                self.get_key_statistics(symbol),
                self.get_dividends(symbol),
                self.news.get_company_news(symbol),
                return_exceptions=True
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            quote, profile, statistics, dividends, news = results
            return StockData(
                quote=quote,
                profile=profile,
                statistics=statistics,
                dividends=dividends,
                news=news
            )

        except Exception as e:
            log_error(e, context={'symbol': symbol, 'service': 'get_stock_data'})

            if isinstance(e, FinDashError):
                raise
            raise APIError(
                f"Failed to fetch stock data for {symbol}",
                500,
                is_retryable='network' in str(e).lower()
            ) from e
