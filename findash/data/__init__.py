"""
Data acquisition layer
Handles quotes, fundamentals, news and two-tier caching
"""

from .base import (
    DataProvider,
    SourceReliability,
    Quote,
    CompanyProfile,
    KeyStatistics,
    DividendInfo,
    MarketIndex,
    ArticleMetric,
    NewsItem,
    StockData,
    BaseAdapter,
    QuoteAdapter,
    NewsAdapter
)

from .memory_cache import InMemoryCache, CacheStats
from .cache import get_cache_key, CacheEntry, StorageBackend, FileStorage, PersistentCache
from .cache_manager import CacheManager, CacheTTL, get_cache_manager
from .market import MarketDataManager
from .fundamentals import FundamentalsManager
from .news_manager import NewsManager, merge_news
from .stock import StockDataManager

__all__ = [
    # Records
    'DataProvider',
    'SourceReliability',
    'Quote',
    'CompanyProfile',
    'KeyStatistics',
    'DividendInfo',
    'MarketIndex',
    'ArticleMetric',
    'NewsItem',
    'StockData',

    # Base classes
    'BaseAdapter',
    'QuoteAdapter',
    'NewsAdapter',

    # Caching
    'InMemoryCache',
    'CacheStats',
    'get_cache_key',
    'CacheEntry',
    'StorageBackend',
    'FileStorage',
    'PersistentCache',
    'CacheManager',
    'CacheTTL',
    'get_cache_manager',

    # Main interfaces
    'MarketDataManager',
    'FundamentalsManager',
    'NewsManager',
    'merge_news',
    'StockDataManager'
]
