"""Shared fixtures: isolated configuration, a controllable clock and fake upstreams."""

from datetime import datetime, timezone
from typing import List

import pytest

from findash.config import reset_config
from findash.data.base import (
    QuoteAdapter,
    NewsAdapter,
    DataProvider,
    Quote,
    CompanyProfile,
    KeyStatistics,
    DividendInfo,
    NewsItem
)
from findash.data.cache import FileStorage, PersistentCache
from findash.data.cache_manager import CacheManager
from findash.data.memory_cache import InMemoryCache
from findash.utils import RetryConfig


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeQuoteAdapter(QuoteAdapter):
    """Quote provider that counts calls and can fail on demand."""

    def __init__(self, price: float = 150.0):
        super().__init__(DataProvider.YAHOO)
        self.price = price
        self.calls = {'quote': 0, 'profile': 0, 'statistics': 0, 'dividends': 0}
        self.failures = {}

    async def connect(self):
        self.is_connected = True

    async def disconnect(self):
        self.is_connected = False

    def _call(self, name: str, symbol: str):
        self.calls[name] += 1
        pending = self.failures.get(name)
        if pending:
            raise pending.pop(0)

    async def get_quote(self, symbol: str) -> Quote:
        self._call('quote', symbol)
        return Quote(symbol=symbol, price=self.price, change=1.5, change_percent=1.01, volume=1000)

    async def get_profile(self, symbol: str) -> CompanyProfile:
        self._call('profile', symbol)
        return CompanyProfile(symbol=symbol, long_name=f"{symbol} Inc.", sector="Technology")

    async def get_key_statistics(self, symbol: str) -> KeyStatistics:
        self._call('statistics', symbol)
        return KeyStatistics(symbol=symbol, beta=1.2, trailing_pe=28.5, profit_margins=0.25)

    async def get_dividends(self, symbol: str) -> DividendInfo:
        self._call('dividends', symbol)
        return DividendInfo(symbol=symbol, dividend_yield=0.005, rate=0.96)


class FakeNewsAdapter(NewsAdapter):
    """News source returning canned items, or raising a canned error."""

    def __init__(self, items: List[NewsItem] = None, error: Exception = None,
                 provider: DataProvider = DataProvider.GOOGLE_NEWS):
        super().__init__(provider)
        self.items = items or []
        self.error = error
        self.calls = 0

    async def connect(self):
        self.is_connected = True

    async def disconnect(self):
        self.is_connected = False

    async def search_news(self, symbol: str) -> List[NewsItem]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.items)


class NoContentExtractor:
    """Content extractor that never finds article text."""

    def __init__(self):
        self.urls = []

    async def extract(self, url):
        self.urls.append(url)
        return None

    async def aclose(self):
        pass


def make_news_item(title: str, day: int, **kwargs) -> NewsItem:
    defaults = dict(
        link=f"https://example.com/{day}",
        publisher="Reuters",
        published_at=datetime(2024, 3, day, 12, 0, tzinfo=timezone.utc),
        summary=""
    )
    defaults.update(kwargs)
    return NewsItem(title=title, **defaults)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Fresh configuration per test, cache files under tmp_path."""
    monkeypatch.setenv("FINDASH_CACHE_DIR", str(tmp_path / "default-cache"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_retry():
    """Three attempts with no backoff wait."""
    return RetryConfig(max_retries=3, initial_delay=0, max_delay=0)


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def cache_manager(cache_dir, clock):
    return CacheManager(
        memory=InMemoryCache(clock),
        persistent=PersistentCache(FileStorage(cache_dir)),
        clock=clock
    )


@pytest.fixture
def quote_adapter():
    return FakeQuoteAdapter()
