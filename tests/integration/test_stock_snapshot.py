"""Full stock snapshot fan-out with fake quote and news upstreams."""

import pytest

from findash.data.base import DataProvider
from findash.data.market import MarketDataManager
from findash.data.news_manager import NewsManager
from findash.data.stock import StockDataManager
from findash.utils import APIError, NetworkError, ValidationError

from conftest import FakeNewsAdapter, NoContentExtractor, make_news_item

pytestmark = pytest.mark.integration


class NeutralClassifier:

    def classify(self, text):
        return "neutral"


@pytest.fixture
def google():
    return FakeNewsAdapter([
        make_news_item("Apple hits record high", day=4),
        make_news_item("Apple earnings preview", day=2),
    ])


@pytest.fixture
def newsapi():
    return FakeNewsAdapter([
        make_news_item("apple hits record high", day=5),
    ], provider=DataProvider.NEWSAPI)


@pytest.fixture
def stock_manager(cache_manager, quote_adapter, google, newsapi, fast_retry):
    return StockDataManager(
        cache=cache_manager,
        market=MarketDataManager(cache=cache_manager, provider=quote_adapter, retry_config=fast_retry),
        news=NewsManager(
            cache=cache_manager,
            primary=google,
            secondary=newsapi,
            extractor=NoContentExtractor(),
            classifier=NeutralClassifier(),
            retry_config=fast_retry
        ),
        retry_config=fast_retry
    )


@pytest.mark.asyncio
async def test_snapshot(stock_manager, cache_manager, quote_adapter):
    data = await stock_manager.get_stock_data("AAPL")

    assert data.quote.price == 150.0
    assert data.profile.long_name == "AAPL Inc."
    assert data.statistics.beta == 1.2
    assert data.dividends.rate == 0.96
    assert [item.title for item in data.news] == ["Apple hits record high", "Apple earnings preview"]

    for key in ("quote_aapl", "profile_aapl", "statistics_aapl", "dividends_aapl", "news_aapl"):
        assert key in cache_manager.memory

    await stock_manager.get_stock_data("AAPL")
    assert quote_adapter.calls == {'quote': 1, 'profile': 1, 'statistics': 1, 'dividends': 1}


@pytest.mark.asyncio
async def test_snapshot_serializes(stock_manager):
    body = (await stock_manager.get_stock_data("AAPL")).to_dict()

    assert set(body) == {'quote', 'profile', 'statistics', 'dividends', 'news'}
    assert body['news'][0]['sentiment'] == "neutral"


@pytest.mark.asyncio
async def test_permanent_branch_failure_propagates(stock_manager, quote_adapter):
    error = APIError("No profile for AAPL", 404, is_retryable=False)
    quote_adapter.failures['profile'] = [error]

    with pytest.raises(APIError) as exc_info:
        await stock_manager.get_stock_data("AAPL")

    assert exc_info.value is error
    assert quote_adapter.calls['profile'] == 1


@pytest.mark.asyncio
async def test_unclassified_failure_is_wrapped(stock_manager, quote_adapter):
    quote_adapter.failures['statistics'] = [KeyError("trailingPE")] * 3

    with pytest.raises(APIError) as exc_info:
        await stock_manager.get_stock_data("AAPL")

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to fetch stock data for AAPL"
    assert not exc_info.value.is_retryable


@pytest.mark.asyncio
async def test_news_source_failure_degrades(stock_manager, google):
    google.error = NetworkError("feed unreachable")

    data = await stock_manager.get_stock_data("AAPL")

    assert [item.title for item in data.news] == ["apple hits record high"]
    assert google.calls == 3


@pytest.mark.asyncio
async def test_invalid_symbol_makes_no_calls(stock_manager, quote_adapter, google):
    with pytest.raises(ValidationError):
        await stock_manager.get_stock_data("AAPL$")

    assert all(count == 0 for count in quote_adapter.calls.values())
    assert google.calls == 0
