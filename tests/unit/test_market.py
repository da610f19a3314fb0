"""Unit tests for quotes and market indices."""

import pytest

from findash.data.market import MarketDataManager, MARKET_INDICES
from findash.utils import APIError, NetworkError, ValidationError

from conftest import FakeQuoteAdapter


class IndexAdapter(FakeQuoteAdapter):
    """Quote provider that fails for selected symbols."""

    def __init__(self, failing=()):
        super().__init__()
        self.failing = set(failing)
        self.symbols = []

    async def get_quote(self, symbol):
        self.symbols.append(symbol)
        if symbol in self.failing:
            raise APIError(f"No quote for {symbol}", 404, is_retryable=False)
        return await super().get_quote(symbol)


class TestQuotes:

    @pytest.mark.asyncio
    async def test_quote_is_cached(self, cache_manager, quote_adapter, fast_retry):
        manager = MarketDataManager(cache=cache_manager, provider=quote_adapter, retry_config=fast_retry)

        first = await manager.get_quote("AAPL")
        second = await manager.get_quote("AAPL")

        assert first == second
        assert first.price == 150.0
        assert quote_adapter.calls['quote'] == 1
        assert "quote_aapl" in cache_manager.memory

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, cache_manager, quote_adapter, fast_retry):
        quote_adapter.failures['quote'] = [NetworkError("reset"), NetworkError("reset")]
        manager = MarketDataManager(cache=cache_manager, provider=quote_adapter, retry_config=fast_retry)

        quote = await manager.get_quote("AAPL")

        assert quote.symbol == "AAPL"
        assert quote_adapter.calls['quote'] == 3

    @pytest.mark.asyncio
    async def test_invalid_symbol(self, cache_manager, quote_adapter):
        manager = MarketDataManager(cache=cache_manager, provider=quote_adapter)

        with pytest.raises(ValidationError):
            await manager.get_quote("^GSPC")
        assert quote_adapter.calls['quote'] == 0


class TestMarketIndices:

    @pytest.mark.asyncio
    async def test_all_indices(self, cache_manager, fast_retry):
        adapter = IndexAdapter()
        manager = MarketDataManager(cache=cache_manager, provider=adapter, retry_config=fast_retry)

        indices = await manager.get_market_indices()

        assert [index.name for index in indices] == [name for name, _ in MARKET_INDICES]
        assert indices[0].symbol == "^GSPC"
        assert indices[0].value == 150.0
        assert indices[0].change == 1.01
        assert "market_indices" in cache_manager.memory

    @pytest.mark.asyncio
    async def test_partial_failure_returns_remaining(self, cache_manager, fast_retry):
        manager = MarketDataManager(
            cache=cache_manager,
            provider=IndexAdapter(failing={"^RUT"}),
            retry_config=fast_retry
        )

        indices = await manager.get_market_indices()

        assert [index.symbol for index in indices] == ["^GSPC", "^DJI", "^IXIC"]

    @pytest.mark.asyncio
    async def test_total_failure_raises_and_is_not_cached(self, cache_manager, fast_retry):
        adapter = IndexAdapter(failing={symbol for _, symbol in MARKET_INDICES})
        manager = MarketDataManager(cache=cache_manager, provider=adapter, retry_config=fast_retry)

        with pytest.raises(APIError):
            await manager.get_market_indices()

        assert "market_indices" not in cache_manager.memory
        adapter.failing.clear()
        assert len(await manager.get_market_indices()) == 4
