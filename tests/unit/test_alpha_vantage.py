"""Unit tests for the Alpha Vantage adapter and the fundamentals manager."""

import httpx
import pytest

from findash.data.alpha_vantage import AlphaVantageAdapter
from findash.data.fundamentals import FundamentalsManager
from findash.utils import APIError, ValidationError


def av_client(payloads, requests=None):
    """AsyncClient answering each Alpha Vantage function with a canned body."""

    def handler(request):
        if requests is not None:
            requests.append(request)
        function = request.url.params['function']
        return httpx.Response(200, json=payloads.get(function, {}))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestAlphaVantageAdapter:
    """Test response interpretation."""

    @pytest.mark.asyncio
    async def test_overview(self):
        requests = []
        adapter = AlphaVantageAdapter(
            api_key="demo",
            client=av_client({'OVERVIEW': {'Symbol': 'IBM', 'Sector': 'TECHNOLOGY'}}, requests)
        )

        overview = await adapter.get_overview("IBM")

        assert overview['Sector'] == 'TECHNOLOGY'
        params = requests[0].url.params
        assert params['function'] == 'OVERVIEW'
        assert params['symbol'] == 'IBM'
        assert params['apikey'] == 'demo'

    @pytest.mark.asyncio
    async def test_statements_return_annual_reports(self):
        reports = [{'fiscalDateEnding': '2023-12-31', 'totalRevenue': '61860000000'}]
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({
            'INCOME_STATEMENT': {'symbol': 'IBM', 'annualReports': reports},
            'BALANCE_SHEET': {'symbol': 'IBM', 'annualReports': reports},
            'CASH_FLOW': {'symbol': 'IBM'}
        }))

        assert await adapter.get_income_statement("IBM") == reports
        assert await adapter.get_balance_sheet("IBM") == reports
        assert await adapter.get_cash_flow("IBM") == []

    @pytest.mark.asyncio
    async def test_earnings_return_quarterly(self):
        quarters = [{'fiscalDateEnding': '2024-03-31', 'reportedEPS': '1.68'}]
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({
            'EARNINGS': {'annualEarnings': [], 'quarterlyEarnings': quarters}
        }))
        assert await adapter.get_earnings("IBM") == quarters

    @pytest.mark.asyncio
    async def test_throttle_note_is_retryable(self):
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({
            'OVERVIEW': {'Note': 'Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute.'}
        }))

        with pytest.raises(APIError) as exc_info:
            await adapter.get_overview("IBM")

        assert exc_info.value.status_code == 429
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_error_message_is_permanent(self):
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({
            'EARNINGS': {'Error Message': 'Invalid API call.'}
        }))

        with pytest.raises(APIError) as exc_info:
            await adapter.get_earnings("NOPE")

        assert exc_info.value.status_code == 404
        assert not exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_empty_overview_is_not_found(self):
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({}))

        with pytest.raises(APIError) as exc_info:
            await adapter.get_overview("NOPE")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_key(self):
        requests = []
        adapter = AlphaVantageAdapter(api_key="", client=av_client({}, requests))

        with pytest.raises(APIError) as exc_info:
            await adapter.get_overview("IBM")

        assert exc_info.value.status_code == 401
        assert not exc_info.value.is_retryable
        assert requests == []

    @pytest.mark.asyncio
    async def test_http_error_propagates(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        adapter = AlphaVantageAdapter(api_key="demo", client=client)

        with pytest.raises(httpx.HTTPStatusError):
            await adapter.get_overview("IBM")


class TestFundamentalsManager:
    """Test caching and retry around the adapter."""

    @pytest.mark.asyncio
    async def test_overview_is_cached(self, cache_manager, fast_retry):
        requests = []
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({'OVERVIEW': {'Symbol': 'IBM'}}, requests))
        manager = FundamentalsManager(cache=cache_manager, provider=adapter, retry_config=fast_retry)

        first = await manager.get_overview("IBM")
        second = await manager.get_overview("IBM")

        assert first == second == {'Symbol': 'IBM'}
        assert len(requests) == 1
        assert "overview_ibm" in cache_manager.memory

    @pytest.mark.asyncio
    async def test_reports_use_separate_keys(self, cache_manager, fast_retry):
        adapter = AlphaVantageAdapter(api_key="demo", client=av_client({
            'INCOME_STATEMENT': {'annualReports': [{'totalRevenue': '1'}]},
            'BALANCE_SHEET': {'annualReports': [{'totalAssets': '2'}]},
            'CASH_FLOW': {'annualReports': [{'operatingCashflow': '3'}]},
            'EARNINGS': {'quarterlyEarnings': [{'reportedEPS': '4'}]}
        }))
        manager = FundamentalsManager(cache=cache_manager, provider=adapter, retry_config=fast_retry)

        await manager.get_income_statement("IBM")
        await manager.get_balance_sheet("IBM")
        await manager.get_cash_flow("IBM")
        await manager.get_earnings("IBM")

        for key in ("income_ibm", "balance_ibm", "cashflow_ibm", "earnings_ibm"):
            assert key in cache_manager.memory

    @pytest.mark.asyncio
    async def test_throttling_is_retried(self, cache_manager, fast_retry):
        replies = [
            {'Note': 'API call frequency exceeded'},
            {'Symbol': 'IBM'}
        ]
        client = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=replies.pop(0))
        ))
        manager = FundamentalsManager(
            cache=cache_manager,
            provider=AlphaVantageAdapter(api_key="demo", client=client),
            retry_config=fast_retry
        )

        assert await manager.get_overview("IBM") == {'Symbol': 'IBM'}
        assert replies == []

    @pytest.mark.asyncio
    async def test_invalid_symbol(self, cache_manager):
        requests = []
        manager = FundamentalsManager(
            cache=cache_manager,
            provider=AlphaVantageAdapter(api_key="demo", client=av_client({}, requests))
        )

        with pytest.raises(ValidationError):
            await manager.get_overview("ibm!")
        assert requests == []
