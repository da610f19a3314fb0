"""
Alpha Vantage adapter for company fundamentals
Free tier is heavily rate limited; throttling replies are surfaced as
retryable API errors
"""

from typing import Any, Dict, List, Optional
import httpx

from ..config import get_config
from ..utils import get_logger, APIError
from .base import BaseAdapter, DataProvider

logger = get_logger(__name__)

class AlphaVantageAdapter(BaseAdapter):
    """Overview, statements and earnings from Alpha Vantage"""

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__(DataProvider.ALPHA_VANTAGE)
        self.config = get_config()
        self.base_url = "https://www.alphavantage.co/query"
        self.api_key = api_key if api_key is not None else self.config.api.alpha_vantage_key
        self.client = client

    async def connect(self):
        """Initialize HTTP client"""
        if not self.client:
            self.client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.news.request_timeout_seconds))
            self.is_connected = True
            logger.info("Alpha Vantage client initialized")

    async def disconnect(self):
        """Close HTTP client"""
        if self.client:
            await self.client.aclose()
            self.client = None
            self.is_connected = False

    async def _query(self, function: str, symbol: str) -> Dict[str, Any]:
        if not self.api_key:
            raise APIError("ALPHA_VANTAGE_API_KEY is not configured", 401, is_retryable=False)
        if not self.client:
            await self.connect()

        response = await self.client.get(
            self.base_url,
            params={'function': function, 'symbol': symbol, 'apikey': self.api_key}
        )
        response.raise_for_status()
        data = response.json()

        # Alpha Vantage reports throttling and bad symbols with HTTP 200
        if 'Note' in data or 'Information' in data:
            raise APIError(
                f"Alpha Vantage rate limit reached: {data.get('Note') or data.get('Information')}",
                429
            )
        if 'Error Message' in data:
            raise APIError(f"Alpha Vantage rejected {function} for {symbol}", 404, is_retryable=False)

        return data

    async def get_overview(self, symbol: str) -> Dict[str, Any]:
        data = await self._query('OVERVIEW', symbol)
        if not data:
            raise APIError(f"No company overview for symbol: {symbol}", 404, is_retryable=False)
        return data

    async def get_income_statement(self, symbol: str) -> List[Dict[str, Any]]:
        data = await self._query('INCOME_STATEMENT', symbol)
        return data.get('annualReports', [])

    async def get_balance_sheet(self, symbol: str) -> List[Dict[str, Any]]:
        data = await self._query('BALANCE_SHEET', symbol)
        return data.get('annualReports', [])

    async def get_cash_flow(self, symbol: str) -> List[Dict[str, Any]]:
        data = await self._query('CASH_FLOW', symbol)
        return data.get('annualReports', [])

    async def get_earnings(self, symbol: str) -> List[Dict[str, Any]]:
        data = await self._query('EARNINGS', symbol)
        return data.get('quarterlyEarnings', [])
