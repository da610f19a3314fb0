"""
Yahoo Finance adapter for quotes, profiles and key statistics
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import yfinance as yf

from ..utils import get_logger, APIError, FinDashError, UnknownError
from .base import (
    QuoteAdapter,
    DataProvider,
    Quote,
    CompanyProfile,
    KeyStatistics,
    DividendInfo
)

logger = get_logger(__name__)

def _num(info: Dict[str, Any], *keys: str) -> Optional[float]:
    """First numeric value among keys"""
    for key in keys:
        value = info.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None

def _int(info: Dict[str, Any], *keys: str) -> Optional[int]:
    value = _num(info, *keys)
    return int(value) if value is not None else None

class YahooFinanceAdapter(QuoteAdapter):
    """
    Yahoo Finance adapter using the yfinance library
    yfinance is synchronous, so calls run on a small thread pool
    """

    def __init__(self, max_workers: int = 5):
        super().__init__(DataProvider.YAHOO)
        self.max_workers = max_workers
        self.executor: Optional[ThreadPoolExecutor] = None

    async def connect(self):
        """No connection needed for yfinance, only the thread pool"""
        if self.executor is None:
            self.executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="yfinance")
        self.is_connected = True

    async def disconnect(self):
        """Cleanup thread pool"""
        if self.executor is not None:
            self.executor.shutdown(wait=False)
            self.executor = None
        self.is_connected = False

    @staticmethod
    def _load_info(symbol: str) -> Dict[str, Any]:
        return yf.Ticker(symbol).get_info() or {}

    async def _fetch_info(self, symbol: str) -> Dict[str, Any]:
        """Ticker info dict; raises classified errors"""
        if self.executor is None:
            await self.connect()

        loop = asyncio.get_running_loop()
        try:
            info = await loop.run_in_executor(self.executor, self._load_info, symbol)
        except FinDashError:
            raise
        except Exception as e:
            raise UnknownError(f"Yahoo Finance request failed for {symbol}: {e}") from e

        if _num(info, 'regularMarketPrice', 'currentPrice') is None:
            # Unknown tickers come back as a near-empty dict
            raise APIError(f"No data available for symbol: {symbol}", 404, is_retryable=False)
        return info

    async def get_quote(self, symbol: str) -> Quote:
        info = await self._fetch_info(symbol)
        price = _num(info, 'regularMarketPrice', 'currentPrice')
        previous_close = _num(info, 'regularMarketPreviousClose', 'previousClose')

        change = _num(info, 'regularMarketChange')
        if change is None and previous_close:
            change = price - previous_close
        change_percent = _num(info, 'regularMarketChangePercent')
        if change_percent is None and previous_close:
            change_percent = (change or 0.0) / previous_close * 100

        return Quote(
            symbol=info.get('symbol', symbol),
            price=price,
            change=round(change or 0.0, 4),
            change_percent=round(change_percent or 0.0, 4),
            volume=_int(info, 'regularMarketVolume', 'volume'),
            previous_close=previous_close,
            open=_num(info, 'regularMarketOpen', 'open'),
            day_high=_num(info, 'regularMarketDayHigh', 'dayHigh'),
            day_low=_num(info, 'regularMarketDayLow', 'dayLow'),
            fifty_two_week_high=_num(info, 'fiftyTwoWeekHigh'),
            fifty_two_week_low=_num(info, 'fiftyTwoWeekLow'),
            average_volume=_int(info, 'averageVolume'),
            market_cap=_num(info, 'marketCap'),
            name=info.get('longName') or info.get('shortName'),
            provider=self.provider.value
        )

    async def get_profile(self, symbol: str) -> CompanyProfile:
        info = await self._fetch_info(symbol)
        return CompanyProfile(
            symbol=info.get('symbol', symbol),
            long_name=info.get('longName') or info.get('shortName') or symbol,
            long_business_summary=info.get('longBusinessSummary', ''),
            sector=info.get('sector', ''),
            industry=info.get('industry', ''),
            website=info.get('website', ''),
            full_time_employees=_int(info, 'fullTimeEmployees'),
            city=info.get('city', ''),
            country=info.get('country', '')
        )

    async def get_key_statistics(self, symbol: str) -> KeyStatistics:
        info = await self._fetch_info(symbol)
        return KeyStatistics(
            symbol=info.get('symbol', symbol),
            beta=_num(info, 'beta'),
            price_to_book=_num(info, 'priceToBook'),
            trailing_pe=_num(info, 'trailingPE'),
            forward_pe=_num(info, 'forwardPE'),
            trailing_eps=_num(info, 'trailingEps', 'epsTrailingTwelveMonths'),
            enterprise_value=_num(info, 'enterpriseValue'),
            earnings_growth=_num(info, 'earningsGrowth'),
            revenue_growth=_num(info, 'revenueGrowth'),
            profit_margins=_num(info, 'profitMargins'),
            gross_margins=_num(info, 'grossMargins'),
            operating_margins=_num(info, 'operatingMargins'),
            return_on_equity=_num(info, 'returnOnEquity'),
            return_on_assets=_num(info, 'returnOnAssets'),
            total_cash=_num(info, 'totalCash'),
            total_debt=_num(info, 'totalDebt'),
            operating_cashflow=_num(info, 'operatingCashflow'),
            free_cashflow=_num(info, 'freeCashflow')
        )

    async def get_dividends(self, symbol: str) -> DividendInfo:
        info = await self._fetch_info(symbol)
        ex_date = _num(info, 'exDividendDate')
        return DividendInfo(
            symbol=info.get('symbol', symbol),
            dividend_yield=_num(info, 'dividendYield'),
            rate=_num(info, 'dividendRate'),
            ex_date=datetime.fromtimestamp(ex_date, tz=timezone.utc).isoformat() if ex_date else None
        )
