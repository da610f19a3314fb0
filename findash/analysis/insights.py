"""
LLM-generated stock analysis with content-fingerprint memoization

A symbol is only sent to the model again when the data it would be
analysing has changed since the last call.
"""

import hashlib
import json
import re
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from ..config import get_config
from ..data.base import StockData
from ..utils import (
    get_logger,
    log_async_performance,
    log_error,
    retry,
    validate_symbol,
    APIError,
    NetworkError
)
from ..utils.errors import RETRYABLE_STATUS_CODES

logger = get_logger(__name__)

SECTION_NAMES = (
    'MARKET_SUMMARY',
    'TRADING_ACTIVITY',
    'FINANCIAL_HEALTH',
    'TECHNICAL_SIGNALS',
    'RISK_FACTORS',
    'GROWTH_DRIVERS'
)

SENTIMENT_SECTION = 'SENTIMENT_SCORE'

NO_INSIGHTS = 'No insights available.'

SYSTEM_PROMPT = """You are an expert financial analyst. Provide a detailed analysis in exactly these sections:

MARKET_SUMMARY
Overview of the current trading day: price movement and how it compares to recent performance.

TRADING_ACTIVITY
Volume and price range versus averages, and what they indicate about market sentiment.

FINANCIAL_HEALTH
Margins, revenue growth, ROE and cash position, and what they say about financial strength.

TECHNICAL_SIGNALS
Price trends, support and resistance levels, short and medium-term outlook.

RISK_FACTORS
Company-specific and market-wide risks.

GROWTH_DRIVERS
Catalysts for future growth.

Format each section exactly like this:
SECTION_TITLE: [your analysis for this section]

Keep the language accessible to retail investors and cite specific numbers where relevant.

End with:
SENTIMENT_SCORE: [0-100]

0-20 Strong Sell, 21-40 Sell, 41-60 Hold, 61-80 Buy, 81-100 Strong Buy"""

_SECTION_RE = re.compile(
    r'^[ \t]*\**[ \t]*(' + '|'.join(SECTION_NAMES + (SENTIMENT_SECTION,)) + r')\**[ \t]*:?',
    re.MULTILINE
)

@dataclass
class StructuredAnalysis:
    """Model output split into named sections"""
    raw_text: str
    sections: Dict[str, str] = field(default_factory=dict)
    sentiment_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sections': dict(self.sections),
            'sentiment_score': self.sentiment_score,
            'raw_text': self.raw_text
        }

@dataclass(frozen=True)
class AnalysisCacheEntry:
    content_hash: str
    result: StructuredAnalysis

def parse_analysis(text: str) -> StructuredAnalysis:
    """Split model output on section headers; unknown text is ignored"""
    matches = list(_SECTION_RE.finditer(text))
    sections = {}
    sentiment_score = None

    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        body = text[match.end():end].strip()
        name = match.group(1)

        if name == SENTIMENT_SECTION:
            number = re.search(r'\d+', body)
            if number:
                sentiment_score = max(0, min(100, int(number.group())))
        elif body:
            sections[name] = body

    return StructuredAnalysis(raw_text=text, sections=sections, sentiment_score=sentiment_score)

def fingerprint(payload: Dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form (sorted keys)"""
    canonical = json.dumps(payload, sort_keys=True, default=str, separators=(',', ':'))
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()

def build_analysis_payload(stock_data: StockData) -> Dict[str, Any]:
    """Fields of a stock snapshot that are sent to the model"""
    quote = stock_data.quote
    profile = stock_data.profile
    stats = stock_data.statistics

    return {
        'quote': {
            'symbol': quote.symbol,
            'price': quote.price,
            'change': quote.change,
            'changePercent': quote.change_percent,
            'volume': quote.volume,
            'previousClose': quote.previous_close,
            'open': quote.open,
            'dayHigh': quote.day_high,
            'dayLow': quote.day_low,
            'fiftyTwoWeekHigh': quote.fifty_two_week_high,
            'fiftyTwoWeekLow': quote.fifty_two_week_low,
            'averageVolume': quote.average_volume,
            'marketCap': quote.market_cap
        },
        'profile': {
            'longName': profile.long_name,
            'longBusinessSummary': profile.long_business_summary,
            'sector': profile.sector,
            'industry': profile.industry,
            'fullTimeEmployees': profile.full_time_employees,
            'country': profile.country
        },
        'financials': {
            'profitMargins': stats.profit_margins,
            'revenueGrowth': stats.revenue_growth,
            'grossMargins': stats.gross_margins,
            'operatingMargins': stats.operating_margins,
            'returnOnEquity': stats.return_on_equity,
            'totalCash': stats.total_cash,
            'totalDebt': stats.total_debt,
            'operatingCashflow': stats.operating_cashflow,
            'freeCashflow': stats.free_cashflow
        },
        'keyStats': {
            'beta': stats.beta,
            'trailingPE': stats.trailing_pe,
            'forwardPE': stats.forward_pe,
            'trailingEps': stats.trailing_eps,
            'priceToBook': stats.price_to_book,
            'enterpriseValue': stats.enterprise_value,
            'earningsGrowth': stats.earnings_growth
        },
        'dividendInfo': {
            'yield': stock_data.dividends.dividend_yield,
            'rate': stock_data.dividends.rate,
            'exDate': stock_data.dividends.ex_date
        },
        'news': [
            {
                'title': item.title,
                'publisher': item.publisher,
                'publishedAt': item.published_at.isoformat(),
                'sentiment': item.sentiment
            }
            for item in stock_data.news
        ]
    }

class InsightCache:
    """
    Last analysis per symbol, reused while the input fingerprint matches
    Least recently used symbols are evicted beyond max_entries
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or get_config().cache.insight_cache_size
        self._entries: 'OrderedDict[str, AnalysisCacheEntry]' = OrderedDict()

    def get(self, symbol: str, content_hash: str) -> Optional[StructuredAnalysis]:
        entry = self._entries.get(symbol)
        if entry is None or entry.content_hash != content_hash:
            return None
        self._entries.move_to_end(symbol)
        return entry.result

    def put(self, symbol: str, content_hash: str, result: StructuredAnalysis):
        self._entries[symbol] = AnalysisCacheEntry(content_hash=content_hash, result=result)
        self._entries.move_to_end(symbol)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cached analysis for {evicted}")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._entries

class CompletionService(ABC):
    """Text-completion backend"""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        pass

class OpenAICompletionService(CompletionService):
    """Chat completions through the OpenAI SDK; SDK errors are classified"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        temperature: float = 0.3,
        max_tokens: int = 800
    ):
        config = get_config()
        self.api_key = api_key if api_key is not None else config.api.openai_api_key
        self.model = model or config.api.openai_model
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            if not self.api_key:
                raise APIError("OPENAI_API_KEY is not configured", 401, is_retryable=False)
            self.client = AsyncOpenAI(api_key=self.api_key)
        return self.client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {'role': 'system', 'content': system_prompt},
                    {'role': 'user', 'content': user_prompt}
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except openai.APIStatusError as e:
            raise APIError(
                f"OpenAI request failed: {e.message}",
                e.status_code,
                is_retryable=e.status_code in RETRYABLE_STATUS_CODES
            ) from e
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise NetworkError(f"OpenAI connection failed: {e}") from e

        if not response.choices:
            return NO_INSIGHTS
        return response.choices[0].message.content or NO_INSIGHTS

class InsightGenerator:
    """Memoized analysis: the model is called only when the input changed"""

    def __init__(
        self,
        service: Optional[CompletionService] = None,
        cache: Optional[InsightCache] = None
    ):
        self.service = service or OpenAICompletionService()
        self.cache = cache if cache is not None else InsightCache()

    @retry()
    async def _complete(self, symbol: str, payload: Dict[str, Any]) -> str:
        user_prompt = f"Stock analysis for {symbol}:\n{json.dumps(payload, indent=2, default=str)}"
        return await self.service.complete(SYSTEM_PROMPT, user_prompt)

    @log_async_performance()
    async def generate_insights(self, symbol: str, payload: Dict[str, Any]) -> StructuredAnalysis:
        validate_symbol(symbol)
        content_hash = fingerprint(payload)

        cached = self.cache.get(symbol, content_hash)
        if cached is not None:
            logger.info(f"Using cached analysis for {symbol}")
            return cached

        try:
            text = await self._complete(symbol, payload)
        except Exception as e:
            log_error(e, context={'symbol': symbol, 'service': 'generate_insights'})
            raise

        result = parse_analysis(text)
        self.cache.put(symbol, content_hash, result)
        logger.info(f"Generated analysis for {symbol} ({len(result.sections)} sections)")
        return result
