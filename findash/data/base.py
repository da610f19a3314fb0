"""
Domain records and provider interfaces for the data layer
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

class DataProvider(Enum):
    """Available data providers"""
    YAHOO = "yahoo"
    ALPHA_VANTAGE = "alpha_vantage"
    NEWSAPI = "newsapi"
    GOOGLE_NEWS = "google_news"
    OPENAI = "openai"

class SourceReliability(Enum):
    """How much a news publisher is trusted"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

def parse_timestamp(value: Any) -> datetime:
    """Parse ISO strings / epoch seconds into an aware UTC datetime"""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

@dataclass
class Quote:
    """Market quote data"""
    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: Optional[int] = None
    previous_close: Optional[float] = None
    open: Optional[float] = None
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    average_volume: Optional[int] = None
    market_cap: Optional[float] = None
    name: Optional[str] = None
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Quote':
        return cls(**data)

@dataclass
class CompanyProfile:
    """Company description and location"""
    symbol: str
    long_name: str
    long_business_summary: str = ""
    sector: str = ""
    industry: str = ""
    website: str = ""
    full_time_employees: Optional[int] = None
    city: str = ""
    country: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CompanyProfile':
        return cls(**data)

@dataclass
class KeyStatistics:
    """Valuation ratios and financial health figures"""
    symbol: str
    beta: Optional[float] = None
    price_to_book: Optional[float] = None
    trailing_pe: Optional[float] = None
    forward_pe: Optional[float] = None
    trailing_eps: Optional[float] = None
    enterprise_value: Optional[float] = None
    earnings_growth: Optional[float] = None
    revenue_growth: Optional[float] = None
    profit_margins: Optional[float] = None
    gross_margins: Optional[float] = None
    operating_margins: Optional[float] = None
    return_on_equity: Optional[float] = None
    return_on_assets: Optional[float] = None
    total_cash: Optional[float] = None
    total_debt: Optional[float] = None
    operating_cashflow: Optional[float] = None
    free_cashflow: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KeyStatistics':
        return cls(**data)

@dataclass
class DividendInfo:
    """Dividend figures"""
    symbol: str
    dividend_yield: Optional[float] = None
    rate: Optional[float] = None
    ex_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DividendInfo':
        return cls(**data)

@dataclass
class MarketIndex:
    """Headline market index"""
    name: str
    symbol: str
    value: float
    change: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MarketIndex':
        return cls(**data)

@dataclass(frozen=True)
class ArticleMetric:
    """Figure pulled from article text"""
    type: str  # percentage_change | price_target | financial_metric
    value: float
    context: str
    direction: Optional[str] = None
    unit: Optional[str] = None

@dataclass(frozen=True)
class NewsItem:
    """Aggregated news record, immutable once built"""
    title: str
    link: str
    publisher: str
    published_at: datetime
    summary: str
    source_reliability: SourceReliability = SourceReliability.MEDIUM
    sentiment: Optional[str] = None  # positive | negative | neutral
    metrics: Tuple[ArticleMetric, ...] = field(default_factory=tuple)
    related_tickers: Tuple[str, ...] = field(default_factory=tuple)
    author: Optional[str] = None
    image_url: Optional[str] = None
    estimated_read_time: Optional[int] = None
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'title': self.title,
            'link': self.link,
            'publisher': self.publisher,
            'published_at': self.published_at.isoformat(),
            'summary': self.summary,
            'source_reliability': self.source_reliability.value,
            'sentiment': self.sentiment,
            'metrics': [asdict(m) for m in self.metrics],
            'related_tickers': list(self.related_tickers),
            'author': self.author,
            'image_url': self.image_url,
            'estimated_read_time': self.estimated_read_time,
            'provider': self.provider
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NewsItem':
        """Create from dictionary"""
        return cls(
            title=data['title'],
            link=data.get('link', ''),
            publisher=data.get('publisher', ''),
            published_at=parse_timestamp(data['published_at']),
            summary=data.get('summary', ''),
            source_reliability=SourceReliability(data.get('source_reliability', 'medium')),
            sentiment=data.get('sentiment'),
            metrics=tuple(ArticleMetric(**m) for m in data.get('metrics', [])),
            related_tickers=tuple(data.get('related_tickers', [])),
            author=data.get('author'),
            image_url=data.get('image_url'),
            estimated_read_time=data.get('estimated_read_time'),
            provider=data.get('provider')
        )

@dataclass
class StockData:
    """Everything the stock page shows for one symbol"""
    quote: Quote
    profile: CompanyProfile
    statistics: KeyStatistics
    dividends: DividendInfo
    news: List[NewsItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quote': self.quote.to_dict(),
            'profile': self.profile.to_dict(),
            'statistics': self.statistics.to_dict(),
            'dividends': self.dividends.to_dict(),
            'news': [item.to_dict() for item in self.news]
        }

class BaseAdapter(ABC):
    """Base class for all upstream adapters"""

    def __init__(self, provider: DataProvider):
        self.provider = provider
        self.is_connected = False

    @abstractmethod
    async def connect(self):
        """Acquire client resources"""
        pass

    @abstractmethod
    async def disconnect(self):
        """Release client resources"""
        pass

class QuoteAdapter(BaseAdapter):
    """Quote / profile provider; failures raise classified errors"""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        pass

    @abstractmethod
    async def get_profile(self, symbol: str) -> CompanyProfile:
        pass

    @abstractmethod
    async def get_key_statistics(self, symbol: str) -> KeyStatistics:
        pass

    @abstractmethod
    async def get_dividends(self, symbol: str) -> DividendInfo:
        pass

class NewsAdapter(BaseAdapter):
    """News source; failures raise, the aggregator degrades per source"""

    def is_available(self) -> bool:
        """False when the source cannot be used (e.g. missing API key)"""
        return True

    @abstractmethod
    async def search_news(self, symbol: str) -> List[NewsItem]:
        """Recent news candidates for symbol"""
        pass
