"""
News sources (Google News RSS and NewsAPI) plus best-effort enrichment:
article content extraction, metric extraction and VADER sentiment
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from urllib.parse import quote_plus

import feedparser
import httpx
from bs4 import BeautifulSoup
import nltk
from nltk.sentiment.vader import SentimentIntensityAnalyzer

from ..config import get_config
from ..utils import get_logger, APIError
from .base import (
    NewsAdapter,
    DataProvider,
    NewsItem,
    ArticleMetric,
    SourceReliability,
    parse_timestamp
)

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# Paywalled / premium outlets are not useful to dashboard readers
PREMIUM_INDICATORS = (
    'subscription required',
    'subscribers only',
    'premium',
    'benzinga',
    'motley fool',
    'zacks',
    'seeking alpha premium'
)

HIGH_RELIABILITY_PUBLISHERS = ('reuters', 'associated press', 'ap news', 'apnews')

ARTICLE_SELECTORS = (
    'article',
    '[role="article"]',
    '.article-content',
    '.article-body',
    '.story-content',
    'main',
    '#article-body',
    '.caas-body'
)

STRIPPED_ELEMENTS = ('script', 'style', 'nav', 'header', 'footer', 'iframe', '.advertisement', '.ads')

WORDS_PER_MINUTE = 200

_PERCENTAGE_RE = re.compile(
    r'(increased|decreased|up|down|gained|lost|rose|fell|jumped|dropped|surged|plunged) by (\d+\.?\d*)%',
    re.IGNORECASE
)
_PRICE_TARGET_RE = re.compile(r'price target (?:of |to |at )\$(\d+\.?\d*)', re.IGNORECASE)
_MONEY_RE = re.compile(r'\$(\d+(?:\.\d+)?)\s*(million|billion|trillion)', re.IGNORECASE)
_MONEY_SCALE = {'million': 1e6, 'billion': 1e9, 'trillion': 1e12}

@dataclass(frozen=True)
class ArticleContent:
    """Text pulled from an article page"""
    content: str
    metrics: Tuple[ArticleMetric, ...] = ()

def _context(text: str, start: int, end: int) -> str:
    return text[max(0, start - 50):end + 50]

def extract_metrics(text: str) -> List[ArticleMetric]:
    """Percentage moves, price targets and money amounts mentioned in text"""
    metrics = []

    for match in _PERCENTAGE_RE.finditer(text):
        metrics.append(ArticleMetric(
            type='percentage_change',
            value=float(match.group(2)),
            direction=match.group(1).lower(),
            context=_context(text, match.start(), match.end())
        ))

    for match in _PRICE_TARGET_RE.finditer(text):
        metrics.append(ArticleMetric(
            type='price_target',
            value=float(match.group(1)),
            context=_context(text, match.start(), match.end())
        ))

    for match in _MONEY_RE.finditer(text):
        unit = match.group(2).lower()
        metrics.append(ArticleMetric(
            type='financial_metric',
            value=float(match.group(1)) * _MONEY_SCALE[unit],
            unit=unit,
            context=_context(text, match.start(), match.end())
        ))

    return metrics

def estimate_read_time(text: str) -> int:
    """Minutes to read text, rounded up"""
    return max(1, math.ceil(len(text.split()) / WORDS_PER_MINUTE))

def strip_html(fragment: str) -> str:
    if not fragment:
        return ""
    text = BeautifulSoup(fragment, "html.parser").get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()

def is_premium(*texts: Optional[str]) -> bool:
    lowered = [t.lower() for t in texts if t]
    return any(indicator in t for t in lowered for indicator in PREMIUM_INDICATORS)

def publisher_reliability(publisher: str) -> SourceReliability:
    name = (publisher or "").lower()
    if any(p in name for p in HIGH_RELIABILITY_PUBLISHERS) or name == 'ap':
        return SourceReliability.HIGH
    return SourceReliability.MEDIUM

class SentimentClassifier:
    """
    VADER-based headline/article classifier
    Returns positive / negative / neutral, or None when classification fails
    """

    def __init__(self, threshold: Optional[float] = None, analyzer: Optional[SentimentIntensityAnalyzer] = None):
        self.threshold = threshold if threshold is not None else get_config().news.sentiment_threshold
        self.analyzer = analyzer

    def _get_analyzer(self) -> SentimentIntensityAnalyzer:
        if self.analyzer is None:
            try:
                self.analyzer = SentimentIntensityAnalyzer()
            except LookupError:
                logger.info("Downloading VADER lexicon")
                nltk.download("vader_lexicon", quiet=True)
                self.analyzer = SentimentIntensityAnalyzer()
        return self.analyzer

    def score(self, text: str) -> float:
        """Compound score from -1 (very negative) to 1 (very positive)"""
        return self._get_analyzer().polarity_scores(text)["compound"]

    def classify(self, text: Optional[str]) -> Optional[str]:
        if not text or not text.strip():
            return None
        try:
            compound = self.score(text)
        except Exception as e:
            logger.warning(f"Sentiment classification failed: {e}")
            return None

        if compound > self.threshold:
            return 'positive'
        if compound < -self.threshold:
            return 'negative'
        return 'neutral'

class ContentExtractor:
    """
    Best-effort article text extraction
    Absence (None) is an expected outcome, not an error
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else get_config().news.content_timeout_seconds
        self.client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if not self.client:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={'User-Agent': USER_AGENT, 'Accept': 'text/html'}
            )
        return self.client

    async def aclose(self):
        if self.client:
            await self.client.aclose()
            self.client = None

    @staticmethod
    def parse(html: str) -> Optional[ArticleContent]:
        """Main text and metrics from an HTML document"""
        soup = BeautifulSoup(html, "html.parser")
        for selector in STRIPPED_ELEMENTS:
            for element in soup.select(selector):
                element.decompose()

        content = ""
        for selector in ARTICLE_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                content = element.get_text(separator=" ").strip()
                if content:
                    break

        if not content:
            content = " ".join(p.get_text(separator=" ") for p in soup.find_all('p'))

        content = re.sub(r"\s+", " ", content).strip()
        if not content:
            return None

        body_text = re.sub(r"\s+", " ", soup.get_text(separator=" "))
        return ArticleContent(content=content, metrics=tuple(extract_metrics(body_text)))

    async def extract(self, url: str) -> Optional[ArticleContent]:
        if not url:
            return None
        try:
            client = await self._get_client()
            response = await client.get(url, timeout=self.timeout)
            response.raise_for_status()
            return self.parse(response.text)
        except Exception as e:
            logger.debug(f"Content extraction skipped for {url}: {e}")
            return None

class GoogleNewsAdapter(NewsAdapter):
    """Google News RSS search, no key required"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(DataProvider.GOOGLE_NEWS)
        self.config = get_config()
        self.base_url = "https://news.google.com/rss/search"
        self.client = client

    async def connect(self):
        if not self.client:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.news.request_timeout_seconds),
                follow_redirects=True,
                headers={'User-Agent': USER_AGENT}
            )
            self.is_connected = True
            logger.info("Google News client initialized")

    async def disconnect(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            self.is_connected = False

    def feed_url(self, symbol: str) -> str:
        days = self.config.news.lookback_days
        query = quote_plus(f"{symbol} stock when:{days}d")
        return f"{self.base_url}?q={query}&hl=en-US&gl=US&ceid=US:en"

    def parse_feed(self, symbol: str, document: str) -> List[NewsItem]:
        feed = feedparser.parse(document)
        if feed.bozo and not feed.entries:
            raise APIError(f"Unparseable Google News feed for {symbol}", 502)

        items = []
        for entry in feed.entries:
            title = entry.get('title', '').strip()
            if not title:
                continue

            parsed = entry.get('published_parsed')
            published_at = (
                datetime(*parsed[:6], tzinfo=timezone.utc) if parsed else datetime.now(timezone.utc)
            )
            source = entry.get('source') or {}
            media = entry.get('media_content') or []

            items.append(NewsItem(
                title=title,
                link=entry.get('link', ''),
                publisher=source.get('title') or entry.get('author') or 'Google News',
                published_at=published_at,
                summary=strip_html(entry.get('summary', '')),
                source_reliability=SourceReliability.HIGH,
                related_tickers=(symbol,),
                author=entry.get('author'),
                image_url=media[0].get('url') if media else None,
                provider=self.provider.value
            ))
        return items

    async def search_news(self, symbol: str) -> List[NewsItem]:
        if not self.client:
            await self.connect()

        response = await self.client.get(self.feed_url(symbol))
        response.raise_for_status()
        items = self.parse_feed(symbol, response.text)
        logger.info(f"Got {len(items)} items from Google News for {symbol}")
        return items

class NewsAPIAdapter(NewsAdapter):
    """
    NewsAPI.org adapter for news headlines
    Limited to 1000 requests/day on free tier
    """

    DOMAINS = "reuters.com,apnews.com,finance.yahoo.com,investing.com,seekingalpha.com"

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__(DataProvider.NEWSAPI)
        self.config = get_config()
        self.base_url = "https://newsapi.org/v2"
        self.api_key = api_key if api_key is not None else self.config.api.news_api_key
        self.client = client

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def connect(self):
        if not self.client:
            self.client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.news.request_timeout_seconds))
            self.is_connected = True
            logger.info("NewsAPI client initialized")

    async def disconnect(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            self.is_connected = False

    def parse_article(self, symbol: str, article: dict) -> Optional[NewsItem]:
        """NewsItem for one article, None when it is removed or paywalled"""
        title = (article.get("title") or "").strip()
        if not title or title == "[Removed]":
            return None
        if is_premium(title, article.get("description"), article.get("content")):
            return None

        publisher = (article.get("source") or {}).get("name") or "Unknown"
        summary = article.get("description") or ""
        if not summary and article.get("content"):
            summary = article["content"][:300] + "..."

        return NewsItem(
            title=title,
            link=article.get("url", ""),
            publisher=publisher,
            published_at=parse_timestamp(article["publishedAt"]),
            summary=summary,
            source_reliability=publisher_reliability(publisher),
            related_tickers=(symbol,),
            author=article.get("author"),
            image_url=article.get("urlToImage"),
            provider=self.provider.value
        )

    def parse_articles(self, symbol: str, articles: List[dict]) -> List[NewsItem]:
        items = []
        for article in articles:
            try:
                item = self.parse_article(symbol, article)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                # A malformed article never costs the rest of the response
                logger.debug(f"Skipping malformed NewsAPI article for {symbol}: {e}")
                continue
            if item is not None:
                items.append(item)
        return items

    async def search_news(self, symbol: str) -> List[NewsItem]:
        if not self.api_key:
            raise APIError("NEWS_API_KEY is not configured", 401, is_retryable=False)
        if not self.client:
            await self.connect()

        since = datetime.now(timezone.utc) - timedelta(days=self.config.news.lookback_days)
        response = await self.client.get(
            f"{self.base_url}/everything",
            headers={"X-Api-Key": self.api_key},
            params={
                "q": f"{symbol} stock",
                "language": "en",
                "sortBy": "publishedAt",
                "domains": self.DOMAINS,
                "from": since.strftime("%Y-%m-%dT%H:%M:%S")
            }
        )
        response.raise_for_status()
        data = response.json()

        if data.get("status") != "ok":
            code = data.get("code", "")
            raise APIError(
                f"NewsAPI error: {data.get('message', 'Unknown error')}",
                502,
                is_retryable=code not in ("apiKeyInvalid", "apiKeyMissing", "apiKeyDisabled")
            )

        items = self.parse_articles(symbol, data.get("articles", []))
        logger.info(f"Got {len(items)} items from NewsAPI for {symbol}")
        return items
