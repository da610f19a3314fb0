"""
News manager with per-source fallback, title deduplication and enrichment
Combines Google News (primary) with NewsAPI (secondary)
"""

import asyncio
from dataclasses import replace
from typing import Dict, List, Optional

from ..config import get_config
from ..utils import get_logger, log_error, validate_symbol, with_retry, RetryConfig
from .base import NewsAdapter, NewsItem
from .cache import get_cache_key
from .cache_manager import CacheManager, get_cache_manager
from .news import (
    GoogleNewsAdapter,
    NewsAPIAdapter,
    ContentExtractor,
    SentimentClassifier,
    estimate_read_time
)

logger = get_logger(__name__)

SUMMARY_LENGTH = 300

SENTIMENT_VALUES = {'positive': 1.0, 'neutral': 0.0, 'negative': -1.0}

def merge_news(primary: List[NewsItem], secondary: List[NewsItem]) -> List[NewsItem]:
    """
    Combine two source lists, newest first

    Every primary item is kept. A secondary item is appended only when no
    item kept so far has the same title, compared case-insensitively.
    """
    merged = list(primary)
    seen = {item.title.casefold() for item in merged}

    for item in secondary:
        title = item.title.casefold()
        if title not in seen:
            seen.add(title)
            merged.append(item)

    merged.sort(key=lambda item: item.published_at, reverse=True)
    return merged

class NewsManager:
    """
    Manages company news acquisition
    A failing source contributes no items; it never fails the whole request
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        primary: Optional[NewsAdapter] = None,
        secondary: Optional[NewsAdapter] = None,
        extractor: Optional[ContentExtractor] = None,
        classifier: Optional[SentimentClassifier] = None,
        retry_config: Optional[RetryConfig] = None
    ):
        self.config = get_config()
        self.cache = cache or get_cache_manager()

        self.primary = primary or GoogleNewsAdapter()
        self.secondary = secondary or NewsAPIAdapter()
        self.extractor = extractor or ContentExtractor()
        self.classifier = classifier or SentimentClassifier()
        self.retry_config = retry_config

    async def initialize(self):
        """Initialize news adapters"""
        logger.info("Initializing news manager...")

        for adapter in (self.primary, self.secondary):
            if not adapter.is_available():
                logger.warning(f"{adapter.provider.value} is not configured, skipping")
                continue
            try:
                await adapter.connect()
                logger.info(f"Connected {adapter.provider.value} adapter")
            except Exception as e:
                logger.error(f"Failed to connect {adapter.provider.value}: {e}")

    async def shutdown(self):
        """Shutdown news adapters"""
        logger.info("Shutting down news manager...")

        for adapter in (self.primary, self.secondary):
            try:
                await adapter.disconnect()
            except Exception as e:
                logger.error(f"Error disconnecting {adapter.provider.value}: {e}")

        await self.extractor.aclose()

    async def _fetch_source(self, adapter: NewsAdapter, symbol: str) -> List[NewsItem]:
        if not adapter.is_available():
            logger.debug(f"Skipping {adapter.provider.value}: not configured")
            return []

        try:
            return await with_retry(
                lambda: adapter.search_news(symbol),
                self.retry_config,
                description=f"{adapter.provider.value} news for {symbol}"
            )
        except Exception as e:
            log_error(e, context={'symbol': symbol, 'source': adapter.provider.value})
            return []

    async def enrich(self, item: NewsItem) -> NewsItem:
        """Attach content-derived fields; the item is kept whatever happens"""
        content = None
        if self.config.news.enrich_content:
            content = await self.extractor.extract(item.link)
        text = content.content if content else None

        summary = item.summary
        if not summary and text:
            summary = text[:SUMMARY_LENGTH] + ("..." if len(text) > SUMMARY_LENGTH else "")
        if not summary:
            summary = item.title

        sentiment = self.classifier.classify(text or f"{item.title}. {item.summary}")

        return replace(
            item,
            summary=summary,
            sentiment=sentiment,
            metrics=content.metrics if content else item.metrics,
            estimated_read_time=estimate_read_time(text or summary)
        )

    async def _enrich_all(self, items: List[NewsItem]) -> List[NewsItem]:
        semaphore = asyncio.Semaphore(self.config.news.max_concurrent_extractions)

        async def bounded(item: NewsItem) -> NewsItem:
            async with semaphore:
                return await self.enrich(item)

        return list(await asyncio.gather(*(bounded(item) for item in items)))

    async def fetch_company_news(self, symbol: str) -> List[NewsItem]:
        """Uncached: query both sources, merge and enrich"""
        primary, secondary = await asyncio.gather(
            self._fetch_source(self.primary, symbol),
            self._fetch_source(self.secondary, symbol)
        )
        merged = merge_news(primary, secondary)
        logger.info(
            f"Merged {len(merged)} news items for {symbol} "
            f"({len(primary)} primary, {len(secondary)} secondary)"
        )
        return await self._enrich_all(merged)

    async def get_company_news(self, symbol: str) -> List[NewsItem]:
        """Deduplicated, enriched news for symbol, newest first"""
        validate_symbol(symbol)

        async def fetch():
            items = await self.fetch_company_news(symbol)
            return [item.to_dict() for item in items]

        records = await self.cache.get_cached_data(
            get_cache_key('news', symbol),
            self.cache.ttl.news,
            fetch
        )
        return [NewsItem.from_dict(record) for record in records]

    @staticmethod
    def score_items(items: List[NewsItem]) -> float:
        """Mean labelled sentiment in [-1, 1]; 0.0 when nothing is labelled"""
        values = [SENTIMENT_VALUES[item.sentiment] for item in items if item.sentiment in SENTIMENT_VALUES]
        if not values:
            return 0.0
        return round(sum(values) / len(values), 3)

    async def get_market_sentiment(self, symbols: List[str]) -> Dict[str, float]:
        """
        Sentiment score per symbol from its recent news
        Returns scores from -1 (very negative) to 1 (very positive)
        """
        for symbol in symbols:
            validate_symbol(symbol)
        ordered = sorted({symbol.upper() for symbol in symbols})
        if not ordered:
            return {}

        async def fetch():
            results = await asyncio.gather(
                *(self.get_company_news(symbol) for symbol in ordered),
                return_exceptions=True
            )
            scores = {}
            for symbol, result in zip(ordered, results):
                if isinstance(result, Exception):
                    log_error(result, context={'symbol': symbol, 'service': 'market_sentiment'})
                    scores[symbol] = 0.0
                else:
                    scores[symbol] = self.score_items(result)
            return scores

        return await self.cache.get_cached_data(
            get_cache_key('sentiment', *ordered),
            self.cache.ttl.sentiment,
            fetch
        )
