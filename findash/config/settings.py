"""
Configuration management for findash
Loads environment variables and provides centralized settings
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import logging

# Load environment variables
env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

@dataclass
class APIConfig:
    """API configuration and keys"""
    alpha_vantage_key: str
    news_api_key: str
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"

@dataclass
class CacheConfig:
    """Cache TTLs per data class (seconds) and housekeeping"""
    quote_ttl_seconds: float = 60
    profile_ttl_seconds: float = 24 * 60 * 60
    statistics_ttl_seconds: float = 60 * 60
    news_ttl_seconds: float = 60 * 60
    fundamentals_ttl_seconds: float = 24 * 60 * 60
    market_ttl_seconds: float = 5 * 60
    sentiment_ttl_seconds: float = 15 * 60
    cleanup_interval_seconds: float = 60
    insight_cache_size: int = 256

@dataclass
class RetrySettings:
    """Default exponential backoff policy"""
    max_retries: int = 3
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    factor: float = 2.0

@dataclass
class NewsConfig:
    """News aggregation settings"""
    lookback_days: int = 7
    content_timeout_seconds: float = 5.0
    request_timeout_seconds: float = 30.0
    enrich_content: bool = True
    max_concurrent_extractions: int = 5
    sentiment_threshold: float = 0.05

@dataclass
class SystemConfig:
    """System-level configuration"""
    log_level: str = "INFO"
    log_to_file: bool = False

    # Paths
    project_root: Path = field(default_factory=lambda: Path(__file__).parent.parent.parent)
    cache_dir: Path = field(init=False)
    logs_dir: Path = field(init=False)

    def __post_init__(self):
        self.cache_dir = Path(os.getenv("FINDASH_CACHE_DIR", self.project_root / ".cache"))
        self.logs_dir = Path(os.getenv("FINDASH_LOG_DIR", self.project_root / "logs"))

@dataclass
class Config:
    """Main configuration container"""
    api: APIConfig
    cache: CacheConfig
    retry: RetrySettings
    news: NewsConfig
    system: SystemConfig

    # Runtime overrides
    _overrides: Dict[str, Any] = field(default_factory=dict)

    def override(self, key: str, value: Any):
        """Override a configuration value at runtime"""
        self._overrides[key] = value

    def get(self, key: str, default=None):
        """Get configuration value with override support"""
        if key in self._overrides:
            return self._overrides[key]

        # Navigate nested attributes
        parts = key.split('.')
        obj = self
        for part in parts:
            if hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                return default
        return obj

# Singleton instance
_config_instance: Optional[Config] = None

def get_config() -> Config:
    """Get or create the configuration singleton"""
    global _config_instance

    if _config_instance is None:
        # Load from environment
        api_config = APIConfig(
            alpha_vantage_key=os.getenv("ALPHA_VANTAGE_API_KEY", ""),
            news_api_key=os.getenv("NEWS_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        )

        cache_config = CacheConfig(
            quote_ttl_seconds=float(os.getenv("QUOTE_TTL_SECONDS", "60")),
            profile_ttl_seconds=float(os.getenv("PROFILE_TTL_SECONDS", "86400")),
            statistics_ttl_seconds=float(os.getenv("STATISTICS_TTL_SECONDS", "3600")),
            news_ttl_seconds=float(os.getenv("NEWS_TTL_SECONDS", "3600")),
            fundamentals_ttl_seconds=float(os.getenv("FUNDAMENTALS_TTL_SECONDS", "86400")),
            market_ttl_seconds=float(os.getenv("MARKET_TTL_SECONDS", "300")),
            sentiment_ttl_seconds=float(os.getenv("SENTIMENT_TTL_SECONDS", "900")),
            cleanup_interval_seconds=float(os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", "60")),
            insight_cache_size=int(os.getenv("INSIGHT_CACHE_SIZE", "256"))
        )

        retry_settings = RetrySettings(
            max_retries=int(os.getenv("RETRY_MAX_RETRIES", "3")),
            initial_delay_seconds=float(os.getenv("RETRY_INITIAL_DELAY_SECONDS", "1.0")),
            max_delay_seconds=float(os.getenv("RETRY_MAX_DELAY_SECONDS", "10.0")),
            factor=float(os.getenv("RETRY_FACTOR", "2.0"))
        )

        news_config = NewsConfig(
            lookback_days=int(os.getenv("NEWS_LOOKBACK_DAYS", "7")),
            content_timeout_seconds=float(os.getenv("NEWS_CONTENT_TIMEOUT_SECONDS", "5")),
            request_timeout_seconds=float(os.getenv("NEWS_REQUEST_TIMEOUT_SECONDS", "30")),
            enrich_content=os.getenv("NEWS_ENRICH_CONTENT", "true").lower() == "true",
            max_concurrent_extractions=int(os.getenv("NEWS_MAX_CONCURRENT_EXTRACTIONS", "5")),
            sentiment_threshold=float(os.getenv("NEWS_SENTIMENT_THRESHOLD", "0.05"))
        )

        system_config = SystemConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_to_file=os.getenv("LOG_TO_FILE", "false").lower() == "true"
        )

        _config_instance = Config(
            api=api_config,
            cache=cache_config,
            retry=retry_settings,
            news=news_config,
            system=system_config
        )

        # Validate critical settings
        if not api_config.news_api_key:
            logging.warning("NEWS_API_KEY not set - NewsAPI source will be skipped")
        if not api_config.openai_api_key:
            logging.warning("OPENAI_API_KEY not set - AI insights will not work")

    return _config_instance

def reset_config():
    """Reset the configuration singleton (mainly for testing)"""
    global _config_instance
    _config_instance = None
