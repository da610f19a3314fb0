"""
Utility modules for findash
"""

from .logger import setup_logger, get_logger, log_async_performance
from .errors import (
    ErrorKind,
    ErrorRecord,
    FinDashError,
    ValidationError,
    APIError,
    NetworkError,
    UnknownError,
    classify_error,
    is_retryable,
    format_error_response,
    log_error
)
from .retry import RetryConfig, default_retry_config, with_retry, retry
from .validators import validate_symbol

__all__ = [
    "setup_logger",
    "get_logger",
    "log_async_performance",
    "ErrorKind",
    "ErrorRecord",
    "FinDashError",
    "ValidationError",
    "APIError",
    "NetworkError",
    "UnknownError",
    "classify_error",
    "is_retryable",
    "format_error_response",
    "log_error",
    "RetryConfig",
    "default_retry_config",
    "with_retry",
    "retry",
    "validate_symbol"
]
