"""
Error taxonomy for the data-acquisition layer
Every failure is reduced to a tagged ErrorRecord that drives retry
decisions and client-facing error responses
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from .logger import get_logger

logger = get_logger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"

# Upstream statuses worth another attempt
RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

class ErrorKind(Enum):
    """Error kinds with their response tags"""
    VALIDATION = "validation_error"
    API = "api_error"
    NETWORK = "network_error"
    UNKNOWN = "unknown_error"

class FinDashError(Exception):
    """Base class for classified errors"""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, is_retryable: bool = True):
        super().__init__(message)
        self.message = message
        self.is_retryable = is_retryable

class ValidationError(FinDashError):
    """Malformed caller input; never retried"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, is_retryable=False)
        self.field = field

class APIError(FinDashError):
    """Upstream answered with a specific failure"""

    kind = ErrorKind.API

    def __init__(self, message: str, status_code: int, is_retryable: bool = True):
        super().__init__(message, is_retryable=is_retryable)
        self.status_code = status_code

class NetworkError(FinDashError):
    """Transport-level failure (connect, reset, timeout)"""

    kind = ErrorKind.NETWORK

class UnknownError(FinDashError):
    """Unclassified failure"""

    kind = ErrorKind.UNKNOWN

@dataclass(frozen=True)
class ErrorRecord:
    """Tagged, serializable view of any failure"""
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    is_retryable: bool = True

    @property
    def tag(self) -> str:
        return self.kind.value

    def to_response(self) -> Dict[str, Any]:
        """Client-safe representation, never carries a traceback"""
        response: Dict[str, Any] = {'message': self.message, 'type': self.tag}
        if self.status_code is not None:
            response['statusCode'] = self.status_code
        return response

def classify_error(error: Any) -> ErrorRecord:
    """
    Reduce any raised value to an ErrorRecord

    Taxonomy errors keep their own classification. Library exceptions
    from httpx and asyncio are mapped at this boundary so callers never
    have to inspect foreign exception types.
    """
    if isinstance(error, FinDashError):
        return ErrorRecord(
            kind=error.kind,
            message=error.message,
            status_code=getattr(error, 'status_code', None),
            is_retryable=error.is_retryable
        )

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return ErrorRecord(
            kind=ErrorKind.API,
            message=f"Upstream responded with HTTP {status}",
            status_code=status,
            is_retryable=status in RETRYABLE_STATUS_CODES
        )

    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError)):
        message = str(error) or f"{type(error).__name__} while contacting upstream"
        return ErrorRecord(kind=ErrorKind.NETWORK, message=message)

    if isinstance(error, Exception):
        return ErrorRecord(kind=ErrorKind.UNKNOWN, message=str(error) or type(error).__name__)

    return ErrorRecord(kind=ErrorKind.UNKNOWN, message=UNKNOWN_ERROR_MESSAGE)

def is_retryable(error: Any) -> bool:
    """Whether another attempt could succeed"""
    return classify_error(error).is_retryable

def format_error_response(error: Any) -> Dict[str, Any]:
    """Map any error to {message, type, statusCode?} for API responses"""
    return classify_error(error).to_response()

def log_error(error: Any, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Emit a structured error record and return it

    Args:
        error: The failure to record
        context: Call-site details (symbol, service, ...)

    Returns:
        The record that was logged
    """
    record = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'error': format_error_response(error),
        'context': context or {}
    }
    logger.error(json.dumps(record, default=str))
    return record
