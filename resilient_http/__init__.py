"""Resilient HTTP client
Async fetch wrapper with timeouts, retries, a circuit breaker and ETag caching
"""

__version__ = "0.1.0"

from loguru import logger

from .api import fetch_retry, get_default_client, get_json, post_json, set_default_client
from .backoff import backoff_delay
from .circuit_breaker import CircuitBreaker
from .client import ResilientClient
from .etag_cache import ETagCache
from .exceptions import (
    CacheProtocolError,
    CircuitOpenError,
    HttpClientError,
    HttpStatusError,
    JsonParseError,
    NetworkError,
    RequestTimeoutError,
)
from .logging_config import PACKAGE_NAME, disable_logging, setup_logging
from .models import BreakerScope, CacheEntry, CircuitState, ErrorType, RequestOptions
from .retry import classify_error, is_retryable, retry_with_backoff

logger.disable(PACKAGE_NAME)

__all__ = [
    "__version__",
    "ResilientClient",
    "CircuitBreaker",
    "ETagCache",
    "fetch_retry",
    "get_json",
    "post_json",
    "get_default_client",
    "set_default_client",
    "backoff_delay",
    "retry_with_backoff",
    "classify_error",
    "is_retryable",
    "setup_logging",
    "disable_logging",
    "HttpClientError",
    "RequestTimeoutError",
    "HttpStatusError",
    "CircuitOpenError",
    "JsonParseError",
    "CacheProtocolError",
    "NetworkError",
    "BreakerScope",
    "CacheEntry",
    "CircuitState",
    "ErrorType",
    "RequestOptions",
]
