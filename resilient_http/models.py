"""Data models and enums for the resilient HTTP client"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Optional

from .config import (
    DEFAULT_BACKOFF_BASE_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_METHOD,
    DEFAULT_TIMEOUT_MS,
)


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests


class BreakerScope(Enum):
    """How many breakers a client keeps"""

    GLOBAL = "global"  # One breaker for every URL
    HOST = "host"  # One breaker per URL host


class ErrorType(Enum):
    """Error categories for different handling strategies"""

    TRANSIENT = "transient"  # Backoff and retry
    RATE_LIMIT = "rate_limit"  # Backoff and retry
    CIRCUIT_OPEN = "circuit_open"  # Fail fast, don't retry
    PERMANENT = "permanent"  # Don't retry


@dataclass(frozen=True)
class CacheEntry:
    """Validator and body of the last 2xx response seen for a URL"""

    etag: str
    body: bytes
    last_modified: Optional[str] = None


@dataclass(frozen=True)
class RequestOptions:
    """
    Per-call request options.

    Instances are immutable; use with_overrides() to derive a variant.
    """

    method: str = DEFAULT_METHOD
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.backoff_base_ms < 0:
            raise ValueError(
                f"backoff_base_ms must be >= 0, got {self.backoff_base_ms}"
            )
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", dict(self.headers or {}))

    @property
    def timeout(self) -> float:
        """Deadline in seconds"""
        return self.timeout_ms / 1000

    def with_overrides(self, **changes) -> "RequestOptions":
        return replace(self, **changes) if changes else self
