"""Custom exception classes for the resilient HTTP client"""

from typing import Optional

import httpx


class HttpClientError(Exception):
    """Base exception for client errors"""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        url: Optional[str] = None,
    ):
        self.status = status
        self.url = url
        super().__init__(message)


class RequestTimeoutError(HttpClientError, TimeoutError):
    """Raised when an attempt's deadline elapses before a response arrives"""

    def __init__(self, url: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Request to {url} timed out after {timeout_ms}ms", url=url)


class HttpStatusError(HttpClientError):
    """Raised for any response that is neither 2xx nor a usable 304"""

    def __init__(
        self,
        status: int,
        url: str,
        response: Optional[httpx.Response] = None,
    ):
        self.response = response
        self.retry_after = _parse_retry_after(response)
        super().__init__(f"HTTP {status} for {url}", status=status, url=url)


class CircuitOpenError(HttpClientError):
    """Raised when circuit breaker is open"""

    def __init__(self, url: Optional[str], retry_in: float, name: str = "default"):
        self.retry_in = retry_in
        self.name = name
        super().__init__(
            f"Circuit '{name}' is OPEN, retry in {retry_in:.2f}s", url=url
        )


class JsonParseError(HttpClientError):
    """Raised when a JSON wrapper receives a body that is not valid JSON"""

    pass


class CacheProtocolError(HttpClientError):
    """Raised when a 304 cannot be answered from the cache

    Either nothing is cached for the URL, or the cached body belongs to a
    different ETag than the one the server confirmed. Treated as fatal for
    the attempt.
    """

    def __init__(self, url: str, reason: str = "no cached body exists"):
        self.reason = reason
        super().__init__(
            f"304 Not Modified for {url} but {reason}",
            status=304,
            url=url,
        )


class NetworkError(HttpClientError):
    """Raised on transport failures (DNS, refused or reset connections)"""

    pass


def _parse_retry_after(response: Optional[httpx.Response]) -> Optional[float]:
    if response is None:
        return None
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not interpreted
        return None
