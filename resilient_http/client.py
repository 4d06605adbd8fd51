"""Resilient HTTP client: timeouts, retries, circuit breaker, ETag caching"""

import asyncio
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Optional

import httpx
import orjson
from loguru import logger

from .circuit_breaker import CircuitBreaker
from .config import (
    CIRCUIT_BREAKER_COOLDOWN_MS,
    FRAMING_HEADERS,
    HOST_BREAKER_MAX_ENTRIES,
    JSON_CONTENT_TYPE,
    NO_CONTENT_STATUS,
    NOT_MODIFIED_STATUS,
    OK_STATUS,
    SERVER_ERROR_STATUS,
)
from .etag_cache import ETagCache
from .exceptions import (
    CacheProtocolError,
    HttpStatusError,
    JsonParseError,
    NetworkError,
    RequestTimeoutError,
)
from .models import BreakerScope, RequestOptions
from .retry import retry_with_backoff


class ResilientClient:
    """
    HTTP client that owns its resilience state:
    - Per-attempt deadline enforced with a timeout race
    - Bounded retries with exponential backoff and jitter
    - Circuit breaker opened by server errors (global or per host)
    - ETag cache answering 304 Not Modified with the stored body

    Without an ``http`` client a fresh httpx.AsyncClient is opened for every
    attempt, so a single ResilientClient can be shared across event loops.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http: Optional[httpx.AsyncClient] = None,
        cache: Optional[ETagCache] = None,
        breaker: Optional[CircuitBreaker] = None,
        breaker_scope: BreakerScope = BreakerScope.GLOBAL,
        breaker_cooldown: float = CIRCUIT_BREAKER_COOLDOWN_MS / 1000,
        max_host_breakers: int = HOST_BREAKER_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        on_retry: Optional[Callable[[int, Exception], Awaitable[None]]] = None,
        follow_redirects: bool = True,
    ):
        """
        Initialize client.

        Args:
            base_url: Prefix for relative URLs (ignored when ``http`` is given)
            transport: httpx transport for the per-attempt clients
            http: Caller-owned AsyncClient to send every attempt through
            cache: ETag cache, a new one is created if omitted
            breaker: Breaker used in GLOBAL scope, created if omitted
            breaker_scope: GLOBAL for one breaker, HOST for one per host
            breaker_cooldown: Seconds a breaker stays open after tripping
            max_host_breakers: HOST scope bound, least recently used closed
                breakers are dropped first
            clock: Monotonic time source for the breakers
            sleep: Coroutine used between retries (seconds)
            on_retry: Optional callback: on_retry(attempt, error)
            follow_redirects: Follow 3xx redirects like a browser fetch
        """
        if max_host_breakers < 1:
            raise ValueError(f"max_host_breakers must be >= 1, got {max_host_breakers}")

        self.base_url = base_url
        self.cache = cache if cache is not None else ETagCache()
        self.breaker_scope = breaker_scope
        self.breaker_cooldown = breaker_cooldown
        self.max_host_breakers = max_host_breakers
        self.on_retry = on_retry
        self.follow_redirects = follow_redirects
        self._transport = transport
        self._http = http
        self._clock = clock
        self._sleep = sleep
        self._breaker = breaker or CircuitBreaker(
            cooldown=breaker_cooldown, name="global", clock=clock
        )
        self._host_breakers: "OrderedDict[str, CircuitBreaker]" = OrderedDict()

        logger.debug(f"Resilient client initialized (breaker scope: {breaker_scope.value})")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    def breaker_for(self, url: str) -> CircuitBreaker:
        """Breaker guarding url under the client's scope"""
        if self.breaker_scope is BreakerScope.GLOBAL:
            return self._breaker

        host = httpx.URL(url).host
        breaker = self._host_breakers.get(host)
        if breaker is not None:
            self._host_breakers.move_to_end(host)
            return breaker

        breaker = CircuitBreaker(
            cooldown=self.breaker_cooldown,
            name=host or "relative",
            clock=self._clock,
        )
        self._host_breakers[host] = breaker
        if len(self._host_breakers) > self.max_host_breakers:
            self._evict_host_breaker(keep=host)
        return breaker

    def _evict_host_breaker(self, keep: str) -> None:
        """Drop the least recently used closed breaker (the oldest one if all are open)"""
        candidates = [host for host in self._host_breakers if host != keep]
        victim = next(
            (host for host in candidates if not self._host_breakers[host].is_open),
            candidates[0],
        )
        del self._host_breakers[victim]
        logger.debug(f"Evicted breaker for host '{victim}'")

    def _build_headers(self, url: str, options: RequestOptions) -> httpx.Headers:
        """Caller headers plus conditional-request validators from the cache"""
        headers = httpx.Headers(options.headers)

        if options.method != "GET":
            return headers

        entry = self.cache.get(url)
        if entry is None:
            return headers

        if "If-None-Match" not in headers:
            headers["If-None-Match"] = entry.etag
        if entry.last_modified and "If-Modified-Since" not in headers:
            headers["If-Modified-Since"] = entry.last_modified
        logger.debug(f"   Conditional request for {url} (etag={entry.etag})")

        return headers

    async def _send(
        self, url: str, options: RequestOptions, headers: httpx.Headers
    ) -> httpx.Response:
        if self._http is not None:
            return await self._http.request(
                options.method,
                url,
                headers=headers,
                content=options.body,
                timeout=options.timeout,
            )

        async with httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            follow_redirects=self.follow_redirects,
        ) as http:
            return await http.request(
                options.method,
                url,
                headers=headers,
                content=options.body,
                timeout=options.timeout,
            )

    async def _execute(self, url: str, options: RequestOptions) -> httpx.Response:
        """Make a single attempt, translating the outcome into a response or error"""
        headers = self._build_headers(url, options)

        logger.debug(f"→ {options.method} {url}")
        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self._send(url, options, headers), timeout=options.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"⏰ {options.method} {url} timed out after {options.timeout_ms}ms")
            raise RequestTimeoutError(url, options.timeout_ms) from e
        except httpx.TransportError as e:
            logger.error(f"❌ {options.method} {url} NETWORK ERROR: {e}")
            raise NetworkError(f"Request to {url} failed: {e}", url=url) from e

        request_duration = time.time() - start_time
        status = response.status_code
        logger.debug(f"← {status} {url} ({request_duration:.2f}s)")

        if status == NOT_MODIFIED_STATUS:
            entry = self.cache.get(url)
            if entry is None:
                logger.error(f"❌ 304 for {url} with nothing cached")
                raise CacheProtocolError(url)

            mismatch = _validator_mismatch(entry.etag, headers, response)
            if mismatch:
                logger.error(f"❌ 304 for {url} does not match cached etag {entry.etag}")
                raise CacheProtocolError(url, mismatch)

            logger.info(f"♻️ {url} not modified, serving {len(entry.body)} cached bytes")
            return self._from_cache(response, entry.body)

        if response.is_success:
            etag = response.headers.get("ETag")
            # 206 and other partial or empty 2xx bodies are not the representation
            if etag and options.method == "GET" and status == OK_STATUS:
                self.cache.put(
                    url,
                    etag,
                    response.content,
                    last_modified=response.headers.get("Last-Modified"),
                )
            return response

        if status >= SERVER_ERROR_STATUS:
            self.breaker_for(url).trip()

        logger.debug(f"   HTTP {status} ERROR for {url}")
        raise HttpStatusError(status, url, response=response)

    @staticmethod
    def _from_cache(response: httpx.Response, body: bytes) -> httpx.Response:
        """Turn a 304 into a 200 carrying the cached body and the 304's headers"""
        headers = [
            (key, value)
            for key, value in response.headers.multi_items()
            if key.lower() not in FRAMING_HEADERS
        ]
        return httpx.Response(
            200,
            headers=headers,
            content=body,
            request=response.request,
            extensions={"from_cache": True},
        )

    async def fetch_retry(
        self,
        url: str,
        options: Optional[RequestOptions] = None,
        **overrides,
    ) -> httpx.Response:
        """
        Fetch url with the full resilience stack.

        The circuit breaker is consulted once, before the first attempt; an
        open circuit fails fast with CircuitOpenError and consumes no retries.

        Args:
            url: Request URL, also the ETag cache key
            options: Base request options (defaults if omitted)
            **overrides: RequestOptions fields to replace for this call

        Raises:
            HttpClientError: The last error once retries are exhausted, or the
                first non-retryable one
        """
        options = (options or RequestOptions()).with_overrides(**overrides)

        self.breaker_for(url).check(url)

        return await retry_with_backoff(
            self._execute,
            url,
            options,
            max_retries=options.max_retries,
            backoff_base_ms=options.backoff_base_ms,
            on_retry=self.on_retry,
            sleep=self._sleep,
        )

    async def get_json(
        self,
        url: str,
        options: Optional[RequestOptions] = None,
        **overrides,
    ) -> Any:
        """GET url and decode the body as JSON (None for 204 No Content)"""
        overrides["method"] = "GET"
        response = await self.fetch_retry(url, options, **overrides)
        return _decode_json(response, url)

    async def post_json(
        self,
        url: str,
        body: Any,
        options: Optional[RequestOptions] = None,
        **overrides,
    ) -> Any:
        """POST body serialized as JSON and decode the JSON reply"""
        options = (options or RequestOptions()).with_overrides(**overrides)

        headers = dict(options.headers)
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = JSON_CONTENT_TYPE

        response = await self.fetch_retry(
            url,
            options,
            method="POST",
            headers=headers,
            body=orjson.dumps(body),
        )
        return _decode_json(response, url)


def _validator_mismatch(
    cached_etag: str, sent: httpx.Headers, response: httpx.Response
) -> Optional[str]:
    """Why a 304 cannot be answered with the body cached under cached_etag, if it can't"""
    if_none_match = sent.get("If-None-Match")
    if if_none_match and if_none_match.strip() != "*":
        candidates = {tag.strip() for tag in if_none_match.split(",")}
        if cached_etag not in candidates:
            return f"cached etag {cached_etag} was not among the validators sent ({if_none_match})"

    confirmed = response.headers.get("ETag")
    if confirmed and confirmed != cached_etag:
        return f"server confirmed etag {confirmed}, cached etag is {cached_etag}"

    return None


def _decode_json(response: httpx.Response, url: str) -> Any:
    if response.status_code == NO_CONTENT_STATUS:
        return None

    try:
        return orjson.loads(response.content)
    except orjson.JSONDecodeError as e:
        logger.error(f"❌ INVALID JSON RESPONSE from {url}: {e}")
        raise JsonParseError(
            f"Invalid JSON from {url}: {e}", status=response.status_code, url=url
        ) from e
