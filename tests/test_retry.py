import httpx
import pytest

from resilient_http import backoff
from resilient_http.exceptions import (
    CacheProtocolError,
    CircuitOpenError,
    HttpStatusError,
    JsonParseError,
    NetworkError,
    RequestTimeoutError,
)
from resilient_http.models import ErrorType, RequestOptions
from resilient_http.retry import classify_error, is_retryable, retry_with_backoff


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _flaky(errors, result="ok"):
    """Async callable raising each error in turn, then returning result"""
    calls = {"count": 0}

    async def func():
        calls["count"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return func, calls


@pytest.mark.parametrize(
    "error, expected",
    [
        (RequestTimeoutError("u", 10), ErrorType.TRANSIENT),
        (HttpStatusError(500, "u"), ErrorType.TRANSIENT),
        (HttpStatusError(503, "u"), ErrorType.TRANSIENT),
        (HttpStatusError(429, "u"), ErrorType.RATE_LIMIT),
        (HttpStatusError(404, "u"), ErrorType.PERMANENT),
        (HttpStatusError(400, "u"), ErrorType.PERMANENT),
        (CircuitOpenError("u", 1.0), ErrorType.CIRCUIT_OPEN),
        (CacheProtocolError("u"), ErrorType.PERMANENT),
        (JsonParseError("bad", url="u"), ErrorType.PERMANENT),
        (NetworkError("down", url="u"), ErrorType.PERMANENT),
        (ValueError("boom"), ErrorType.PERMANENT),
    ],
)
def test_classify_error(error, expected):
    assert classify_error(error) is expected
    assert is_retryable(error) is (expected in {ErrorType.TRANSIENT, ErrorType.RATE_LIMIT})


def test_timeout_error_is_also_builtin_timeout():
    err = RequestTimeoutError("https://api.test/x", 250)

    assert isinstance(err, TimeoutError)
    assert err.url == "https://api.test/x"
    assert err.timeout_ms == 250
    assert "250ms" in str(err)


def test_status_error_exposes_retry_after():
    response = httpx.Response(429, headers={"Retry-After": "3"})
    err = HttpStatusError(429, "https://api.test/x", response=response)

    assert err.status == 429
    assert err.retry_after == 3.0
    assert HttpStatusError(429, "u", response=httpx.Response(429)).retry_after is None


@pytest.mark.asyncio
async def test_retries_until_success(monkeypatch):
    monkeypatch.setattr(backoff.random, "randint", lambda a, b: 0)
    sleep = RecordingSleep()
    func, calls = _flaky([HttpStatusError(502, "u"), RequestTimeoutError("u", 5)])

    result = await retry_with_backoff(func, max_retries=2, backoff_base_ms=100, sleep=sleep)

    assert result == "ok"
    assert calls["count"] == 3
    assert sleep.calls == [0.1, 0.2]


@pytest.mark.asyncio
async def test_exhausted_budget_reraises_last_error():
    sleep = RecordingSleep()
    last = HttpStatusError(503, "u")
    func, calls = _flaky([HttpStatusError(503, "u"), HttpStatusError(503, "u"), last])

    with pytest.raises(HttpStatusError) as exc_info:
        await retry_with_backoff(func, max_retries=2, backoff_base_ms=1, sleep=sleep)

    assert exc_info.value is last
    assert calls["count"] == 3
    assert len(sleep.calls) == 2


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately():
    sleep = RecordingSleep()
    func, calls = _flaky([HttpStatusError(404, "u")])

    with pytest.raises(HttpStatusError):
        await retry_with_backoff(func, max_retries=5, sleep=sleep)

    assert calls["count"] == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_circuit_open_is_never_retried():
    sleep = RecordingSleep()
    func, calls = _flaky([CircuitOpenError("u", 1.0)])

    with pytest.raises(CircuitOpenError):
        await retry_with_backoff(func, max_retries=5, sleep=sleep)

    assert calls["count"] == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt():
    sleep = RecordingSleep()
    func, calls = _flaky([HttpStatusError(500, "u")])

    with pytest.raises(HttpStatusError):
        await retry_with_backoff(func, max_retries=0, sleep=sleep)

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_on_retry_callback_sees_each_failure():
    seen = []

    async def on_retry(attempt, error):
        seen.append((attempt, error.status))

    func, _ = _flaky([HttpStatusError(429, "u"), HttpStatusError(500, "u")])

    await retry_with_backoff(
        func, max_retries=3, backoff_base_ms=0, on_retry=on_retry, sleep=RecordingSleep()
    )

    assert seen == [(0, 429), (1, 500)]


def test_request_options_defaults_and_validation():
    options = RequestOptions(method="post")

    assert options.method == "POST"
    assert options.timeout_ms == 10000
    assert options.max_retries == 2
    assert options.backoff_base_ms == 300
    assert options.timeout == 10.0
    assert options.with_overrides(max_retries=0).max_retries == 0
    assert options.max_retries == 2, "Overrides must not mutate the original"

    with pytest.raises(ValueError):
        RequestOptions(timeout_ms=0)
    with pytest.raises(ValueError):
        RequestOptions(max_retries=-1)
    with pytest.raises(ValueError):
        RequestOptions(backoff_base_ms=-5)
