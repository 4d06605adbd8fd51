import random

from resilient_http import backoff
from resilient_http.backoff import backoff_delay
from resilient_http.config import JITTER_MAX_MS


def test_delays_double_per_attempt_without_jitter(monkeypatch):
    monkeypatch.setattr(backoff.random, "randint", lambda a, b: 0)

    delays = [backoff_delay(attempt, 300) for attempt in range(3)]

    assert delays == [300, 600, 1200]


def test_jitter_stays_within_bounds():
    random.seed(1234)
    for attempt in range(4):
        floor = 300 * 2 ** attempt
        for _ in range(200):
            delay = backoff_delay(attempt, 300)
            assert floor <= delay <= floor + JITTER_MAX_MS


def test_custom_jitter_and_zero_base(monkeypatch):
    monkeypatch.setattr(backoff.random, "randint", lambda a, b: b)

    assert backoff_delay(2, 100, jitter_ms=7) == 407
    assert backoff_delay(5, 0, jitter_ms=0) == 0
