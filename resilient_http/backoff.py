"""Exponential backoff with jitter"""

import random

from .config import JITTER_MAX_MS


def backoff_delay(attempt: int, base_ms: int, jitter_ms: int = JITTER_MAX_MS) -> int:
    """
    Delay before the retry that follows ``attempt``.

    Args:
        attempt: Zero-based number of the attempt that just failed
        base_ms: Delay after the first failure, before jitter
        jitter_ms: Upper bound of the random term added to the delay

    Returns:
        Delay in milliseconds: ``base_ms * 2**attempt`` plus 0..jitter_ms
    """
    return base_ms * (2 ** attempt) + random.randint(0, jitter_ms)
