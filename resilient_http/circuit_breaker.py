"""Circuit breaker pattern implementation"""

import time
from typing import Callable, Optional

from loguru import logger

from .config import CIRCUIT_BREAKER_COOLDOWN_MS
from .exceptions import CircuitOpenError
from .models import CircuitState


class CircuitBreaker:
    """
    Circuit breaker that stops traffic to a failing backend.
    Opens on a server error, closes by itself once the cooldown elapses.

    There is no half-open probing: the first check after the cooldown closes
    the circuit and lets traffic through.
    """

    def __init__(
        self,
        cooldown: float = CIRCUIT_BREAKER_COOLDOWN_MS / 1000,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            cooldown: Seconds the circuit stays open after tripping
            name: Name for logging purposes
            clock: Monotonic time source in seconds
        """
        self.cooldown = cooldown
        self.name = name
        self.clock = clock
        self.open_until: Optional[float] = None

        logger.debug(f"Circuit breaker '{name}' initialized: cooldown={cooldown}s")

    @property
    def state(self) -> CircuitState:
        if self.open_until is None:
            return CircuitState.CLOSED

        if self.clock() >= self.open_until:
            logger.info(f"Circuit '{self.name}' closing (cooldown expired)")
            self.open_until = None
            return CircuitState.CLOSED

        return CircuitState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is CircuitState.OPEN

    def remaining(self) -> float:
        """Seconds until the circuit closes, 0.0 when already closed"""
        if self.state is CircuitState.CLOSED:
            return 0.0
        return max(0.0, self.open_until - self.clock())

    def check(self, url: Optional[str] = None) -> None:
        """Raise CircuitOpenError if requests are currently rejected"""
        if self.state is CircuitState.OPEN:
            raise CircuitOpenError(url, self.remaining(), name=self.name)

    def trip(self) -> bool:
        """
        Open the circuit for one cooldown window.

        Returns:
            True if this call opened the circuit, False if it was already open
        """
        if self.state is CircuitState.OPEN:
            return False

        self.open_until = self.clock() + self.cooldown
        logger.error(f"Circuit '{self.name}' OPENING for {self.cooldown:.1f}s")
        return True

    def reset(self) -> None:
        if self.open_until is not None:
            logger.info(f"Circuit '{self.name}' reset")
        self.open_until = None
