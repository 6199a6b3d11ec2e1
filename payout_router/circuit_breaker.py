"""
Circuit breaker for outbound provider calls.

States:
- CLOSED: normal operation, calls pass through
- OPEN: too many consecutive failures, calls are rejected
- HALF_OPEN: recovery window elapsed, one trial call decides; other calls
  are rejected until it reports back or another recovery window passes
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit breaker {name} is OPEN. Service unavailable.")
        self.name = name


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._trial_started_at: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self._should_attempt_reset():
            self._state = CircuitState.HALF_OPEN
            logger.info(f"Circuit {self.name} entering HALF_OPEN state")
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def before_call(self) -> None:
        """Raise CircuitOpenError when the circuit rejects calls."""
        state = self.state
        if state == CircuitState.OPEN:
            raise CircuitOpenError(self.name)
        if state == CircuitState.HALF_OPEN:
            if self._trial_started_at is not None and not self._elapsed(self._trial_started_at):
                raise CircuitOpenError(self.name)
            self._trial_started_at = self._clock()

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            logger.info(f"Circuit {self.name} recovered - now CLOSED")
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._trial_started_at = None

    def record_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN:
            self._open()
            logger.warning(f"Circuit {self.name} failed in HALF_OPEN - returning to OPEN")
        elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
            self._open()
            logger.error(
                f"Circuit {self.name} OPENED after {self._failure_count} failures, "
                f"blocking calls for {self.recovery_timeout}s"
            )

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._trial_started_at = None

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_started_at = None

    def _should_attempt_reset(self) -> bool:
        if self._opened_at is None:
            return True
        return self._elapsed(self._opened_at)

    def _elapsed(self, since: float) -> bool:
        return self._clock() - since >= self.recovery_timeout
