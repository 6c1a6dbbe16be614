import logging
import time
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """Fails fast while a downstream channel keeps erroring.

    Failed calls are never queued for replay: notification delivery is
    best-effort and the only retry path is a caller-initiated resend.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        base_recovery_time: int = 10,
        max_recovery_time: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_count = 0
        self.failure_threshold = failure_threshold
        self.base_recovery_time = base_recovery_time
        self.max_recovery_time = max_recovery_time
        self.last_failure_time = 0.0
        self.state = "CLOSED"
        self._clock = clock

    @property
    def current_recovery_time(self) -> float:
        overflow = max(self.failure_count - self.failure_threshold, 0)
        return min(self.base_recovery_time * (2**overflow), self.max_recovery_time)

    def _open(self):
        self.state = "OPEN"
        self.last_failure_time = self._clock()
        logger.warning(
            "Circuit %s opened after %d failures", self.name, self.failure_count
        )

    def _half_open(self):
        self.state = "HALF_OPEN"
        logger.info("Circuit %s half-open: testing...", self.name)

    def _close(self):
        if self.state != "CLOSED":
            logger.info("Circuit %s closed: stable again.", self.name)
        self.state = "CLOSED"
        self.failure_count = 0

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.state == "OPEN":
            elapsed = self._clock() - self.last_failure_time
            cooldown = self.current_recovery_time
            if elapsed < cooldown:
                raise CircuitOpenError(
                    f"Circuit {self.name} open, retry after {cooldown - elapsed:.1f}s"
                )
            self._half_open()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            self.failure_count += 1
            logger.error(
                "Circuit %s call failed (%d): %s", self.name, self.failure_count, e
            )
            if self.state == "HALF_OPEN" or self.failure_count >= self.failure_threshold:
                self._open()
            raise

        self._close()
        return result


smtp_breaker = CircuitBreaker(name="smtp", failure_threshold=3, base_recovery_time=10)
