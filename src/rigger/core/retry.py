"""Retry policy for failed scenarios."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from rigger.config.schema import RetryConfig

logger = logging.getLogger(__name__)


@dataclass
class RetryState:
    """Attempt counter for one scenario execution."""
    scenario_name: str
    max_retries: int
    attempts: int = 0

    def begin_attempt(self) -> int:
        self.attempts += 1
        return self.attempts

    @property
    def retries(self) -> int:
        """Retries performed so far (attempts after the first)."""
        return max(self.attempts - 1, 0)


class RetryPolicy:
    """Decides whether and when a failed scenario runs again.

    Retries continue while the number of retries already performed is below
    max_attempts, so max_attempts=2 means at most three executions and
    max_attempts=0 disables retries. Each retry blocks the worker for
    delay * backoff**(retry_number - 1) seconds, capped at max_delay.
    """

    def __init__(
        self,
        max_attempts: int = 2,
        delay: float = 1.0,
        backoff: float = 1.0,
        max_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.max_attempts = max_attempts
        self.delay = delay
        self.backoff = backoff
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            delay=config.delay,
            backoff=config.backoff,
            max_delay=config.max_delay,
            sleep=sleep,
        )

    def should_retry(self, attempt_count: int, max_attempts: Optional[int] = None) -> bool:
        """Return True if another attempt is allowed.

        Args:
            attempt_count: Retries already performed for this scenario
            max_attempts: Retry bound, defaults to the configured one
        """
        limit = self.max_attempts if max_attempts is None else max_attempts
        return attempt_count < limit

    def delay_before_retry(self, retry_number: int = 1) -> float:
        """Seconds to wait before the given retry (1-based)."""
        delay = self.delay * (self.backoff ** max(retry_number - 1, 0))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def wait(self, retry_number: int = 1) -> float:
        """Block the calling worker before a retry. Returns the delay used."""
        delay = self.delay_before_retry(retry_number)
        if delay > 0:
            logger.debug(f"Waiting {delay:.2f}s before retry {retry_number}")
            self._sleep(delay)
        return delay
