"""Bounded retry with exponential backoff for transient store failures."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from personsync.domain.errors import StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """How often a single store operation is attempted before giving up.

    ``total`` counts retries, so an operation runs at most ``total + 1`` times.
    """

    total: int = 3
    backoff_factor: float = 0.1
    max_backoff_wait: float = 5.0
    backoff_jitter: float = 0.5

    def backoff(self, attempt: int) -> float:
        """Return the wait before retry number ``attempt`` (1-based)."""

        wait = self.backoff_factor * (2 ** (attempt - 1))
        if self.backoff_jitter:
            wait += random.uniform(0, self.backoff_jitter * self.backoff_factor)  # noqa: S311
        return min(wait, self.max_backoff_wait)


NO_RETRY = RetryPolicy(total=0)


def call_with_retry[T](
    func: Callable[[], T],
    *,
    policy: RetryPolicy,
    operation: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``func``, retrying ``StoreUnavailableError`` according to ``policy``."""

    attempt = 0
    while True:
        try:
            return func()
        except StoreUnavailableError as exc:
            attempt += 1
            if attempt > policy.total:
                log.warning("%s failed after %s attempts: %s", operation, attempt, exc)
                raise
            wait = policy.backoff(attempt)
            log.info(
                "%s hit a transient store failure (%s); retry %s/%s in %.2fs",
                operation,
                exc,
                attempt,
                policy.total,
                wait,
            )
            sleep(wait)
