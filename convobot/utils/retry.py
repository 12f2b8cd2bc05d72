"""Bounded retry with exponential backoff for storage calls.

Every persistence operation goes through :func:`with_retry`; only transient
backend failures are retried, the delay doubles after each failed attempt
and the final failure is surfaced as :class:`PersistenceError`.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Tuple, Type, TypeVar

from google.api_core import exceptions as gexc

from convobot.exceptions import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.InternalServerError,
    gexc.TooManyRequests,
    gexc.ResourceExhausted,
    gexc.Aborted,
    ConnectionError,
    TimeoutError,
)


def with_retry(
    fn: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> T:
    """Call ``fn`` up to ``attempts`` times, sleeping ``base_delay * 2**n`` between tries.

    Exceptions outside ``retry_on`` propagate unchanged on the first attempt.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as exc:
            if attempt == attempts:
                logger.error("%s failed after %d attempts: %s", description, attempts, exc)
                raise PersistenceError(f"{description} failed after {attempts} attempts") from exc
            logger.warning(
                "%s failed (attempt %d/%d): %s - retrying in %.1fs",
                description, attempt, attempts, exc, delay,
            )
            sleep(delay)
            delay *= 2
    raise AssertionError("unreachable")


@dataclass
class RetryPolicy:
    """Retry parameters bound once and applied uniformly by the stores."""

    attempts: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def run(self, description: str, fn: Callable[[], T]) -> T:
        try:
            return with_retry(
                fn,
                attempts=self.attempts,
                base_delay=self.base_delay,
                sleep=self.sleep,
                description=description,
            )
        except (PersistenceError, gexc.AlreadyExists):
            raise
        except Exception as exc:
            logger.error("%s failed: %s", description, exc, exc_info=True)
            raise PersistenceError(f"{description} failed: {exc}") from exc
