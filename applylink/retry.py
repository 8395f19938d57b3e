"""Retry with exponential backoff."""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable, Iterator, Tuple, Type

from applylink.log import get_logger

log = get_logger(__name__)


def backoff_delays(
    attempts: int,
    base_delay: float,
    max_delay: float,
    factor: float = 2.0,
    jitter: bool = True,
) -> Iterator[float]:
    """The pauses between ``attempts`` tries, each capped at ``max_delay``."""
    for n in range(attempts - 1):
        delay = min(base_delay * factor ** n, max_delay)
        if jitter:
            # +-25% so concurrent writers do not retry in lockstep
            delay *= random.uniform(0.75, 1.25)
        yield delay


def retry(
    *,
    max_attempts: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (OSError,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable:
    """Retry the wrapped call on ``retryable`` exceptions; others propagate at once."""

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(max_attempts, base_delay, max_delay, backoff_factor, jitter)
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    delay = next(delays, None)
                    if delay is None:
                        log.error("%s failed after %d attempt(s): %s", fn.__qualname__, attempt, exc)
                        raise
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.2fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
