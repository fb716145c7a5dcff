"""Retry decorator with exponential backoff."""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable, Iterator, Optional, Tuple, Type

from jobmerge.log import get_logger

log = get_logger(__name__)


def backoff_delays(
    attempts: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
) -> Iterator[float]:
    """Sleep lengths between *attempts* tries: base, base*f, base*f^2 ... capped."""
    for n in range(max(attempts - 1, 0)):
        delay = min(base_delay * backoff_factor ** n, max_delay)
        yield delay * (0.5 + random.random()) if jitter else delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    retry_if: Optional[Callable[[BaseException], bool]] = None,
) -> Callable:
    """Decorator: retries the wrapped function with exponential backoff.

    Only exceptions listed in *retryable* trigger another attempt, and only
    when *retry_if* (if given) returns True for them. Anything else
    propagates on the first failure.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(max_attempts, base_delay, max_delay, backoff_factor, jitter)
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if retry_if is not None and not retry_if(exc):
                        raise
                    delay = next(delays, None)
                    if delay is None:
                        log.error("%s failed after %d attempts: %s", fn.__qualname__, attempt, exc)
                        raise
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
