from __future__ import annotations

import random
import time
from typing import Callable, Iterable, Optional, Type, TypeVar

T = TypeVar("T")


def compute_backoff(attempt: int, base_delay: float, factor: float, jitter: float = 0.0) -> float:
    """Delay before retry number ``attempt`` (0-based): base * factor**attempt, plus optional jitter."""
    delay = base_delay * (factor ** attempt)
    if jitter:
        delay += random.uniform(0, jitter)
    return delay


def retry_with_backoff(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    base_delay: float = 0.5,
    factor: float = 2.0,
    jitter: float = 0.0,
    retry_exceptions: Iterable[Type[BaseException]] = (Exception,),
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` and retry up to ``retries`` extra times on matching exceptions.

    ``should_retry`` narrows ``retry_exceptions`` further (e.g. by HTTP status);
    anything it rejects is re-raised immediately. ``on_retry`` is invoked with
    (attempt, exc, delay) before each sleep.
    """
    exc_types = tuple(retry_exceptions)
    attempt = 0
    while True:
        try:
            return fn()
        except exc_types as exc:
            if attempt >= retries:
                raise
            if should_retry is not None and not should_retry(exc):
                raise
            delay = compute_backoff(attempt, base_delay, factor, jitter)
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            sleep(delay)
            attempt += 1
