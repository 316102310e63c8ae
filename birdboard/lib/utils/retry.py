from __future__ import annotations

import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


def _should_retry(
    exc: BaseException,
    predicate: Optional[Callable[[BaseException], bool]],
) -> bool:
    if predicate is not None:
        return bool(predicate(exc))
    # Client errors carry their own verdict; anything else is assumed transient.
    return bool(getattr(exc, "retryable", True))


def with_retry(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    logger=None,
    description: Optional[str] = None,
    jitter: float = 0.2,
    is_retryable: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``operation`` until it succeeds or ``attempts`` run out.

    Delays double from ``base_delay`` up to ``max_delay`` and are scaled by a
    random factor in ``1 ± jitter``. Only ``exceptions`` are caught; of those,
    ones judged non-retryable (``is_retryable`` or the exception's own
    ``retryable`` attribute) propagate immediately. ``sleep`` is injectable
    for tests.
    """
    label = description or getattr(operation, "__name__", "operation")
    limit = max(1, attempts)
    delay = base_delay
    attempt = 0

    while True:
        attempt += 1
        try:
            return operation()
        except exceptions as exc:  # type: ignore[misc]
            if attempt >= limit or not _should_retry(exc, is_retryable):
                raise
            if logger is not None:
                logger.warning("Retrying %s after %s (attempt %s/%s)", label, exc, attempt, limit)
            factor = random.uniform(1 - jitter, 1 + jitter) if jitter > 0 else 1.0
            sleep(delay * factor)
            delay = min(max_delay, delay * 2)
