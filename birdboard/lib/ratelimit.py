from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .utils.clock import Clock, utc_now

logger = logging.getLogger("birdboard.ratelimit")

WINDOW = timedelta(seconds=60)
DEFAULT_KEY = "global"


class RateLimiter:
    """
    Admission gate for outbound API calls.

    A call may proceed when at least ``min_call_interval`` seconds have passed
    since the last recorded call and fewer than ``max_calls_per_minute`` calls
    were recorded in the trailing 60 seconds. Callers check first and record
    only when they actually go out to the network.
    """

    def __init__(
        self,
        *,
        max_calls_per_minute: int = 10,
        min_call_interval: float = 1.0,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_calls_per_minute < 1:
            raise ValueError("max_calls_per_minute must be at least 1")
        if min_call_interval < 0:
            raise ValueError("min_call_interval must not be negative")
        self._max_calls = max_calls_per_minute
        self._min_interval = timedelta(seconds=min_call_interval)
        self._clock = clock or utc_now
        self._calls: Dict[str, List[datetime]] = {}

    @property
    def max_calls_per_minute(self) -> int:
        return self._max_calls

    def check_rate_limit(self, key: str = DEFAULT_KEY) -> bool:
        now = self._clock()
        calls = self._calls.get(key)
        if calls and now - calls[-1] < self._min_interval:
            logger.debug("rate_limit.min_interval", extra={"key": key})
            return False

        self._purge(now)
        recent = len(self._calls.get(key, ()))
        if recent >= self._max_calls:
            logger.debug("rate_limit.ceiling", extra={"key": key, "calls": recent})
            return False
        return True

    def record_api_call(self, key: str = DEFAULT_KEY) -> None:
        self._calls.setdefault(key, []).append(self._clock())

    def calls_in_window(self, key: str = DEFAULT_KEY) -> int:
        self._purge(self._clock())
        return len(self._calls.get(key, ()))

    def reset(self) -> None:
        self._calls = {}

    def _purge(self, now: datetime) -> None:
        cutoff = now - WINDOW
        for key in list(self._calls):
            recent = [stamp for stamp in self._calls[key] if stamp > cutoff]
            if recent:
                self._calls[key] = recent
            else:
                del self._calls[key]
