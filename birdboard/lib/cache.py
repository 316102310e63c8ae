from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Generic, Iterable, List, Optional, Sized, TypeVar

from .utils.clock import Clock, utc_now

T = TypeVar("T")


def cache_key(station_ids: Iterable[str], kind: Optional[str] = None) -> str:
    """Deterministic key for a station set; order and duplicates don't matter."""
    joined = "_".join(sorted(set(station_ids)))
    return f"{kind}_{joined}" if kind else joined


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    cached_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class CacheStatus:
    key: str
    expires_in: float
    item_count: Optional[int]


class TimedCache(Generic[T]):
    """
    In-memory cache with a fixed TTL per instance.

    Expired entries are kept until ``invalidate_all`` so callers can fall back
    to them when a refresh is throttled or fails.
    """

    def __init__(self, ttl: timedelta, *, clock: Optional[Clock] = None) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive")
        self._ttl = ttl
        self._clock = clock or utc_now
        self._entries: Dict[str, CacheEntry[T]] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, key: str) -> Optional[CacheEntry[T]]:
        return self._entries.get(key)

    def get_fresh(self, key: str) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            return entry
        return None

    def put(self, key: str, data: T, ttl: Optional[timedelta] = None) -> CacheEntry[T]:
        if ttl is None:
            ttl = self._ttl
        elif ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive")
        now = self._clock()
        entry = CacheEntry(data=data, cached_at=now, expires_at=now + ttl)
        self._entries[key] = entry
        return entry

    def invalidate_all(self) -> None:
        # Swap rather than clear so a concurrent reader never sees a partial map.
        self._entries = {}

    def status(self) -> List[CacheStatus]:
        now = self._clock()
        rows: List[CacheStatus] = []
        for key, entry in list(self._entries.items()):
            count = len(entry.data) if isinstance(entry.data, Sized) else None
            rows.append(
                CacheStatus(
                    key=key,
                    expires_in=(entry.expires_at - now).total_seconds(),
                    item_count=count,
                )
            )
        return rows

    def __len__(self) -> int:
        return len(self._entries)
