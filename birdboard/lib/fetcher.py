"""
Guarded read access to the BirdWeather API.

Every public method here returns a well-typed value and never raises:
upstream failures and rate-limit denials turn into cached (stale) data or an
empty result, and the distinction is kept on ``FetchResult.status``.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .cache import CacheEntry, CacheStatus, TimedCache, cache_key
from .clients import queries
from .config import HistoryConfig
from .models import (
    Counts,
    DailyCount,
    Detection,
    FetchResult,
    FetchStatus,
    SpeciesCount,
    Station,
    TimeOfDayCount,
    filter_since,
    parse_detections,
)
from .ratelimit import RateLimiter
from .utils.clock import Clock, utc_now

__all__ = [
    "DetectionFetcher",
    "Executor",
    "ROLLING_WINDOW",
    "normalize_station_ids",
]

Executor = Callable[[str, Dict[str, Any]], Dict[str, Any]]
T = TypeVar("T")

ROLLING_WINDOW = timedelta(hours=24)
_STATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

logger = logging.getLogger("birdboard.fetcher")


def normalize_station_ids(station_ids: Iterable[str]) -> Optional[List[str]]:
    """
    Sorted, deduplicated station ids, or None when any id is malformed.
    """
    cleaned = set()
    for raw in station_ids:
        value = str(raw).strip() if raw is not None else ""
        if not value or not _STATION_ID_PATTERN.match(value):
            return None
        cleaned.add(value)
    return sorted(cleaned)


def _period(start: datetime, end: datetime) -> Dict[str, str]:
    return {"from": start.date().isoformat(), "to": end.date().isoformat()}


class DetectionFetcher:
    def __init__(
        self,
        execute: Executor,
        *,
        rate_limiter: RateLimiter,
        today_cache: TimedCache[Sequence[Detection]],
        historical_cache: Optional[TimedCache[Sequence[Detection]]] = None,
        history: Optional[HistoryConfig] = None,
        clock: Optional[Clock] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._execute = execute
        self._rate_limiter = rate_limiter
        self._today_cache = today_cache
        self._historical_cache = historical_cache or TimedCache(timedelta(hours=6), clock=clock)
        self._history = history or HistoryConfig()
        self._clock = clock or utc_now
        self._sleep = sleep

    def get_today_detections(self, station_ids: Iterable[str]) -> FetchResult[List[Detection]]:
        ids = normalize_station_ids(station_ids)
        if not ids:
            logger.debug("Skipping detection fetch for empty or invalid station set")
            return FetchResult(FetchStatus.EMPTY, [])

        key = cache_key(ids, "today")
        now = self._clock()
        window_start = now - ROLLING_WINDOW

        entry = self._today_cache.get(key)
        if entry is not None and entry.is_fresh(now):
            return FetchResult(FetchStatus.OK, filter_since(entry.data, window_start), entry.cached_at)

        if not self._rate_limiter.check_rate_limit():
            logger.warning(
                "Rate limit exceeded, skipping API call",
                extra={"event": "rate_limited", "key": key, "cached": entry is not None},
            )
            return self._fallback(entry, window_start)

        self._rate_limiter.record_api_call()
        variables = {
            "stationIds": ids,
            "period": _period(window_start, now + timedelta(days=1)),
        }
        try:
            data = self._execute(queries.TODAY_DETECTIONS, variables)
            detections = parse_detections(self._nodes(data, "detections"))
        except Exception as exc:  # noqa: BLE001 - upstream failures degrade to cached data
            logger.warning("Error fetching today's detections: %s", exc, extra={"key": key})
            return self._fallback(entry, window_start)

        recent = filter_since(detections, window_start)
        stored = self._today_cache.put(key, tuple(recent))
        logger.info(
            "Fetched today's detections",
            extra={"key": key, "received": len(detections), "kept": len(recent)},
        )
        return FetchResult(FetchStatus.OK, recent, stored.cached_at)

    def get_historical_detections(self, station_ids: Iterable[str]) -> FetchResult[List[Detection]]:
        ids = normalize_station_ids(station_ids)
        if not ids:
            return FetchResult(FetchStatus.EMPTY, [])

        key = cache_key(ids, "historical")
        entry = self._historical_cache.get(key)
        now = self._clock()
        if entry is not None and entry.is_fresh(now):
            return FetchResult(FetchStatus.OK, list(entry.data), entry.cached_at)

        period = _period(now - self._history.lookback, now)
        collected: List[Detection] = []
        after: Optional[str] = None
        pages = 0
        has_next = True

        while has_next and len(collected) < self._history.max_items and pages < self._history.max_pages:
            pages += 1
            variables = {
                "stationIds": ids,
                "period": period,
                "first": self._history.page_size,
                "after": after,
            }
            try:
                data = self._execute(queries.HISTORICAL_DETECTIONS, variables)
                connection = data.get("detections") or {}
                nodes = parse_detections(connection.get("nodes") or [])
                page_info = connection.get("pageInfo") or {}
                if not isinstance(page_info, dict):
                    raise ValueError(f"Unexpected pageInfo: {page_info!r}")
                collected.extend(nodes)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Error fetching historical detections: %s",
                    exc,
                    extra={"key": key, "page": pages},
                )
                if pages == 1:
                    if entry is not None:
                        return FetchResult(FetchStatus.STALE, list(entry.data), entry.cached_at)
                    return FetchResult(FetchStatus.EMPTY, [])
                break

            after = page_info.get("endCursor")
            has_next = bool(page_info.get("hasNextPage")) and bool(after)
            if has_next:
                self._sleep(self._history.page_delay)

        logger.info(
            "Fetched %s historical detections across %s pages",
            len(collected),
            pages,
            extra={"key": key},
        )
        stored = self._historical_cache.put(key, tuple(collected))
        return FetchResult(FetchStatus.OK, collected, stored.cached_at)

    def search_stations(self, query: str, first: int = 20) -> List[Station]:
        text = (query or "").strip()
        if not text:
            return []
        data = self._safe_execute(
            "searching stations",
            queries.SEARCH_STATIONS,
            {"query": text, "first": first},
        )
        connection = data.get("stations") if data else None
        if not isinstance(connection, dict):
            return []
        return self._parse_all(Station.from_dict, connection.get("nodes") or [])

    def get_station_info(self, station_id: str) -> Optional[Station]:
        ids = normalize_station_ids([station_id])
        if not ids:
            return None
        data = self._safe_execute("fetching station info", queries.STATION_INFO, {"id": ids[0]})
        if not data or not isinstance(data.get("station"), dict):
            return None
        try:
            return Station.from_dict(data["station"])
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Invalid station payload for %s: %s", station_id, exc)
            return None

    def get_top_species(self, station_ids: Iterable[str], limit: int = 10) -> List[SpeciesCount]:
        ids = normalize_station_ids(station_ids)
        if not ids:
            return []
        variables = {"stationIds": ids, "period": self._today_period(), "limit": limit}
        data = self._safe_execute("fetching top species", queries.TOP_SPECIES, variables)
        if data is None:
            return []
        return self._parse_all(SpeciesCount.from_dict, data.get("topSpecies") or [])

    def get_time_of_day_counts(self, station_ids: Iterable[str]) -> List[TimeOfDayCount]:
        ids = normalize_station_ids(station_ids)
        if not ids:
            return []
        variables = {"stationIds": ids, "period": self._today_period()}
        data = self._safe_execute("fetching time-of-day counts", queries.TIME_OF_DAY_COUNTS, variables)
        if data is None:
            return []
        return self._parse_all(TimeOfDayCount.from_dict, data.get("timeOfDayDetectionCounts") or [])

    def get_daily_detection_counts(self, station_ids: Iterable[str]) -> List[DailyCount]:
        ids = normalize_station_ids(station_ids)
        if not ids:
            return []
        now = self._clock()
        variables = {"stationIds": ids, "period": _period(now - timedelta(days=7), now)}
        data = self._safe_execute("fetching daily detection counts", queries.DAILY_DETECTION_COUNTS, variables)
        if data is None:
            return []
        return self._parse_all(DailyCount.from_dict, data.get("dailyDetectionCounts") or [])

    def get_counts(self, station_ids: Iterable[str]) -> Optional[Counts]:
        ids = normalize_station_ids(station_ids)
        if not ids:
            return None
        variables = {"stationIds": ids, "period": self._today_period()}
        data = self._safe_execute("fetching counts", queries.COUNTS, variables)
        if not data or not isinstance(data.get("counts"), dict):
            return None
        try:
            return Counts.from_dict(data["counts"])
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Invalid counts payload: %s", exc)
            return None

    def invalidate(self) -> None:
        """Drop cached detections and rate windows after the station set changes."""
        self._today_cache.invalidate_all()
        self._historical_cache.invalidate_all()
        self._rate_limiter.reset()
        logger.info("Detection caches invalidated")

    def cache_status(self) -> List[CacheStatus]:
        return self._today_cache.status() + self._historical_cache.status()

    def _today_period(self) -> Dict[str, str]:
        now = self._clock()
        return _period(now, now)

    def _fallback(
        self,
        entry: Optional[CacheEntry[Sequence[Detection]]],
        window_start: datetime,
    ) -> FetchResult[List[Detection]]:
        if entry is None:
            return FetchResult(FetchStatus.EMPTY, [])
        return FetchResult(FetchStatus.STALE, filter_since(entry.data, window_start), entry.cached_at)

    def _safe_execute(
        self,
        description: str,
        query: str,
        variables: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        try:
            return self._execute(query, variables)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error %s: %s", description, exc)
            return None

    @staticmethod
    def _nodes(data: Dict[str, Any], field: str) -> List[Dict[str, Any]]:
        connection = data.get(field)
        if not isinstance(connection, dict):
            raise ValueError(f"Response missing '{field}' connection")
        nodes = connection.get("nodes")
        return nodes if isinstance(nodes, list) else []

    @staticmethod
    def _parse_all(parser: Callable[[Dict[str, Any]], T], rows: Sequence[Any]) -> List[T]:
        parsed: List[T] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                parsed.append(parser(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping malformed row: %s", exc)
        return parsed
