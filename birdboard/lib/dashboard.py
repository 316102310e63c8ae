from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, List, Optional, Sequence

from .cache import TimedCache
from .clients import BirdWeatherClient, build_birdweather_client
from .config import BirdboardConfig
from .fetcher import DetectionFetcher, Executor
from .highlights import HighlightClassifier, HighlightRecord, build_classifier, build_fallback_classifier
from .models import Detection, FetchResult, FetchStatus
from .ratelimit import RateLimiter
from .stations import StationRegistry, TrackedStation
from .summary import SpeciesSummary, summarize_species
from .utils.clock import Clock, utc_now

logger = logging.getLogger("birdboard.dashboard")


@dataclass(frozen=True)
class DashboardSnapshot:
    status: FetchStatus
    detections: List[Detection]
    highlights: List[HighlightRecord]
    summaries: List[SpeciesSummary]
    refreshed_at: datetime
    cached_at: Optional[datetime] = None


class Dashboard:
    """
    Owns the per-session state: tracked stations, caches, rate windows and
    the classifier. One instance per running dashboard.
    """

    def __init__(
        self,
        config: Optional[BirdboardConfig] = None,
        *,
        execute: Optional[Executor] = None,
        clock: Optional[Clock] = None,
        sleep: Callable[[float], None] = time.sleep,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self._config = config or BirdboardConfig()
        self._clock = clock or utc_now
        self._tz = tz
        self._client: Optional[BirdWeatherClient] = None
        if execute is None:
            self._client = build_birdweather_client(self._config.upstream)
            execute = self._client.execute

        self._rate_limiter = RateLimiter(
            max_calls_per_minute=self._config.rate_limit.max_calls_per_minute,
            min_call_interval=self._config.rate_limit.min_call_interval,
            clock=self._clock,
        )
        self._fetcher = DetectionFetcher(
            execute,
            rate_limiter=self._rate_limiter,
            today_cache=TimedCache(self._config.cache.today_ttl, clock=self._clock),
            historical_cache=TimedCache(self._config.cache.historical_ttl, clock=self._clock),
            history=self._config.history,
            clock=self._clock,
            sleep=sleep,
        )
        self._classifier: HighlightClassifier = build_classifier(self._config.highlights, clock=self._clock)
        self._fallback_classifier = build_fallback_classifier(self._config.highlights, clock=self._clock)
        self._stations = StationRegistry(
            (TrackedStation(id=entry.station_id, name=entry.name) for entry in self._config.stations),
            on_change=self._fetcher.invalidate,
        )

    @classmethod
    def from_config(cls, config: BirdboardConfig, **kwargs) -> "Dashboard":
        return cls(config, **kwargs)

    @property
    def config(self) -> BirdboardConfig:
        return self._config

    @property
    def stations(self) -> StationRegistry:
        return self._stations

    @property
    def fetcher(self) -> DetectionFetcher:
        return self._fetcher

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def today_detections(self) -> FetchResult[List[Detection]]:
        return self._fetcher.get_today_detections(self._stations.ids())

    def highlights(self, detections: Optional[Sequence[Detection]] = None) -> List[HighlightRecord]:
        if detections is None:
            detections = self.today_detections().data
        if not detections:
            return []
        if not self._classifier.requires_history:
            return self._classifier.classify(detections)

        history = self._fetcher.get_historical_detections(self._stations.ids())
        if history.is_empty:
            logger.warning("Historical detections unavailable, using same-window highlights")
            return self._fallback_classifier.classify(detections)
        return self._classifier.classify(detections, history.data)

    def species_summary(self, detections: Optional[Sequence[Detection]] = None) -> List[SpeciesSummary]:
        if detections is None:
            detections = self.today_detections().data
        return summarize_species(detections, self._tz)

    def refresh(self) -> DashboardSnapshot:
        result = self.today_detections()
        snapshot = DashboardSnapshot(
            status=result.status,
            detections=result.data,
            highlights=self.highlights(result.data),
            summaries=self.species_summary(result.data),
            refreshed_at=self._clock(),
            cached_at=result.cached_at,
        )
        logger.info(
            "Dashboard refreshed",
            extra={
                "status": snapshot.status.value,
                "detections": len(snapshot.detections),
                "highlights": len(snapshot.highlights),
                "species": len(snapshot.summaries),
            },
        )
        return snapshot
