from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Sequence

from ...models import Detection
from ..models import HighlightContext, HighlightType, SpeciesGroup, SpeciesHistory
from .base import HighlightPolicy

logger = logging.getLogger("birdboard.highlights.historical")


def build_species_history(detections: Iterable[Detection], now: datetime) -> Dict[str, SpeciesHistory]:
    """Roll prior detections up per species, ignoring anything from today (UTC)."""
    today = now.date()
    history: Dict[str, SpeciesHistory] = {}
    for detection in detections:
        if detection.timestamp.date() == today:
            continue
        entry = history.get(detection.species.id)
        if entry is None:
            entry = SpeciesHistory(
                first_detection=detection.timestamp,
                last_detection=detection.timestamp,
            )
            history[detection.species.id] = entry
        entry.detection_count += 1
        entry.average_confidence += (
            detection.confidence - entry.average_confidence
        ) / entry.detection_count
        if detection.timestamp < entry.first_detection:
            entry.first_detection = detection.timestamp
        if detection.timestamp > entry.last_detection:
            entry.last_detection = detection.timestamp
    return history


class HistoricalPolicy(HighlightPolicy):
    """
    Compares today's species against a long detection history to find
    first-ever, first-of-season, unusual and rare sightings.
    """

    name = "historical"
    requires_history = True

    def __init__(
        self,
        *,
        common_names: Sequence[str] = (),
        min_confidence: float = 0.4,
        first_of_season_after: timedelta = timedelta(days=90),
        unusual_after: timedelta = timedelta(days=120),
        unusual_max_detections: int = 3,
        rare_confidence: float = 0.9,
        rare_max_detections: int = 10,
    ) -> None:
        self._common_names = tuple(name.strip().lower() for name in common_names if name.strip())
        self._min_confidence = min_confidence
        self._first_of_season_after = first_of_season_after
        self._unusual_after = unusual_after
        self._unusual_max_detections = unusual_max_detections
        self._rare_confidence = rare_confidence
        self._rare_max_detections = rare_max_detections

    def evaluate(self, group: SpeciesGroup, context: HighlightContext) -> Optional[HighlightType]:
        first_today = group.representative
        history = context.history.get(group.species_id)

        if history is None:
            if context.history_size > 0:
                return HighlightType.FIRST_EVER
            logger.debug("Skipping %s - no historical data available", first_today.species.common_name)
            return None

        absence = context.now - history.last_detection
        if absence >= self._first_of_season_after:
            return HighlightType.FIRST_OF_SEASON
        if first_today.confidence < self._min_confidence:
            return None
        if self.is_unusual(first_today, history, context.now):
            return HighlightType.UNUSUAL
        if (
            first_today.confidence > self._rare_confidence
            and history.detection_count < self._rare_max_detections
        ):
            return HighlightType.RARE_SIGHTING
        return None

    def is_common_name(self, common_name: str) -> bool:
        name = common_name.strip().lower()
        return any(common in name or name in common for common in self._common_names)

    def is_unusual(self, detection: Detection, history: SpeciesHistory, now: datetime) -> bool:
        if self.is_common_name(detection.species.common_name):
            return False
        if history.detection_count < self._unusual_max_detections:
            return True
        return history.last_detection < now - self._unusual_after
