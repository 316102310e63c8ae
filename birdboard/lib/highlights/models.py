from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models import Detection, Species


class HighlightType(str, Enum):
    FIRST_EVER = "first-ever"
    FIRST_OF_SEASON = "first-of-season"
    RARE_SIGHTING = "rare-sighting"
    UNUSUAL = "unusual"
    NOTABLE = "notable"


@dataclass(slots=True)
class SpeciesGroup:
    """All detections of one species within the batch, earliest first."""

    species_id: str
    detections: List[Detection]

    @property
    def representative(self) -> Detection:
        return self.detections[0]

    @property
    def count(self) -> int:
        return len(self.detections)

    @property
    def average_confidence(self) -> float:
        return sum(d.confidence for d in self.detections) / len(self.detections)


@dataclass(slots=True)
class SpeciesHistory:
    """Rollup of a species' detections prior to today."""

    first_detection: datetime
    last_detection: datetime
    detection_count: int = 0
    average_confidence: float = 0.0


@dataclass(slots=True)
class HighlightContext:
    """Data available to policies when judging a species group."""

    now: datetime
    history: Dict[str, SpeciesHistory] = field(default_factory=dict)
    history_size: int = 0


@dataclass(frozen=True)
class HighlightRecord:
    """A detection flagged for prominent display."""

    detection: Detection
    highlight_type: HighlightType
    detection_count: int = 1
    average_confidence: Optional[float] = None

    @property
    def species(self) -> Species:
        return self.detection.species

    @property
    def confidence(self) -> float:
        return self.detection.confidence

    @property
    def timestamp(self) -> datetime:
        return self.detection.timestamp

    def to_dict(self) -> Dict[str, Any]:
        payload = self.detection.to_dict()
        payload["highlight_type"] = self.highlight_type.value
        payload["detection_count"] = self.detection_count
        payload["average_confidence"] = self.average_confidence
        return payload
