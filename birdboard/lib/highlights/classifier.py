from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..models import Detection
from ..utils.clock import Clock, utc_now
from .models import HighlightContext, HighlightRecord, SpeciesGroup
from .policies import HighlightPolicy, build_species_history

logger = logging.getLogger("birdboard.highlights")


def group_by_species(detections: Iterable[Detection]) -> List[SpeciesGroup]:
    """Group detections by species id in first-seen order, each group earliest first."""
    buckets: Dict[str, List[Detection]] = {}
    for detection in detections:
        buckets.setdefault(detection.species.id, []).append(detection)
    return [
        SpeciesGroup(species_id=species_id, detections=sorted(items, key=lambda d: d.timestamp))
        for species_id, items in buckets.items()
    ]


class HighlightClassifier:
    def __init__(
        self,
        policy: HighlightPolicy,
        *,
        max_results: int = 5,
        clock: Optional[Clock] = None,
    ) -> None:
        self._policy = policy
        self._max_results = max(0, max_results)
        self._clock = clock or utc_now

    @property
    def policy(self) -> HighlightPolicy:
        return self._policy

    @property
    def requires_history(self) -> bool:
        return bool(getattr(self._policy, "requires_history", False))

    def classify(
        self,
        detections: Sequence[Detection],
        history: Optional[Sequence[Detection]] = None,
    ) -> List[HighlightRecord]:
        if not detections:
            return []

        now = self._clock()
        context = HighlightContext(now=now)
        if history:
            context.history = build_species_history(history, now)
            context.history_size = len(history)

        highlights: List[HighlightRecord] = []
        for group in group_by_species(detections):
            highlight_type = self._policy.evaluate(group, context)
            if highlight_type is None:
                continue
            highlights.append(
                HighlightRecord(
                    detection=group.representative,
                    highlight_type=highlight_type,
                    detection_count=group.count,
                    average_confidence=group.average_confidence,
                )
            )

        highlights.sort(key=lambda record: record.confidence, reverse=True)
        logger.debug(
            "Classified highlights",
            extra={"policy": self._policy.name, "species": len(highlights)},
        )
        return highlights[: self._max_results]
