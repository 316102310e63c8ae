from __future__ import annotations

import logging
from typing import Optional

from ..models import HighlightContext, HighlightType, SpeciesGroup
from .base import HighlightPolicy

logger = logging.getLogger("birdboard.highlights.same_window")


class SameWindowPolicy(HighlightPolicy):
    """
    Judges species purely on the current batch: only a single, confidently
    identified detection stands out.
    """

    name = "simple"
    requires_history = False

    def __init__(
        self,
        *,
        min_confidence: float = 0.4,
        notable_confidence: float = 0.85,
        rare_confidence: float = 0.95,
        max_group_size: int = 5,
    ) -> None:
        self._min_confidence = min_confidence
        self._notable_confidence = notable_confidence
        self._rare_confidence = rare_confidence
        self._max_group_size = max_group_size

    def evaluate(self, group: SpeciesGroup, context: HighlightContext) -> Optional[HighlightType]:
        average = group.average_confidence
        if average < self._min_confidence:
            logger.debug("Skipping %s - likely misidentification", group.species_id)
            return None
        if group.count > self._max_group_size:
            return None
        if group.count == 1 and average > self._rare_confidence:
            return HighlightType.RARE_SIGHTING
        if group.count == 1 and average > self._notable_confidence:
            return HighlightType.NOTABLE
        return None
