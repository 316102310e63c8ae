from __future__ import annotations

from typing import Optional, Protocol

from ..models import HighlightContext, HighlightType, SpeciesGroup


class HighlightPolicy(Protocol):
    name: str
    requires_history: bool

    def evaluate(self, group: SpeciesGroup, context: HighlightContext) -> Optional[HighlightType]:
        ...
