"""Highlight classification: picks the noteworthy species out of a detection batch."""

from .classifier import HighlightClassifier, group_by_species
from .models import HighlightRecord, HighlightType, SpeciesGroup, SpeciesHistory
from .registry import build_classifier, build_fallback_classifier

__all__ = [
    "HighlightClassifier",
    "HighlightRecord",
    "HighlightType",
    "SpeciesGroup",
    "SpeciesHistory",
    "build_classifier",
    "build_fallback_classifier",
    "group_by_species",
]
