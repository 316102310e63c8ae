from .base import HighlightPolicy
from .historical import HistoricalPolicy, build_species_history
from .same_window import SameWindowPolicy

__all__ = [
    "HighlightPolicy",
    "HistoricalPolicy",
    "SameWindowPolicy",
    "build_species_history",
]
