from __future__ import annotations

from typing import Optional

from ..config import HighlightConfig
from ..utils.clock import Clock
from .classifier import HighlightClassifier
from .policies import HighlightPolicy, HistoricalPolicy, SameWindowPolicy


def build_policy(config: HighlightConfig) -> HighlightPolicy:
    if config.policy == "historical":
        return HistoricalPolicy(
            common_names=config.common_names,
            min_confidence=config.min_confidence,
            first_of_season_after=config.first_of_season_after,
            unusual_after=config.unusual_after,
            unusual_max_detections=config.unusual_max_detections,
            rare_confidence=config.rare_history_confidence,
            rare_max_detections=config.rare_max_detections,
        )
    if config.policy == "simple":
        return SameWindowPolicy(
            min_confidence=config.min_confidence,
            notable_confidence=config.notable_confidence,
            rare_confidence=config.rare_confidence,
            max_group_size=config.max_group_size,
        )
    raise ValueError(f"Unsupported highlight policy: {config.policy}")


def build_classifier(
    config: Optional[HighlightConfig] = None,
    *,
    clock: Optional[Clock] = None,
) -> HighlightClassifier:
    config = config or HighlightConfig()
    return HighlightClassifier(build_policy(config), max_results=config.max_results, clock=clock)


def build_fallback_classifier(
    config: Optional[HighlightConfig] = None,
    *,
    clock: Optional[Clock] = None,
) -> HighlightClassifier:
    """Same-window classifier used when history can't be fetched."""
    config = config or HighlightConfig()
    policy = SameWindowPolicy(
        min_confidence=config.min_confidence,
        notable_confidence=config.notable_confidence,
        rare_confidence=config.rare_confidence,
        max_group_size=config.max_group_size,
    )
    return HighlightClassifier(policy, max_results=config.max_results, clock=clock)
