from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from .models import Detection, Species

TIME_WINDOW_SEPARATOR = "–"


@dataclass(frozen=True)
class SpeciesSummary:
    species: Species
    count: int
    time_window: str
    station_names: str
    primary_station_id: str
    average_confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "species": self.species.to_dict(),
            "count": self.count,
            "time_window": self.time_window,
            "station_names": self.station_names,
            "primary_station_id": self.primary_station_id,
            "average_confidence": self.average_confidence,
        }


def format_clock_time(moment: datetime, tz: Optional[tzinfo] = None) -> str:
    """24-hour ``HH:MM`` in ``tz`` (system local time when omitted)."""
    return moment.astimezone(tz).strftime("%H:%M")


def format_time_window(timestamps: List[datetime], tz: Optional[tzinfo] = None) -> str:
    if not timestamps:
        return ""
    if len(timestamps) == 1:
        return format_clock_time(timestamps[0], tz)
    start = format_clock_time(min(timestamps), tz)
    end = format_clock_time(max(timestamps), tz)
    return f"{start}{TIME_WINDOW_SEPARATOR}{end}"


def summarize_species(
    detections: Iterable[Detection],
    tz: Optional[tzinfo] = None,
) -> List[SpeciesSummary]:
    """
    Roll a detection batch up into one row per species, most detected first.

    Station names and ids keep the order they were first seen in, so the
    primary station is the first station that reported the species.
    """
    groups: Dict[str, List[Detection]] = {}
    for detection in detections:
        groups.setdefault(detection.species.id, []).append(detection)

    summaries: List[SpeciesSummary] = []
    for items in groups.values():
        station_names: Dict[str, None] = {}
        station_ids: Dict[str, None] = {}
        for detection in items:
            if detection.station is not None:
                station_names.setdefault(detection.station.name, None)
                station_ids.setdefault(detection.station.id, None)

        summaries.append(
            SpeciesSummary(
                species=items[0].species,
                count=len(items),
                time_window=format_time_window([d.timestamp for d in items], tz),
                station_names=", ".join(station_names),
                primary_station_id=next(iter(station_ids), ""),
                average_confidence=sum(d.confidence for d in items) / len(items),
            )
        )

    summaries.sort(key=lambda summary: summary.count, reverse=True)
    return summaries
