from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger("birdboard.stations")


@dataclass(frozen=True)
class TrackedStation:
    id: str
    name: str
    location: Optional[str] = None


class StationRegistry:
    """
    Ordered, in-memory list of the stations a dashboard tracks.

    ``on_change`` fires after every add or remove that alters the set; the
    dashboard uses it to invalidate caches keyed by the station set.
    """

    def __init__(
        self,
        stations: Iterable[TrackedStation] = (),
        *,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._stations: Dict[str, TrackedStation] = {}
        for station in stations:
            self._stations.setdefault(station.id, station)
        self._on_change = on_change

    def add(self, station: TrackedStation) -> bool:
        if station.id in self._stations:
            return False
        self._stations[station.id] = station
        logger.info("Station added", extra={"station_id": station.id})
        self._notify()
        return True

    def remove(self, station_id: str) -> bool:
        if self._stations.pop(station_id, None) is None:
            return False
        logger.info("Station removed", extra={"station_id": station_id})
        self._notify()
        return True

    def stations(self) -> List[TrackedStation]:
        return list(self._stations.values())

    def ids(self) -> List[str]:
        return list(self._stations)

    def name_for(self, station_id: str) -> str:
        station = self._stations.get(station_id)
        return station.name if station else f"Station {station_id}"

    def __contains__(self, station_id: object) -> bool:
        return station_id in self._stations

    def __len__(self) -> int:
        return len(self._stations)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
