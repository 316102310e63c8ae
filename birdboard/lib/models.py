from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from .utils.clock import parse_timestamp

T = TypeVar("T")


def _optional_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


def _optional_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    return float(value)


@dataclass(frozen=True)
class Species:
    id: str
    common_name: str
    scientific_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Species":
        species_id = data.get("id")
        if species_id in (None, ""):
            raise ValueError(f"Species payload missing 'id': {data!r}")
        return cls(
            id=str(species_id),
            common_name=str(data.get("commonName") or ""),
            scientific_name=_optional_str(data.get("scientificName")),
            thumbnail_url=_optional_str(data.get("thumbnailUrl")),
            color=_optional_str(data.get("color")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "common_name": self.common_name,
            "scientific_name": self.scientific_name,
            "thumbnail_url": self.thumbnail_url,
            "color": self.color,
        }


@dataclass(frozen=True)
class StationRef:
    """Station as embedded in a detection payload."""

    id: str
    name: str
    location: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StationRef":
        station_id = data.get("id")
        if station_id in (None, ""):
            raise ValueError(f"Station payload missing 'id': {data!r}")
        return cls(
            id=str(station_id),
            name=str(data.get("name") or f"Station {station_id}"),
            location=_optional_str(data.get("location")),
        )


@dataclass(frozen=True)
class Detection:
    id: str
    timestamp: datetime
    confidence: float
    score: float
    species: Species
    station: Optional[StationRef] = None
    probability: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Detection":
        species = data.get("species")
        if not isinstance(species, dict):
            raise ValueError(f"Detection {data.get('id')!r} has no species")
        station = data.get("station")
        return cls(
            id=str(data["id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            confidence=float(data.get("confidence") or 0.0),
            score=float(data.get("score") or 0.0),
            species=Species.from_dict(species),
            station=StationRef.from_dict(station) if isinstance(station, dict) else None,
            probability=_optional_float(data.get("probability")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "confidence": self.confidence,
            "score": self.score,
            "probability": self.probability,
            "species": self.species.to_dict(),
            "station": (
                {
                    "id": self.station.id,
                    "name": self.station.name,
                    "location": self.station.location,
                }
                if self.station
                else None
            ),
        }


def parse_detections(nodes: Sequence[Dict[str, Any]]) -> List[Detection]:
    return [Detection.from_dict(node) for node in nodes if isinstance(node, dict)]


def filter_since(detections: Sequence[Detection], window_start: datetime) -> List[Detection]:
    """Keep detections at or after ``window_start``; order is preserved."""
    return [detection for detection in detections if detection.timestamp >= window_start]


@dataclass(frozen=True)
class StationWeather:
    """Latest weather reported for a station; temperatures arrive in kelvin."""

    temperature_k: Optional[float] = None
    description: Optional[str] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    observed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StationWeather":
        return cls(
            temperature_k=_optional_float(data.get("temp")),
            description=_optional_str(data.get("description")),
            humidity=_optional_float(data.get("humidity")),
            wind_speed=_optional_float(data.get("windSpeed")),
            wind_direction=_optional_float(data.get("windDir")),
            sunrise=_optional_str(data.get("sunrise")),
            sunset=_optional_str(data.get("sunset")),
            observed_at=_optional_str(data.get("timestamp")),
        )

    @property
    def temperature_c(self) -> Optional[float]:
        if self.temperature_k is None:
            return None
        return round(self.temperature_k - 273.15, 1)


def _station_weather(value: Any) -> Optional[StationWeather]:
    if not isinstance(value, dict) or not value:
        return None
    try:
        return StationWeather.from_dict(value)
    except (TypeError, ValueError):
        # An unreadable reading drops the weather only.
        return None


@dataclass(frozen=True)
class Station:
    """Full station record returned by station lookups and searches."""

    id: str
    name: str
    location: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    type: Optional[str] = None
    timezone: Optional[str] = None
    latest_detection_at: Optional[str] = None
    earliest_detection_at: Optional[str] = None
    detection_count: Optional[int] = None
    species_count: Optional[int] = None
    weather: Optional[StationWeather] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Station":
        station_id = data.get("id")
        if station_id in (None, ""):
            raise ValueError(f"Station payload missing 'id': {data!r}")
        coords = data.get("coords") if isinstance(data.get("coords"), dict) else {}
        counts = data.get("counts") if isinstance(data.get("counts"), dict) else {}
        return cls(
            id=str(station_id),
            name=str(data.get("name") or f"Station {station_id}"),
            location=_optional_str(data.get("location")),
            country=_optional_str(data.get("country")),
            state=_optional_str(data.get("state")),
            latitude=_optional_float(coords.get("lat")),
            longitude=_optional_float(coords.get("lon")),
            type=_optional_str(data.get("type")),
            timezone=_optional_str(data.get("timezone")),
            latest_detection_at=_optional_str(data.get("latestDetectionAt")),
            earliest_detection_at=_optional_str(data.get("earliestDetectionAt")),
            detection_count=int(counts["detections"]) if counts.get("detections") is not None else None,
            species_count=int(counts["species"]) if counts.get("species") is not None else None,
            weather=_station_weather(data.get("weather")),
        )


@dataclass(frozen=True)
class SpeciesCount:
    species: Species
    count: int
    average_probability: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpeciesCount":
        return cls(
            species=Species.from_dict(data.get("species") or {"id": data.get("speciesId")}),
            count=int(data.get("count") or 0),
            average_probability=_optional_float(data.get("averageProbability")),
        )


@dataclass(frozen=True)
class TimeOfDayCount:
    species: Species
    count: int
    bins: Dict[int, int]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeOfDayCount":
        bins = {
            int(entry["key"]): int(entry.get("count") or 0)
            for entry in data.get("bins") or []
            if isinstance(entry, dict) and entry.get("key") is not None
        }
        return cls(
            species=Species.from_dict(data.get("species") or {"id": data.get("speciesId")}),
            count=int(data.get("count") or 0),
            bins=bins,
        )


@dataclass(frozen=True)
class DailyCount:
    date: str
    total: int
    counts: List[SpeciesCount]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyCount":
        return cls(
            date=str(data["date"]),
            total=int(data.get("total") or 0),
            counts=[SpeciesCount.from_dict(entry) for entry in data.get("counts") or []],
        )


@dataclass(frozen=True)
class Counts:
    detections: int
    species: int
    stations: int
    birdnet: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Counts":
        birdnet = data.get("birdnet")
        return cls(
            detections=int(data.get("detections") or 0),
            species=int(data.get("species") or 0),
            stations=int(data.get("stations") or 0),
            birdnet=int(birdnet) if birdnet is not None else None,
        )


class FetchStatus(str, Enum):
    OK = "ok"
    STALE = "stale"
    EMPTY = "empty"


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of a guarded upstream read: fresh data, cached fallback, or nothing."""

    status: FetchStatus
    data: T
    cached_at: Optional[datetime] = None

    @property
    def is_stale(self) -> bool:
        return self.status is FetchStatus.STALE

    @property
    def is_empty(self) -> bool:
        return self.status is FetchStatus.EMPTY
