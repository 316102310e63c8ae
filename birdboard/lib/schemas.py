from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class SpeciesPreview(BaseModel):
    id: str
    common_name: str
    scientific_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    color: Optional[str] = None


class StationPreview(BaseModel):
    id: str
    name: str
    location: Optional[str] = None


class DetectionItem(BaseModel):
    id: str
    timestamp: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    score: float
    probability: Optional[float] = None
    species: SpeciesPreview
    station: Optional[StationPreview] = None


class DetectionFeedResponse(BaseModel):
    status: str
    cached_at: Optional[str] = None
    detections: List[DetectionItem]


class HighlightItem(DetectionItem):
    highlight_type: str
    detection_count: int = Field(..., ge=1)
    average_confidence: Optional[float] = None


class HighlightsResponse(BaseModel):
    status: str
    cached_at: Optional[str] = None
    highlights: List[HighlightItem]


class SpeciesSummaryItem(BaseModel):
    species: SpeciesPreview
    count: int = Field(..., ge=1)
    time_window: str
    station_names: str
    primary_station_id: str
    average_confidence: float


class SpeciesSummaryResponse(BaseModel):
    status: str
    cached_at: Optional[str] = None
    species: List[SpeciesSummaryItem]


class TrackedStationItem(BaseModel):
    id: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    name: str = Field(..., min_length=1)
    location: Optional[str] = None


class StationWeatherItem(BaseModel):
    temperature_c: Optional[float] = None
    description: Optional[str] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = Field(None, description="Metres per second")
    wind_direction: Optional[float] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    observed_at: Optional[str] = None


class StationDetail(BaseModel):
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
    weather: Optional[StationWeatherItem] = None


class CountsResponse(BaseModel):
    detections: int = 0
    species: int = 0
    stations: int = 0
    birdnet: Optional[int] = None


class SpeciesCountItem(BaseModel):
    species: SpeciesPreview
    count: int
    average_probability: Optional[float] = None


class TimeOfDayItem(BaseModel):
    species: SpeciesPreview
    count: int
    bins: List[int] = Field(..., description="Detections per hour of day, index 0-23")


class DailyCountItem(BaseModel):
    date: str
    total: int
    counts: List[SpeciesCountItem]


class CacheStatusItem(BaseModel):
    key: str
    expires_in: float
    item_count: Optional[int] = None
