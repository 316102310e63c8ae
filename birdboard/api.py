from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from birdboard.lib.config import app_config
from birdboard.lib.dashboard import Dashboard
from birdboard.lib.logging_utils import setup_logging
from birdboard.lib.models import Species, Station, StationWeather
from birdboard.lib.schemas import (
    CacheStatusItem,
    CountsResponse,
    DailyCountItem,
    DetectionFeedResponse,
    DetectionItem,
    HighlightItem,
    HighlightsResponse,
    SpeciesCountItem,
    SpeciesPreview,
    SpeciesSummaryItem,
    SpeciesSummaryResponse,
    StationDetail,
    StationWeatherItem,
    TimeOfDayItem,
    TrackedStationItem,
)
from birdboard.lib.stations import TrackedStation


PROJECT_ROOT = Path(__file__).resolve().parent
_config_override = os.getenv("BIRDBOARD_CONFIG")
CONFIG_PATH = Path(_config_override) if _config_override else PROJECT_ROOT / "config.yaml"

logger = logging.getLogger("birdboard.api")

_ERROR_CODES = {
    HTTPStatus.BAD_REQUEST: "bad_request",
    HTTPStatus.NOT_FOUND: "not_found",
    HTTPStatus.CONFLICT: "conflict",
    HTTPStatus.UNPROCESSABLE_ENTITY: "validation_error",
    HTTPStatus.SERVICE_UNAVAILABLE: "service_unavailable",
}


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _error_envelope(status_code: int, detail: Any) -> Dict[str, Any]:
    """
    Wrap an error as ``{"error": {"code", "message", "details"?}}``.

    A string detail becomes the message. A dict may set ``code`` and
    ``message`` itself; its other keys are passed through as ``details``.
    A list is passed through whole. The message falls back to the HTTP
    reason phrase.
    """
    code = _ERROR_CODES.get(status_code, f"http_{status_code}")
    message: Optional[str] = None
    details: Optional[Any] = None

    if isinstance(detail, dict):
        fields = dict(detail)
        code = str(fields.pop("code", None) or code)
        message = fields.pop("message", None) or fields.pop("detail", None)
        fields.pop("detail", None)
        details = fields or None
    elif isinstance(detail, list):
        details = detail
    elif detail:
        message = str(detail)

    if message is None:
        try:
            message = HTTPStatus(status_code).phrase
        except ValueError:
            message = "Request failed"

    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


def _species_preview(species: Species) -> SpeciesPreview:
    return SpeciesPreview(**species.to_dict())


def _get_dashboard(request: Request) -> Dashboard:
    dashboard: Optional[Dashboard] = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard not initialized",
        )
    return dashboard


def create_app(dashboard: Optional[Dashboard] = None) -> FastAPI:
    """
    Build the API. When no dashboard is supplied one is created from the YAML
    configuration at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: Optional[Dashboard] = None
        if getattr(app.state, "dashboard", None) is None:
            setup_logging(PROJECT_ROOT)
            config = app_config(CONFIG_PATH)
            owned = Dashboard.from_config(config.birdboard)
            app.state.dashboard = owned
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.dashboard = None

    app = FastAPI(title="Birdboard API", version="0.1.0", lifespan=lifespan)
    app.state.dashboard = dashboard

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        payload = _error_envelope(exc.status_code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        detail = {
            "code": "validation_error",
            "message": "Request validation failed",
            "fields": _validation_errors(exc),
        }
        payload = _error_envelope(HTTPStatus.UNPROCESSABLE_ENTITY, detail)
        return JSONResponse(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, content=payload)

    @app.get("/health", summary="Simple readiness probe.")
    def health_check(request: Request) -> Dict[str, Any]:
        _get_dashboard(request)
        now = datetime.now(timezone.utc)
        return {"status": "ok", "timestamp": now.isoformat()}

    @app.get("/stations", response_model=List[TrackedStationItem])
    def list_stations(request: Request) -> List[TrackedStationItem]:
        dashboard = _get_dashboard(request)
        return [
            TrackedStationItem(id=station.id, name=station.name, location=station.location)
            for station in dashboard.stations.stations()
        ]

    @app.post(
        "/stations",
        response_model=TrackedStationItem,
        status_code=status.HTTP_201_CREATED,
        summary="Start tracking a station.",
    )
    def add_station(request: Request, payload: TrackedStationItem) -> TrackedStationItem:
        dashboard = _get_dashboard(request)
        added = dashboard.stations.add(
            TrackedStation(id=payload.id, name=payload.name, location=payload.location)
        )
        if not added:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station '{payload.id}' is already tracked",
            )
        return payload

    @app.delete(
        "/stations/{station_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Stop tracking a station.",
    )
    def remove_station(request: Request, station_id: str) -> Response:
        dashboard = _get_dashboard(request)
        if not dashboard.stations.remove(station_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Station '{station_id}' is not tracked",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/stations/search", response_model=List[StationDetail])
    def search_stations(
        request: Request,
        q: str = Query(..., description="Free-text station search."),
        first: int = Query(20, ge=1, le=100),
    ) -> List[StationDetail]:
        dashboard = _get_dashboard(request)
        stations = dashboard.fetcher.search_stations(q, first=first)
        return [_station_detail(station) for station in stations]

    @app.get("/stations/{station_id}", response_model=StationDetail)
    def get_station(request: Request, station_id: str) -> StationDetail:
        dashboard = _get_dashboard(request)
        station = dashboard.fetcher.get_station_info(station_id)
        if station is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Station '{station_id}' not found",
            )
        return _station_detail(station)

    @app.get("/detections/today", response_model=DetectionFeedResponse)
    def today_detections(request: Request) -> DetectionFeedResponse:
        dashboard = _get_dashboard(request)
        result = dashboard.today_detections()
        return DetectionFeedResponse(
            status=result.status.value,
            cached_at=_format_datetime(result.cached_at),
            detections=[DetectionItem(**detection.to_dict()) for detection in result.data],
        )

    @app.get("/highlights", response_model=HighlightsResponse)
    def highlights(request: Request) -> HighlightsResponse:
        dashboard = _get_dashboard(request)
        result = dashboard.today_detections()
        records = dashboard.highlights(result.data)
        return HighlightsResponse(
            status=result.status.value,
            cached_at=_format_datetime(result.cached_at),
            highlights=[HighlightItem(**record.to_dict()) for record in records],
        )

    @app.get("/species/summary", response_model=SpeciesSummaryResponse)
    def species_summary(request: Request) -> SpeciesSummaryResponse:
        dashboard = _get_dashboard(request)
        result = dashboard.today_detections()
        summaries = dashboard.species_summary(result.data)
        return SpeciesSummaryResponse(
            status=result.status.value,
            cached_at=_format_datetime(result.cached_at),
            species=[SpeciesSummaryItem(**summary.to_dict()) for summary in summaries],
        )

    @app.get("/species/top", response_model=List[SpeciesCountItem])
    def top_species(
        request: Request,
        limit: int = Query(10, ge=1, le=100),
    ) -> List[SpeciesCountItem]:
        dashboard = _get_dashboard(request)
        rows = dashboard.fetcher.get_top_species(dashboard.stations.ids(), limit=limit)
        return [
            SpeciesCountItem(
                species=_species_preview(row.species),
                count=row.count,
                average_probability=row.average_probability,
            )
            for row in rows
        ]

    @app.get("/counts", response_model=CountsResponse)
    def counts(request: Request) -> CountsResponse:
        dashboard = _get_dashboard(request)
        result = dashboard.fetcher.get_counts(dashboard.stations.ids())
        if result is None:
            return CountsResponse()
        return CountsResponse(
            detections=result.detections,
            species=result.species,
            stations=result.stations,
            birdnet=result.birdnet,
        )

    @app.get("/patterns/time-of-day", response_model=List[TimeOfDayItem])
    def time_of_day(request: Request) -> List[TimeOfDayItem]:
        dashboard = _get_dashboard(request)
        rows = dashboard.fetcher.get_time_of_day_counts(dashboard.stations.ids())
        return [
            TimeOfDayItem(
                species=_species_preview(row.species),
                count=row.count,
                bins=[row.bins.get(hour, 0) for hour in range(24)],
            )
            for row in rows
        ]

    @app.get("/patterns/daily", response_model=List[DailyCountItem])
    def daily_counts(request: Request) -> List[DailyCountItem]:
        dashboard = _get_dashboard(request)
        rows = dashboard.fetcher.get_daily_detection_counts(dashboard.stations.ids())
        return [
            DailyCountItem(
                date=row.date,
                total=row.total,
                counts=[
                    SpeciesCountItem(species=_species_preview(entry.species), count=entry.count)
                    for entry in row.counts
                ],
            )
            for row in rows
        ]

    @app.get("/cache", response_model=List[CacheStatusItem], summary="Inspect cached detection sets.")
    def cache_status(request: Request) -> List[CacheStatusItem]:
        dashboard = _get_dashboard(request)
        return [
            CacheStatusItem(key=row.key, expires_in=row.expires_in, item_count=row.item_count)
            for row in dashboard.fetcher.cache_status()
        ]

    return app


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def _station_detail(station: Station) -> StationDetail:
    return StationDetail(
        id=station.id,
        name=station.name,
        location=station.location,
        country=station.country,
        state=station.state,
        latitude=station.latitude,
        longitude=station.longitude,
        type=station.type,
        timezone=station.timezone,
        latest_detection_at=station.latest_detection_at,
        earliest_detection_at=station.earliest_detection_at,
        detection_count=station.detection_count,
        species_count=station.species_count,
        weather=_station_weather(station.weather),
    )


def _station_weather(weather: Optional[StationWeather]) -> Optional[StationWeatherItem]:
    if weather is None:
        return None
    return StationWeatherItem(
        temperature_c=weather.temperature_c,
        description=weather.description,
        humidity=weather.humidity,
        wind_speed=weather.wind_speed,
        wind_direction=weather.wind_direction,
        sunrise=weather.sunrise,
        sunset=weather.sunset,
        observed_at=weather.observed_at,
    )


app = create_app()
