from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .utils.clock import parse_period


DEFAULT_COMMON_NAMES: Tuple[str, ...] = (
    "house sparrow",
    "eurasian collared-dove",
    "house finch",
    "american goldfinch",
    "chickadee",
    "cardinal",
    "blue jay",
    "robin",
    "crow",
    "raven",
    "pigeon",
    "starling",
    "mockingbird",
    "wren",
    "sparrow",
    "finch",
    "dove",
    "canada goose",
    "mallard",
    "woodpecker",
    "nuthatch",
    "titmouse",
)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


def _period(value: Any, default: timedelta) -> timedelta:
    if value in (None, ""):
        return default
    if isinstance(value, (int, float)):
        return timedelta(seconds=float(value))
    return parse_period(str(value))


def _fraction(value: Any, name: str) -> float:
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise ValueError(f"'{name}' must be between 0 and 1, got {number}")
    return number


@dataclass
class UpstreamConfig:
    endpoint: str = "https://app.birdweather.com/graphql"
    timeout: float = 10.0
    attempts: int = 2
    base_delay: float = 0.5
    user_agent: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpstreamConfig":
        defaults = cls()
        return cls(
            endpoint=str(data.get("endpoint") or defaults.endpoint),
            timeout=float(data.get("timeout", defaults.timeout)),
            attempts=int(data.get("attempts", defaults.attempts)),
            base_delay=float(data.get("base_delay", defaults.base_delay)),
            user_agent=data.get("user_agent") or None,
        )


@dataclass
class CacheConfig:
    today_ttl: timedelta = timedelta(minutes=5)
    historical_ttl: timedelta = timedelta(hours=6)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        defaults = cls()
        return cls(
            today_ttl=_period(data.get("today_ttl"), defaults.today_ttl),
            historical_ttl=_period(data.get("historical_ttl"), defaults.historical_ttl),
        )


@dataclass
class RateLimitConfig:
    max_calls_per_minute: int = 10
    min_call_interval: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateLimitConfig":
        defaults = cls()
        max_calls = int(data.get("max_calls_per_minute", defaults.max_calls_per_minute))
        if max_calls < 1:
            raise ValueError("rate_limit.max_calls_per_minute must be at least 1")
        interval = float(data.get("min_call_interval", defaults.min_call_interval))
        if interval < 0:
            raise ValueError("rate_limit.min_call_interval must not be negative")
        return cls(max_calls_per_minute=max_calls, min_call_interval=interval)


@dataclass
class HistoryConfig:
    lookback: timedelta = timedelta(days=730)
    page_size: int = 100
    max_pages: int = 50
    max_items: int = 5000
    page_delay: float = 0.15

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryConfig":
        defaults = cls()
        limits: Dict[str, int] = {}
        for name in ("page_size", "max_pages", "max_items"):
            value = int(data.get(name, getattr(defaults, name)))
            if value < 1:
                raise ValueError(f"history.{name} must be at least 1")
            limits[name] = value
        lookback = _period(data.get("lookback"), defaults.lookback)
        if lookback <= timedelta(0):
            raise ValueError("history.lookback must be positive")
        page_delay = float(data.get("page_delay", defaults.page_delay))
        if page_delay < 0:
            raise ValueError("history.page_delay must not be negative")
        return cls(lookback=lookback, page_delay=page_delay, **limits)


@dataclass
class HighlightConfig:
    policy: str = "simple"
    min_confidence: float = 0.4
    notable_confidence: float = 0.85
    rare_confidence: float = 0.95
    max_group_size: int = 5
    max_results: int = 5
    first_of_season_after: timedelta = timedelta(days=90)
    unusual_after: timedelta = timedelta(days=120)
    unusual_max_detections: int = 3
    rare_history_confidence: float = 0.9
    rare_max_detections: int = 10
    common_names: List[str] = field(default_factory=lambda: list(DEFAULT_COMMON_NAMES))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HighlightConfig":
        defaults = cls()
        policy = str(data.get("policy") or defaults.policy).strip().lower()
        if policy not in ("simple", "historical"):
            raise ValueError(f"Unsupported highlight policy: {policy}")
        names = data.get("common_names")
        if names is None:
            names = defaults.common_names
        elif not isinstance(names, list):
            raise ValueError("highlights.common_names must be a list")
        return cls(
            policy=policy,
            min_confidence=_fraction(data.get("min_confidence", defaults.min_confidence), "min_confidence"),
            notable_confidence=_fraction(
                data.get("notable_confidence", defaults.notable_confidence), "notable_confidence"
            ),
            rare_confidence=_fraction(data.get("rare_confidence", defaults.rare_confidence), "rare_confidence"),
            max_group_size=int(data.get("max_group_size", defaults.max_group_size)),
            max_results=int(data.get("max_results", defaults.max_results)),
            first_of_season_after=_period(data.get("first_of_season_after"), defaults.first_of_season_after),
            unusual_after=_period(data.get("unusual_after"), defaults.unusual_after),
            unusual_max_detections=int(data.get("unusual_max_detections", defaults.unusual_max_detections)),
            rare_history_confidence=_fraction(
                data.get("rare_history_confidence", defaults.rare_history_confidence),
                "rare_history_confidence",
            ),
            rare_max_detections=int(data.get("rare_max_detections", defaults.rare_max_detections)),
            common_names=[str(name).strip().lower() for name in names if str(name).strip()],
        )


@dataclass
class StationConfig:
    station_id: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StationConfig":
        station_id = data.get("id") or data.get("station_id")
        if not station_id:
            raise ValueError("Station configuration missing 'id'")
        return cls(station_id=str(station_id), name=str(data.get("name") or f"Station {station_id}"))


@dataclass
class BirdboardConfig:
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    highlights: HighlightConfig = field(default_factory=HighlightConfig)
    stations: List[StationConfig] = field(default_factory=list)
    poll_interval: float = 60.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BirdboardConfig":
        stations_raw = data.get("stations") or []
        if not isinstance(stations_raw, list):
            raise ValueError("Configuration 'stations' must be a list")
        return cls(
            upstream=UpstreamConfig.from_dict(_section(data, "upstream")),
            cache=CacheConfig.from_dict(_section(data, "cache")),
            rate_limit=RateLimitConfig.from_dict(_section(data, "rate_limit")),
            history=HistoryConfig.from_dict(_section(data, "history")),
            highlights=HighlightConfig.from_dict(_section(data, "highlights")),
            stations=[
                StationConfig.from_dict(entry if isinstance(entry, dict) else {"id": entry})
                for entry in stations_raw
            ],
            poll_interval=float(data.get("poll_interval", 60.0)),
        )


@dataclass
class AppConfig:
    birdboard: BirdboardConfig

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AppConfig":
        data = data or {}
        return cls(birdboard=BirdboardConfig.from_dict(_section(data, "birdboard")))


def app_config(file_path: str | Path) -> AppConfig:
    with open(file_path, "r", encoding="utf-8") as file:
        config_dict = yaml.safe_load(file)
    return AppConfig.from_dict(config_dict)
