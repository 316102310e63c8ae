from __future__ import annotations

from datetime import timedelta

import pytest

from birdboard.lib.config import AppConfig, BirdboardConfig, app_config
from birdboard.lib.utils.clock import parse_period, parse_timestamp


def test_app_config_reads_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        """
birdboard:
  poll_interval: 30
  cache:
    today_ttl: "2 minutes"
  rate_limit:
    max_calls_per_minute: 4
  highlights:
    policy: Historical
    common_names: ["Song Sparrow"]
  stations:
    - id: "42"
      name: Orchard
    - "77"
""",
        encoding="utf-8",
    )

    config = app_config(path).birdboard

    assert config.poll_interval == 30.0
    assert config.cache.today_ttl == timedelta(minutes=2)
    assert config.cache.historical_ttl == timedelta(hours=6)
    assert config.rate_limit.max_calls_per_minute == 4
    assert config.rate_limit.min_call_interval == 1.0
    assert config.highlights.policy == "historical"
    assert config.highlights.common_names == ["song sparrow"]
    assert [(s.station_id, s.name) for s in config.stations] == [("42", "Orchard"), ("77", "Station 77")]


def test_empty_document_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    config = app_config(path).birdboard

    assert config == BirdboardConfig()
    assert config.history.lookback == timedelta(days=730)
    assert config.highlights.max_results == 5


@pytest.mark.parametrize(
    "data",
    [
        {"birdboard": {"rate_limit": {"max_calls_per_minute": 0}}},
        {"birdboard": {"rate_limit": {"min_call_interval": -1}}},
        {"birdboard": {"highlights": {"min_confidence": 1.5}}},
        {"birdboard": {"history": {"page_size": 0}}},
        {"birdboard": {"history": {"max_pages": 0}}},
        {"birdboard": {"history": {"max_items": -5}}},
        {"birdboard": {"history": {"lookback": "0 days"}}},
        {"birdboard": {"history": {"page_delay": -1}}},
        {"birdboard": {"highlights": {"policy": "magic"}}},
        {"birdboard": {"cache": {"today_ttl": "soon"}}},
        {"birdboard": {"stations": [{"name": "No id"}]}},
        {"birdboard": {"stations": "42"}},
        {"birdboard": ["not", "a", "mapping"]},
    ],
)
def test_invalid_configuration_is_rejected(data):
    with pytest.raises(ValueError):
        AppConfig.from_dict(data)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("30 seconds", timedelta(seconds=30)),
        ("5 minutes", timedelta(minutes=5)),
        ("1 hour", timedelta(hours=1)),
        ("2 weeks", timedelta(days=14)),
        ("2 years", timedelta(days=730)),
    ],
)
def test_parse_period(text, expected):
    assert parse_period(text) == expected


def test_parse_timestamp_normalizes_to_utc():
    assert parse_timestamp("2025-05-14T05:00:00-07:00") == parse_timestamp("2025-05-14T12:00:00Z")
    assert parse_timestamp("2025-05-14T12:00:00").tzinfo is not None
