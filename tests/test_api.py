from __future__ import annotations

from datetime import timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from birdboard.api import _error_envelope, create_app
from birdboard.lib.clients import queries
from birdboard.lib.config import BirdboardConfig, StationConfig
from birdboard.lib.dashboard import Dashboard

from conftest import NOW, detection_payload, detections_response


STATION = {
    "id": "st-1",
    "name": "Backyard",
    "location": "Portland, OR",
    "country": "United States",
    "state": "Oregon",
    "type": "birdnetpi",
    "timezone": "America/Los_Angeles",
    "coords": {"lat": 45.5, "lon": -122.6},
    "counts": {"detections": 1200, "species": 48},
    "latestDetectionAt": "2025-05-14T11:58:00Z",
    "earliestDetectionAt": "2023-01-01T08:00:00Z",
    "weather": {
        "temp": 285.15,
        "description": "light rain",
        "humidity": 81,
        "windSpeed": 3.6,
        "windDir": 200,
        "sunrise": "2025-05-14T12:41:00Z",
        "sunset": "2025-05-15T03:37:00Z",
        "timestamp": "2025-05-14T11:50:00Z",
    },
}

SPECIES = {"id": "sp-1", "commonName": "Varied Thrush", "scientificName": "Ixoreus naevius"}


def _respond(query, variables):
    if query == queries.TODAY_DETECTIONS:
        return detections_response(
            detection_payload("a", NOW - timedelta(hours=3), confidence=0.97),
            detection_payload("b", NOW - timedelta(hours=1), species_id="sp-2", common_name="Bushtit", confidence=0.6),
            detection_payload("c", NOW - timedelta(minutes=10), species_id="sp-2", common_name="Bushtit", confidence=0.7),
        )
    if query == queries.STATION_INFO:
        return {"station": STATION if variables["id"] == "st-1" else None}
    if query == queries.SEARCH_STATIONS:
        return {"stations": {"nodes": [STATION]}}
    if query == queries.TOP_SPECIES:
        return {"topSpecies": [{"species": SPECIES, "count": 7, "averageProbability": 0.8}]}
    if query == queries.TIME_OF_DAY_COUNTS:
        return {
            "timeOfDayDetectionCounts": [
                {"species": SPECIES, "count": 3, "bins": [{"key": 6, "count": 2}, {"key": 7, "count": 1}]}
            ]
        }
    if query == queries.DAILY_DETECTION_COUNTS:
        return {
            "dailyDetectionCounts": [
                {"date": "2025-05-13", "total": 9, "counts": [{"species": SPECIES, "count": 9}]}
            ]
        }
    if query == queries.COUNTS:
        return {"counts": {"detections": 12, "species": 4, "stations": 1, "birdnet": 12}}
    raise AssertionError(f"unexpected query: {query[:40]}")


@pytest.fixture()
def dashboard(executor, clock):
    executor.default = _respond
    config = BirdboardConfig(stations=[StationConfig(station_id="st-1", name="Backyard")])
    return Dashboard(config, execute=executor, clock=clock, tz=timezone.utc)


@pytest.fixture()
def client(dashboard):
    with TestClient(create_app(dashboard)) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_dashboard_is_service_unavailable():
    response = TestClient(create_app()).get("/health")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "service_unavailable"


def test_today_detections(client):
    body = client.get("/detections/today").json()

    assert body["status"] == "ok"
    assert body["cached_at"] == NOW.isoformat()
    assert [d["id"] for d in body["detections"]] == ["a", "b", "c"]
    assert body["detections"][0]["species"]["common_name"] == "Varied Thrush"
    assert body["detections"][0]["station"]["name"] == "Backyard"


def test_highlights(client):
    body = client.get("/highlights").json()

    (item,) = body["highlights"]
    assert item["id"] == "a"
    assert item["highlight_type"] == "rare-sighting"
    assert item["detection_count"] == 1


def test_species_summary(client):
    body = client.get("/species/summary").json()

    assert [(row["species"]["id"], row["count"]) for row in body["species"]] == [("sp-2", 2), ("sp-1", 1)]
    assert body["species"][0]["time_window"] == "11:00–11:50"


def test_station_tracking_round_trip(client, executor):
    created = client.post("/stations", json={"id": "st-2", "name": "Orchard"})
    assert created.status_code == 201

    duplicate = client.post("/stations", json={"id": "st-2", "name": "Orchard"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "conflict"

    assert [s["id"] for s in client.get("/stations").json()] == ["st-1", "st-2"]

    assert client.delete("/stations/st-2").status_code == 204
    missing = client.delete("/stations/st-2")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"


def test_invalid_station_id_is_validation_error(client):
    response = client.post("/stations", json={"id": "bad id", "name": "Nope"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert error["details"]["fields"]


def test_station_lookup(client):
    body = client.get("/stations/st-1").json()

    assert body["name"] == "Backyard"
    assert body["latitude"] == 45.5
    assert body["detection_count"] == 1200
    assert body["weather"]["temperature_c"] == 12.0
    assert body["weather"]["description"] == "light rain"
    assert body["weather"]["humidity"] == 81
    assert body["weather"]["wind_speed"] == 3.6

    assert client.get("/stations/st-404").status_code == 404


def test_station_search(client):
    body = client.get("/stations/search", params={"q": "portland"}).json()
    assert [row["id"] for row in body] == ["st-1"]


def test_aggregate_endpoints(client):
    top = client.get("/species/top").json()
    assert top == [
        {
            "species": {
                "id": "sp-1",
                "common_name": "Varied Thrush",
                "scientific_name": "Ixoreus naevius",
                "thumbnail_url": None,
                "color": None,
            },
            "count": 7,
            "average_probability": 0.8,
        }
    ]

    (row,) = client.get("/patterns/time-of-day").json()
    assert len(row["bins"]) == 24
    assert row["bins"][6] == 2 and row["bins"][7] == 1

    (day,) = client.get("/patterns/daily").json()
    assert day["total"] == 9
    assert day["counts"][0]["count"] == 9

    assert client.get("/counts").json() == {"detections": 12, "species": 4, "stations": 1, "birdnet": 12}


def test_cache_status(client):
    client.get("/detections/today")

    (row,) = client.get("/cache").json()

    assert row["key"] == "today_st-1"
    assert row["expires_in"] == 300
    assert row["item_count"] == 3


def test_error_envelope_shapes():
    assert _error_envelope(404, "Station 'x' not found") == {
        "error": {"code": "not_found", "message": "Station 'x' not found"}
    }
    assert _error_envelope(409, None) == {"error": {"code": "conflict", "message": "Conflict"}}
    assert _error_envelope(599, [{"loc": ["q"]}]) == {
        "error": {"code": "http_599", "message": "Request failed", "details": [{"loc": ["q"]}]}
    }
    assert _error_envelope(400, {"code": "bad_period", "detail": "from after to", "from": "x"}) == {
        "error": {"code": "bad_period", "message": "from after to", "details": {"from": "x"}}
    }
