from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from birdboard.lib.models import Detection


NOW = datetime(2025, 5, 14, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock; call it to read the current instant."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubExecutor:
    """Records GraphQL calls and replies with queued payloads or raises."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._responses: List[Any] = []
        self.default: Optional[Callable[[str, Dict[str, Any]], Dict[str, Any]]] = None

    def queue(self, *responses: Any) -> None:
        self._responses.extend(responses)

    def __call__(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((query, variables))
        if self._responses:
            response = self._responses.pop(0)
        elif self.default is not None:
            response = self.default(query, variables)
        else:
            raise RuntimeError("No stubbed response queued")
        if isinstance(response, BaseException):
            raise response
        return response


def detection_payload(
    detection_id: str,
    timestamp: datetime,
    *,
    species_id: str = "sp-1",
    common_name: str = "Varied Thrush",
    confidence: float = 0.9,
    station_id: Optional[str] = "st-1",
    station_name: str = "Backyard",
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": detection_id,
        "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
        "confidence": confidence,
        "probability": None,
        "score": confidence * 10,
        "species": {
            "id": species_id,
            "commonName": common_name,
            "scientificName": None,
            "thumbnailUrl": None,
            "color": None,
        },
        "station": None,
    }
    if station_id is not None:
        payload["station"] = {"id": station_id, "name": station_name, "location": None}
    return payload


def make_detection(detection_id: str, timestamp: datetime, **kwargs: Any) -> Detection:
    return Detection.from_dict(detection_payload(detection_id, timestamp, **kwargs))


def detections_response(*payloads: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "detections": {
            "nodes": list(payloads),
            "totalCount": len(payloads),
            "speciesCount": len({p["species"]["id"] for p in payloads}),
        }
    }


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def executor() -> StubExecutor:
    return StubExecutor()
