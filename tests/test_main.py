from __future__ import annotations

import logging
from datetime import timedelta, timezone

from birdboard.lib.config import BirdboardConfig, StationConfig
from birdboard.lib.dashboard import Dashboard
from birdboard.lib.logging_utils import ExtraFieldsFormatter
from birdboard.main import load_configuration, parse_args, render_snapshot, run_poll_loop

from conftest import NOW, detection_payload, detections_response


def _dashboard(executor, clock, stations=True) -> Dashboard:
    config = BirdboardConfig(
        stations=[StationConfig(station_id="st-1", name="Backyard")] if stations else []
    )
    return Dashboard(config, execute=executor, clock=clock, tz=timezone.utc)


def test_parse_args_collects_stations():
    args = parse_args(["--duration", "5", "--station", "1", "--station", "2"])

    assert args.duration == 5.0
    assert args.interval is None
    assert args.station == ["1", "2"]
    assert args.verbose is False


def test_missing_config_file_gives_defaults(tmp_path):
    config = load_configuration(tmp_path / "absent.yaml")
    assert config.birdboard == BirdboardConfig()


def test_render_snapshot_lists_highlights_and_species(executor, clock):
    executor.queue(
        detections_response(
            detection_payload("a", NOW - timedelta(hours=2), common_name="Varied Thrush", confidence=0.97),
        )
    )
    snapshot = _dashboard(executor, clock).refresh()

    lines = render_snapshot(snapshot)

    assert lines[0] == "[2025-05-14 12:00:00] 1 detections (ok)"
    assert "rare-sighting" in lines[2] and "Varied Thrush (0.97)" in lines[2]
    assert lines[3].strip() == "1x Varied Thrush 10:00 [Backyard]"


def test_poll_loop_stops_without_stations(executor, clock, capsys):
    run_poll_loop(_dashboard(executor, clock, stations=False), max_runtime=0, loop_interval=0)

    assert "No stations tracked" in capsys.readouterr().out
    assert executor.calls == []


def test_poll_loop_survives_failed_refresh(executor, clock, capsys, monkeypatch):
    dashboard = _dashboard(executor, clock)

    def boom():
        raise RuntimeError("boom")

    monkeypatch.setattr(dashboard, "refresh", boom)
    run_poll_loop(dashboard, max_runtime=0, loop_interval=0)

    out = capsys.readouterr().out
    assert "Refresh failed: boom" in out
    assert "Reached max runtime" in out


def test_formatter_appends_extra_fields():
    formatter = ExtraFieldsFormatter("%(levelname)s %(message)s")
    record = logging.makeLogRecord({"msg": "Fetched", "levelname": "INFO", "key": "today_1", "kept": 3})

    assert formatter.format(record) == "INFO Fetched | kept=3 key='today_1'"
