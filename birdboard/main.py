from __future__ import annotations

import argparse
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from birdboard.lib.config import AppConfig, app_config
from birdboard.lib.dashboard import Dashboard, DashboardSnapshot
from birdboard.lib.logging_utils import setup_logging
from birdboard.lib.models import FetchStatus
from birdboard.lib.stations import TrackedStation


PROJECT_ROOT = Path(__file__).resolve().parent
_config_override = os.getenv("BIRDBOARD_CONFIG")
CONFIG_PATH = Path(_config_override) if _config_override else PROJECT_ROOT / "config.yaml"

logger = logging.getLogger("birdboard.main")


def load_configuration(path: Optional[Path] = None) -> AppConfig:
    config_path = path or CONFIG_PATH
    if not config_path.exists():
        return AppConfig.from_dict({})
    return app_config(config_path)


def render_snapshot(snapshot: DashboardSnapshot) -> List[str]:
    """Plain-text lines describing one refresh, newest data first."""
    stamp = snapshot.refreshed_at.strftime("%Y-%m-%d %H:%M:%S")
    lines = [f"[{stamp}] {len(snapshot.detections)} detections ({snapshot.status.value})"]
    if snapshot.status is FetchStatus.STALE and snapshot.cached_at is not None:
        lines.append(f"    Showing cached data from {snapshot.cached_at.strftime('%H:%M:%S')}")
    if snapshot.highlights:
        lines.append("    Highlights:")
        for record in snapshot.highlights:
            lines.append(
                f"      {record.highlight_type.value:<16} {record.species.common_name} "
                f"({record.confidence:.2f})"
            )
    else:
        lines.append("    No highlights.")
    for summary in snapshot.summaries[:10]:
        lines.append(
            f"    {summary.count:>4}x {summary.species.common_name} "
            f"{summary.time_window} [{summary.station_names}]"
        )
    return lines


def run_poll_loop(
    dashboard: Dashboard,
    max_runtime: Optional[float] = None,
    loop_interval: float = 60.0,
) -> None:
    """
    Refresh the dashboard indefinitely, printing highlights and species rollups.

    When max_runtime is provided, the loop stops after the given number
    of seconds.
    """
    logger.info(
        "poll_loop.start",
        extra={"max_runtime": max_runtime, "loop_interval": loop_interval},
    )
    start_time = time.monotonic()

    while True:
        if not len(dashboard.stations):
            print("No stations tracked. Add stations to the configuration or pass --station.")
            logger.info("poll_loop.stop", extra={"reason": "no_stations"})
            return

        try:
            snapshot = dashboard.refresh()
            for line in render_snapshot(snapshot):
                print(line)
            logger.debug(
                "poll_loop.refresh",
                extra={
                    "status": snapshot.status.value,
                    "detections": len(snapshot.detections),
                    "highlights": len(snapshot.highlights),
                },
            )
        except Exception as exc:  # noqa: BLE001 - top-level loop should never crash
            print(f"    Refresh failed: {exc}")
            logger.exception("poll_loop.error")

        if max_runtime is not None and time.monotonic() - start_time >= max_runtime:
            print(f"Reached max runtime ({max_runtime}s). Stopping poll loop.")
            logger.info("poll_loop.stop", extra={"reason": "max_runtime"})
            return
        time.sleep(loop_interval)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Birdboard station poll loop.")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Optional maximum runtime in seconds before exiting the loop.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds to sleep between refreshes (defaults to poll_interval from config).",
    )
    parser.add_argument(
        "--station",
        action="append",
        default=[],
        metavar="ID",
        help="Station id to track in addition to the configured ones. Repeatable.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo debug logging to stderr.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(PROJECT_ROOT, level=logging.DEBUG if args.verbose else logging.WARNING)
    config = load_configuration().birdboard
    dashboard = Dashboard.from_config(config)
    try:
        for station_id in args.station:
            dashboard.stations.add(TrackedStation(id=station_id, name=f"Station {station_id}"))
        interval = args.interval if args.interval is not None else config.poll_interval
        run_poll_loop(dashboard, max_runtime=args.duration, loop_interval=interval)
    finally:
        dashboard.close()


if __name__ == "__main__":
    main()
