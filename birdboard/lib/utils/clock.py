from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an upstream ISO-8601 instant into an aware UTC datetime."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_period(raw: str) -> timedelta:
    """Turn a human period such as ``"5 minutes"`` or ``"2 years"`` into a timedelta."""
    try:
        value, unit = str(raw).strip().split()
        amount = float(value)
    except ValueError as exc:
        raise ValueError(f"Unsupported period: {raw!r}") from exc
    unit = unit.lower()
    if unit.startswith("sec"):
        return timedelta(seconds=amount)
    if unit.startswith("min"):
        return timedelta(minutes=amount)
    if unit.startswith("hour"):
        return timedelta(hours=amount)
    if unit.startswith("day"):
        return timedelta(days=amount)
    if unit.startswith("week"):
        return timedelta(weeks=amount)
    if unit.startswith("month"):
        return timedelta(days=30 * amount)
    if unit.startswith("year"):
        return timedelta(days=365 * amount)
    raise ValueError(f"Unsupported period unit: {unit}")
