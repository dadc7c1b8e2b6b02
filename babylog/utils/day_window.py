"""Timestamp parsing and clipping of intervals to a calendar day."""

import logging
from datetime import datetime, timedelta, date as date_type
from typing import Any, List, Optional, Tuple

import pytz

from babylog.core.constants import DAY_START_TIME, DAY_END_TIME

logger = logging.getLogger(__name__)


# Used by: db.models validators, clip_to_day(), dates_spanned()
def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            pass
    return None


def to_local_naive(dt: datetime, timezone: str = "") -> datetime:
    """Aware timestamps are moved to `timezone` (or the host zone) and stripped; naive ones pass through."""
    if dt.tzinfo is None:
        return dt
    if timezone:
        return dt.astimezone(pytz.timezone(timezone)).replace(tzinfo=None)
    return dt.astimezone().replace(tzinfo=None)


def date_prefix(timestamp: Optional[str]) -> str:
    return (timestamp or "")[:10]


def day_bounds(day: str) -> Tuple[datetime, datetime]:
    start = datetime.fromisoformat(f"{day}T{DAY_START_TIME}")
    end = datetime.fromisoformat(f"{day}T{DAY_END_TIME}")
    return start, end


# Used by: DailyAggregator.resync
def clip_to_day(start: Any, end: Any, day: str, timezone: str = "") -> int:
    """Milliseconds of [start, end] that fall inside `day`'s window. Unparseable or non-overlapping -> 0."""
    start_dt = parse_timestamp(start)
    end_dt = parse_timestamp(end)
    if start_dt is None or end_dt is None:
        logger.warning(f"Skipping sleep interval with unparseable bounds: {start!r} - {end!r}")
        return 0

    day_start, day_end = day_bounds(day)
    clipped_start = max(to_local_naive(start_dt, timezone), day_start)
    clipped_end = min(to_local_naive(end_dt, timezone), day_end)
    ms = (clipped_end - clipped_start) // timedelta(milliseconds=1)
    return max(0, ms)


# Used by: DailyAggregator.dates_touched
def dates_spanned(start: Optional[str], end: Optional[str]) -> List[str]:
    """Every calendar date from start's date to end's date, inclusive."""
    first = date_prefix(start)
    last = date_prefix(end) or first
    try:
        current = date_type.fromisoformat(first)
        stop = date_type.fromisoformat(last)
    except ValueError:
        return [first] if first else []

    if stop < current:
        return [first]

    days = []
    while current <= stop:
        days.append(current.isoformat())
        current += timedelta(days=1)
    return days
