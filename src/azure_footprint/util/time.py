from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Tuple, Union

DateRange = Tuple[datetime, datetime]


def utc_now_iso(seconds: bool = True) -> str:
    """
    Return current UTC time in ISO-8601 format.
    - If seconds is True, use seconds precision (stable strings).
    - Else, use milliseconds precision.
    """
    if seconds:
        return datetime.now(timezone.utc).isoformat(timespec="seconds")
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def parse_iso_utc(value: Union[str, date, datetime]) -> datetime:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.
    Naive values are assumed to be UTC; a trailing 'Z' is accepted.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        raw = (value or "").strip()
        if not raw:
            raise ValueError("Empty date value")
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso_utc(dt: datetime) -> str:
    return parse_iso_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def align_utc_day(dt: datetime) -> datetime:
    return parse_iso_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def split_into_days(start: datetime, end: datetime) -> List[DateRange]:
    """
    Split [start, end) into consecutive windows that never cross a UTC day
    boundary. The first and last windows keep the caller's exact bounds.
    """
    start = parse_iso_utc(start)
    end = parse_iso_utc(end)
    if end <= start:
        return []
    windows: List[DateRange] = []
    cursor = start
    while cursor < end:
        next_day = align_utc_day(cursor) + timedelta(days=1)
        window_end = min(next_day, end)
        windows.append((cursor, window_end))
        cursor = window_end
    return windows


def period_start(ts: datetime, grouping: str) -> datetime:
    """
    Return the start of the day/week/month/quarter/year bucket containing ts.
    Weeks start on Monday.
    """
    day = align_utc_day(ts)
    if grouping == "day":
        return day
    if grouping == "week":
        return day - timedelta(days=day.weekday())
    if grouping == "month":
        return day.replace(day=1)
    if grouping == "quarter":
        month = 3 * ((day.month - 1) // 3) + 1
        return day.replace(month=month, day=1)
    if grouping == "year":
        return day.replace(month=1, day=1)
    raise ValueError(f"Unsupported grouping: {grouping}")
