from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from azure_footprint.util.time import format_iso_utc, parse_iso_utc, period_start, split_into_days


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_parse_iso_utc_accepts_z_dates_and_offsets() -> None:
    assert parse_iso_utc("2024-03-01T10:00:00Z") == _utc(2024, 3, 1, 10)
    assert parse_iso_utc("2024-03-01") == _utc(2024, 3, 1)
    assert parse_iso_utc(date(2024, 3, 1)) == _utc(2024, 3, 1)
    assert parse_iso_utc("2024-03-01T02:00:00+02:00") == _utc(2024, 3, 1)


def test_parse_iso_utc_rejects_empty() -> None:
    with pytest.raises(ValueError):
        parse_iso_utc("  ")


def test_format_iso_utc_is_second_precision() -> None:
    assert format_iso_utc(_utc(2024, 3, 1, 5, 6, 7)) == "2024-03-01T05:06:07Z"


def test_split_into_days_never_crosses_midnight() -> None:
    windows = split_into_days(_utc(2024, 2, 28, 18), _utc(2024, 3, 1, 6))

    assert windows == [
        (_utc(2024, 2, 28, 18), _utc(2024, 2, 29)),
        (_utc(2024, 2, 29), _utc(2024, 3, 1)),
        (_utc(2024, 3, 1), _utc(2024, 3, 1, 6)),
    ]
    for start, end in windows:
        assert end - start <= timedelta(days=1)
        assert (end - timedelta(microseconds=1)).date() == start.date()


def test_split_into_days_empty_range() -> None:
    assert split_into_days(_utc(2024, 3, 1), _utc(2024, 3, 1)) == []
    assert split_into_days(_utc(2024, 3, 2), _utc(2024, 3, 1)) == []


@pytest.mark.parametrize(
    "grouping, expected",
    [
        ("day", _utc(2024, 5, 15)),
        ("week", _utc(2024, 5, 13)),
        ("month", _utc(2024, 5, 1)),
        ("quarter", _utc(2024, 4, 1)),
        ("year", _utc(2024, 1, 1)),
    ],
)
def test_period_start(grouping: str, expected: datetime) -> None:
    assert period_start(_utc(2024, 5, 15, 13, 30), grouping) == expected


def test_period_start_rejects_unknown_grouping() -> None:
    with pytest.raises(ValueError):
        period_start(_utc(2024, 5, 15), "fortnight")
