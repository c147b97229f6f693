import datetime as dt
import math

import pandas as pd
import pytest

from date_slicer.core.dates import (
    DataBounds,
    DateRange,
    bounds_from_values,
    day_end,
    day_start,
    fmt_iso,
    parse_date_column,
    parse_date_value,
)


def test_day_normalization():
    t = dt.datetime(2024, 3, 5, 14, 33, 7, 123456)
    assert day_start(t) == dt.datetime(2024, 3, 5)
    assert day_end(t) == dt.datetime(2024, 3, 5, 23, 59, 59, 999000)


def test_inverted_range_raises():
    with pytest.raises(ValueError):
        DateRange(dt.datetime(2024, 3, 2), dt.datetime(2024, 3, 1))


def test_whole_days_collapses_inverted_pair_onto_start_day():
    rng = DateRange.whole_days(dt.datetime(2024, 3, 5, 10), dt.datetime(2024, 3, 1))
    assert rng == DateRange.single_day(dt.datetime(2024, 3, 5))


def test_clamp_inside_and_outside(bounds):
    inside = DateRange.whole_days(dt.datetime(2023, 12, 20), dt.datetime(2024, 1, 10))
    assert inside.clamp(bounds) == DateRange.whole_days(dt.datetime(2024, 1, 1), dt.datetime(2024, 1, 10))

    outside = DateRange.whole_days(dt.datetime(2024, 6, 1), dt.datetime(2024, 6, 5))
    assert outside.clamp(bounds) == DateRange.single_day(dt.datetime(2024, 3, 31))


def test_days_and_dict_form():
    rng = DateRange.whole_days(dt.datetime(2024, 2, 27), dt.datetime(2024, 3, 1))
    assert rng.days() == 4  # leap year
    d = rng.to_dict()
    assert d == {"from": "2024-02-27T00:00:00.000", "to": "2024-03-01T23:59:59.999"}
    assert DateRange.from_dict(d) == rng
    assert DateRange.from_dict({"from": "nope", "to": "2024-03-01"}) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-05", dt.datetime(2024, 3, 5)),
        ("2024/03/05", dt.datetime(2024, 3, 5)),
        ("05/03/2024", dt.datetime(2024, 3, 5)),
        ("2024-03-05T10:30:00.000", dt.datetime(2024, 3, 5, 10, 30)),
        ("2024-01-01T00:00:00Z", dt.datetime(2024, 1, 1)),
        ("2024-01-01T05:00:00+05:00", dt.datetime(2024, 1, 1)),
        (45292, dt.datetime(2024, 1, 1)),
        (1704067200000, dt.datetime(2024, 1, 1)),
        (dt.date(2024, 3, 5), dt.datetime(2024, 3, 5)),
        (pd.Timestamp("2024-03-05 08:00"), dt.datetime(2024, 3, 5, 8)),
    ],
)
def test_parse_date_value_accepts_host_encodings(raw, expected):
    assert parse_date_value(raw) == expected


@pytest.mark.parametrize("raw", [None, True, False, "", "not a date", float("nan"), math.inf, pd.NaT, "31/02/2024"])
def test_parse_date_value_rejects_garbage(raw):
    assert parse_date_value(raw) is None


def test_parse_date_column_drops_invalid_entries():
    ser = parse_date_column(["2024-01-05", None, "garbage", 45292])
    assert len(ser) == 2
    assert str(ser.dtype) == "datetime64[ns]"


def test_bounds_from_values_normalizes_to_whole_days():
    b = bounds_from_values(["2024-01-05", None, "garbage", dt.datetime(2024, 2, 1, 13, 0)])
    assert b == DataBounds(dt.datetime(2024, 1, 5), dt.datetime(2024, 2, 1, 23, 59, 59, 999000))
    assert b.as_range().days() == 28


def test_bounds_from_values_without_valid_dates():
    assert bounds_from_values([]) is None
    assert bounds_from_values(["x", None]) is None


def test_fmt_iso_keeps_milliseconds():
    assert fmt_iso(dt.datetime(2024, 1, 1, 23, 59, 59, 999000)) == "2024-01-01T23:59:59.999"
