from __future__ import annotations

import datetime as dt
import logging

import pytest

from sheetsync.coerce import coerce, parse_event_time, try_coerce
from sheetsync.descriptors import ColumnType


@pytest.mark.parametrize("declared_type", list(ColumnType))
@pytest.mark.parametrize("timestamp", [False, True])
def test_empty_cell_is_null_without_warning(declared_type, timestamp):
    if timestamp and declared_type is not ColumnType.INTEGER:
        pytest.skip("timestamp columns are always INTEGER")
    assert try_coerce("", declared_type, timestamp=timestamp) == (None, None)
    assert try_coerce(None, declared_type, timestamp=timestamp) == (None, None)


def test_text_is_passed_through_verbatim():
    assert coerce("  1:42.315 ", ColumnType.TEXT) == "  1:42.315 "


@pytest.mark.parametrize(
    "raw, expected",
    [("42", 42), (" 7 ", 7), ("-3", -3), ("+12", 12), ("0012", 12)],
)
def test_integer_parses_base_ten(raw, expected):
    assert try_coerce(raw, ColumnType.INTEGER) == (expected, None)


@pytest.mark.parametrize(
    "raw, expected",
    [("3.0", 3), ("1500.5", 1500), ("12abc", 12), ("1,523", 1), ("4_2", 4), ("  -8 laps", -8)],
)
def test_integer_reads_leading_digits(raw, expected):
    assert try_coerce(raw, ColumnType.INTEGER) == (expected, None)


@pytest.mark.parametrize("raw", ["abc", "n/a", "-", ".5", "DNF 3"])
def test_integer_without_leading_digits_is_null(raw):
    value, warning = try_coerce(raw, ColumnType.INTEGER)
    assert value is None
    assert "invalid integer" in warning


@pytest.mark.parametrize("raw, expected", [("3.25", 3.25), ("1e3", 1000.0), (".5", 0.5), ("-2", -2.0)])
def test_real_parses_floats(raw, expected):
    assert try_coerce(raw, ColumnType.REAL) == (expected, None)


@pytest.mark.parametrize(
    "raw, expected",
    [("1_000", 1.0), ("4.2 stars", 4.2), ("2.5e1x", 25.0), ("7e", 7.0), (" 3.", 3.0)],
)
def test_real_reads_leading_number(raw, expected):
    assert try_coerce(raw, ColumnType.REAL) == (expected, None)


@pytest.mark.parametrize("raw", ["fast", "nan", "inf", "Infinity", "1e999", "."])
def test_real_rejects_garbage_and_non_finite(raw):
    value, warning = try_coerce(raw, ColumnType.REAL)
    assert value is None
    assert warning


def test_event_time_uses_local_wall_clock():
    expected = round(dt.datetime(2025, 10, 25, 19, 0).timestamp() * 1000)
    assert parse_event_time("October 25 2025 07:00 PM") == expected
    assert try_coerce("October 25 2025 07:00 PM", ColumnType.INTEGER, timestamp=True) == (expected, None)


def test_event_time_respects_explicit_offset():
    expected = round(dt.datetime(2025, 10, 25, 19, 0, tzinfo=dt.timezone.utc).timestamp() * 1000)
    assert parse_event_time("2025-10-25T19:00:00+00:00") == expected


def test_timestamp_rule_takes_precedence_over_integer():
    raw = "October 25 2025 07:00 PM"
    assert try_coerce(raw, ColumnType.INTEGER)[0] is None
    assert try_coerce(raw, ColumnType.INTEGER, timestamp=True)[0] == parse_event_time(raw)


def test_unparseable_date_is_null_with_warning():
    value, warning = try_coerce("TBD", ColumnType.INTEGER, timestamp=True)
    assert value is None
    assert "TBD" in warning


def test_coerce_logs_failures(caplog):
    with caplog.at_level(logging.WARNING, logger="sheetsync.coerce"):
        assert coerce("twelve", ColumnType.INTEGER) is None
    assert "invalid integer 'twelve'" in caplog.text
