"""Tests for duration keywords, custom ranges, interval shapes and NL phrases."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from finbutler.errors import ValidationError
from finbutler.tools.intervals import (
    Interval,
    IntervalError,
    ShapeKind,
    bucket_unit,
    classify_interval,
    end_of_day,
    parse_custom_range,
    parse_date_range,
    previous_interval,
    resolve_date_range,
    resolve_interval,
    resolve_single_date,
    start_of_day,
)

pytestmark = pytest.mark.unit

# Friday
NOW = datetime(2024, 3, 15, 10, 30, tzinfo=UTC)


def _day(y: int, m: int, d: int) -> datetime:
    return datetime(y, m, d, tzinfo=UTC)


def _eod(y: int, m: int, d: int) -> datetime:
    return datetime(y, m, d, 23, 59, 59, 999000, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Interval
# ---------------------------------------------------------------------------


class TestInterval:
    def test_start_must_precede_end(self):
        with pytest.raises(IntervalError):
            Interval(_day(2024, 3, 2), _day(2024, 3, 1))

    def test_equal_bounds_rejected(self):
        with pytest.raises(IntervalError):
            Interval(_day(2024, 3, 1), _day(2024, 3, 1))

    def test_naive_bounds_are_taken_as_utc(self):
        interval = Interval(datetime(2024, 3, 1), datetime(2024, 3, 2))
        assert interval.start.tzinfo is UTC

    def test_bounds_truncated_to_milliseconds(self):
        interval = Interval(_day(2024, 3, 1), datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=UTC))
        assert interval.end.microsecond == 123000

    def test_contains_is_inclusive(self):
        interval = Interval(start_of_day(NOW), end_of_day(NOW))
        assert interval.contains(interval.start)
        assert interval.contains(interval.end)
        assert not interval.contains(_day(2024, 3, 16))

    def test_to_dict_is_iso(self):
        interval = Interval(_day(2024, 3, 1), _eod(2024, 3, 1))
        assert interval.to_dict() == {
            "start": "2024-03-01T00:00:00+00:00",
            "end": "2024-03-01T23:59:59.999000+00:00",
        }


# ---------------------------------------------------------------------------
# resolve_interval
# ---------------------------------------------------------------------------


class TestResolveInterval:
    async def test_today(self):
        interval = await resolve_interval("today", NOW)
        assert interval == Interval(_day(2024, 3, 15), _eod(2024, 3, 15))

    async def test_this_week_starts_monday(self):
        interval = await resolve_interval("thisWeek", NOW)
        assert interval == Interval(_day(2024, 3, 11), _eod(2024, 3, 17))

    async def test_this_month(self):
        interval = await resolve_interval("thisMonth", NOW)
        assert interval == Interval(_day(2024, 3, 1), _eod(2024, 3, 31))

    async def test_this_year(self):
        interval = await resolve_interval("thisYear", NOW)
        assert interval == Interval(_day(2024, 1, 1), _eod(2024, 12, 31))

    @pytest.mark.parametrize("expr", [None, "", "fortnight"])
    async def test_unknown_or_missing_defaults_to_this_month(self, expr):
        interval = await resolve_interval(expr, NOW)
        assert interval == Interval(_day(2024, 3, 1), _eod(2024, 3, 31))

    async def test_custom_range(self):
        interval = await resolve_interval("2024-01-01,2024-01-31", NOW)
        assert interval == Interval(_day(2024, 1, 1), _eod(2024, 1, 31))

    async def test_custom_range_out_of_order_rejected(self):
        with pytest.raises(IntervalError, match="Invalid custom date range"):
            await resolve_interval("2024-02-01,2024-01-01", NOW)

    async def test_all_starts_at_year_of_earliest_record(self):
        async def earliest():
            return datetime(2022, 6, 5, 8, 0, tzinfo=UTC)

        interval = await resolve_interval("all", NOW, earliest_record=earliest)
        assert interval == Interval(_day(2022, 1, 1), _eod(2024, 3, 15))

    async def test_all_without_records_starts_this_year(self):
        async def earliest():
            return None

        interval = await resolve_interval("all", NOW, earliest_record=earliest)
        assert interval.start == _day(2024, 1, 1)

    async def test_all_falls_back_when_lookup_fails(self):
        async def earliest():
            raise RuntimeError("connection reset")

        interval = await resolve_interval("all", NOW, earliest_record=earliest)
        assert interval.start == _day(2024, 1, 1)
        assert interval.end == _eod(2024, 3, 15)


class TestParseCustomRange:
    @pytest.mark.parametrize(
        "expr",
        [
            "2024-01-01",
            "2024-01-01,2024-01-02,2024-01-03",
            "2024-01-01,soon",
            "2024-01-05,2024-01-05",
        ],
    )
    def test_rejects_malformed(self, expr):
        with pytest.raises(IntervalError, match="Invalid custom date range format or order."):
            parse_custom_range(expr)

    def test_accepts_whitespace(self):
        interval = parse_custom_range(" 2024-01-01 , 2024-01-02 ")
        assert interval == Interval(_day(2024, 1, 1), _eod(2024, 1, 2))

    def test_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_custom_range("nope")


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


class TestClassifyInterval:
    def test_hour(self):
        shape = classify_interval(Interval(NOW, datetime(2024, 3, 15, 11, 0, tzinfo=UTC)))
        assert shape.kind is ShapeKind.HOUR

    def test_day(self):
        shape = classify_interval(Interval(_day(2024, 3, 15), _eod(2024, 3, 15)))
        assert (shape.kind, shape.days) == (ShapeKind.DAY, 1)

    def test_week(self):
        shape = classify_interval(Interval(_day(2024, 3, 11), _eod(2024, 3, 17)))
        assert (shape.kind, shape.days) == (ShapeKind.WEEK, 7)

    @pytest.mark.parametrize("month,last", [(2, 29), (3, 31), (4, 30)])
    def test_month(self, month, last):
        shape = classify_interval(Interval(_day(2024, month, 1), _eod(2024, month, last)))
        assert (shape.kind, shape.days) == (ShapeKind.MONTH, last)

    def test_leap_year(self):
        shape = classify_interval(Interval(_day(2024, 1, 1), _eod(2024, 12, 31)))
        assert (shape.kind, shape.days) == (ShapeKind.YEAR, 366)

    def test_custom(self):
        shape = classify_interval(Interval(_day(2024, 1, 1), _eod(2024, 2, 15)))
        assert (shape.kind, shape.days) == (ShapeKind.CUSTOM, 46)


class TestBucketUnit:
    def test_day_buckets_by_hour(self):
        shape = classify_interval(Interval(_day(2024, 3, 1), _eod(2024, 3, 1)))
        assert bucket_unit(shape) == "hour"

    def test_month_buckets_by_day(self):
        shape = classify_interval(Interval(_day(2024, 3, 1), _eod(2024, 3, 31)))
        assert bucket_unit(shape) == "day"

    def test_year_buckets_by_month(self):
        shape = classify_interval(Interval(_day(2024, 1, 1), _eod(2024, 12, 31)))
        assert bucket_unit(shape) == "month"

    def test_custom_buckets_scale_with_length(self):
        short = classify_interval(Interval(_day(2024, 1, 1), _eod(2024, 1, 10)))
        medium = classify_interval(Interval(_day(2024, 1, 1), _eod(2024, 5, 31)))
        long = classify_interval(Interval(_day(2020, 1, 1), _eod(2024, 5, 31)))
        assert [bucket_unit(s) for s in (short, medium, long)] == ["day", "month", "year"]


class TestPreviousInterval:
    def test_day_steps_back_one_day(self):
        prev = previous_interval(Interval(_day(2024, 3, 15), _eod(2024, 3, 15)))
        assert prev == Interval(_day(2024, 3, 14), _eod(2024, 3, 14))

    def test_week_steps_back_one_week(self):
        prev = previous_interval(Interval(_day(2024, 3, 11), _eod(2024, 3, 17)))
        assert prev == Interval(_day(2024, 3, 4), _eod(2024, 3, 10))

    def test_march_steps_back_to_leap_february(self):
        prev = previous_interval(Interval(_day(2024, 3, 1), _eod(2024, 3, 31)))
        assert prev == Interval(_day(2024, 2, 1), _eod(2024, 2, 29))

    def test_april_steps_back_to_full_march(self):
        prev = previous_interval(Interval(_day(2024, 4, 1), _eod(2024, 4, 30)))
        assert prev == Interval(_day(2024, 3, 1), _eod(2024, 3, 31))

    def test_year_steps_back_one_year(self):
        prev = previous_interval(Interval(_day(2024, 1, 1), _eod(2024, 12, 31)))
        assert prev == Interval(_day(2023, 1, 1), _eod(2023, 12, 31))

    def test_custom_steps_back_by_its_length(self):
        prev = previous_interval(Interval(_day(2024, 1, 1), _eod(2024, 1, 10)))
        assert prev == Interval(_day(2023, 12, 22), _eod(2023, 12, 31))

    def test_mid_month_window_keeps_its_length(self):
        current = Interval(_day(2023, 1, 31), _eod(2023, 2, 28))
        prev = previous_interval(current)
        assert prev == Interval(_day(2022, 12, 31), _eod(2023, 1, 28))
        assert classify_interval(prev).days == classify_interval(current).days

    def test_previous_keeps_the_shape(self):
        current = Interval(_day(2024, 3, 1), _eod(2024, 3, 31))
        assert classify_interval(previous_interval(current)).kind is ShapeKind.MONTH


# ---------------------------------------------------------------------------
# Natural-language phrases
# ---------------------------------------------------------------------------


class TestParseDateRange:
    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("today", (_day(2024, 3, 15), _eod(2024, 3, 15))),
            ("yesterday", (_day(2024, 3, 14), _eod(2024, 3, 14))),
            ("this week", (_day(2024, 3, 11), _eod(2024, 3, 17))),
            ("last week", (_day(2024, 3, 4), _eod(2024, 3, 10))),
            ("this month", (_day(2024, 3, 1), _eod(2024, 3, 31))),
            ("Last  Month", (_day(2024, 2, 1), _eod(2024, 2, 29))),
            ("previous month", (_day(2024, 2, 1), _eod(2024, 2, 29))),
            ("current year", (_day(2024, 1, 1), _eod(2024, 12, 31))),
            ("last year", (_day(2023, 1, 1), _eod(2023, 12, 31))),
            ("this quarter", (_day(2024, 1, 1), _eod(2024, 3, 31))),
            ("last quarter", (_day(2023, 10, 1), _eod(2023, 12, 31))),
            ("past 7 days", (_day(2024, 3, 9), _eod(2024, 3, 15))),
            ("last 30 days", (_day(2024, 2, 15), _eod(2024, 3, 15))),
            ("last 3 days", (_day(2024, 3, 13), _eod(2024, 3, 15))),
        ],
    )
    def test_keywords(self, phrase, expected):
        assert parse_date_range(phrase, NOW) == Interval(*expected)

    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("2024-02", (_day(2024, 2, 1), _eod(2024, 2, 29))),
            ("March 2023", (_day(2023, 3, 1), _eod(2023, 3, 31))),
            ("sept 2023", (_day(2023, 9, 1), _eod(2023, 9, 30))),
            ("2023", (_day(2023, 1, 1), _eod(2023, 12, 31))),
            ("2024-03-10", (_day(2024, 3, 10), _eod(2024, 3, 10))),
            ("2024-03-01,2024-03-10", (_day(2024, 3, 1), _eod(2024, 3, 10))),
            ("2024-03-10 to 2024-03-01", (_day(2024, 3, 1), _eod(2024, 3, 10))),
            ("2024-01-01 until 2024-01-31", (_day(2024, 1, 1), _eod(2024, 1, 31))),
        ],
    )
    def test_explicit_forms(self, phrase, expected):
        assert parse_date_range(phrase, NOW) == Interval(*expected)

    @pytest.mark.parametrize("phrase", [None, "", "   "])
    def test_blank_is_none(self, phrase):
        assert parse_date_range(phrase, NOW) is None

    @pytest.mark.parametrize("phrase", ["0000", "0000-05", "2024-13", "march 0000"])
    def test_impossible_calendar_forms_are_none(self, phrase):
        assert parse_date_range(phrase, NOW) is None

    def test_relative_phrase_falls_back_to_dateparser(self):
        assert parse_date_range("3 days ago", NOW) == Interval(_day(2024, 3, 12), _eod(2024, 3, 12))


class TestResolveDateRange:
    def test_blank_means_no_filter(self):
        assert resolve_date_range(None, NOW) is None

    def test_blank_can_default_to_this_month(self):
        interval = resolve_date_range("", NOW, default_to_this_month=True)
        assert interval == Interval(_day(2024, 3, 1), _eod(2024, 3, 31))

    def test_unknown_phrase_raises(self):
        with pytest.raises(ValidationError, match='Could not understand the date/period: "blorp"'):
            resolve_date_range("blorp", NOW)

    @pytest.mark.parametrize("phrase", ["0000", "0000-05"])
    def test_year_zero_is_not_understood(self, phrase):
        with pytest.raises(ValidationError, match="Could not understand the date/period"):
            resolve_date_range(phrase, NOW)


class TestResolveSingleDate:
    def test_yesterday(self):
        assert resolve_single_date("yesterday", NOW) == _day(2024, 3, 14)

    def test_blank_defaults_to_today(self):
        assert resolve_single_date(None, NOW) == _day(2024, 3, 15)

    def test_blank_without_default_is_none(self):
        assert resolve_single_date("  ", NOW, default_to_today=False) is None

    def test_range_is_rejected(self):
        with pytest.raises(ValidationError, match="Expected a single date"):
            resolve_single_date("last month", NOW)

    def test_unknown_phrase_raises(self):
        with pytest.raises(ValidationError, match='Could not understand the date: "blorp"'):
            resolve_single_date("blorp", NOW)
