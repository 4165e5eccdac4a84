"""Date interval normalisation: duration keywords, custom ranges, NL phrases.

All returned bounds are timezone-aware UTC datetimes at millisecond precision.
``end`` is always the last millisecond of its calendar unit, and store queries
treat both bounds as inclusive (``start <= x <= end``). Weeks start on Monday.
"""

from __future__ import annotations

import calendar
import enum
import logging
import math
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import dateparser
from dateutil.relativedelta import relativedelta

from finbutler.errors import ValidationError
from finbutler.models import (
    Interval,
    IntervalError,
    as_utc,
    end_of_day,
    end_of_month,
    end_of_week,
    end_of_year,
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
)

logger = logging.getLogger(__name__)

INTERVAL_KEYWORDS = ("today", "thisWeek", "thisMonth", "thisYear", "all")


def _is_month_end(value: datetime) -> bool:
    return value.day == calendar.monthrange(value.year, value.month)[1]


def _parse_iso_date(text: str) -> date:
    text = text.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def parse_custom_range(expr: str) -> Interval:
    """Parse ``"<iso-date>,<iso-date>"`` into a day-aligned interval.

    Raises
    ------
    IntervalError
        If either side is not a date or ``start >= end``.
    """
    parts = expr.split(",")
    if len(parts) != 2:
        raise IntervalError("Invalid custom date range format or order.")
    try:
        first = _parse_iso_date(parts[0])
        last = _parse_iso_date(parts[1])
    except ValueError as exc:
        raise IntervalError("Invalid custom date range format or order.") from exc
    if first >= last:
        raise IntervalError("Invalid custom date range format or order.")
    return Interval(start_of_day(first), end_of_day(last))


# ---------------------------------------------------------------------------
# Duration keywords
# ---------------------------------------------------------------------------


async def resolve_interval(
    expr: str | None,
    now: datetime,
    earliest_record: Callable[[], Awaitable[datetime | None]] | None = None,
) -> Interval:
    """Resolve a duration expression into an :class:`Interval`.

    Parameters
    ----------
    expr:
        ``"<iso-date>,<iso-date>"``, one of ``today``, ``thisWeek``,
        ``thisMonth``, ``thisYear``, ``all``; anything else (or ``None``)
        means ``thisMonth``.
    now:
        Reference instant, normally taken from an injected clock.
    earliest_record:
        Async callable returning the timestamp of the user's earliest
        record. Only consulted for ``all``; a failure there is logged and
        the interval falls back to the start of the current year.

    Raises
    ------
    IntervalError
        For a malformed or out-of-order custom range.
    """
    now = as_utc(now)
    if expr and "," in expr:
        return parse_custom_range(expr)

    if expr == "today":
        return Interval(start_of_day(now), end_of_day(now))
    if expr == "thisWeek":
        return Interval(start_of_week(now), end_of_week(now))
    if expr == "thisYear":
        return Interval(start_of_year(now), end_of_year(now))
    if expr == "all":
        start = start_of_year(now)
        if earliest_record is not None:
            try:
                first = await earliest_record()
            except Exception:
                logger.warning("Earliest record lookup failed; using start of year", exc_info=True)
                first = None
            if first is not None:
                start = start_of_year(as_utc(first))
        return Interval(start, end_of_day(now))
    return Interval(start_of_month(now), end_of_month(now))


# ---------------------------------------------------------------------------
# Shapes and the previous interval
# ---------------------------------------------------------------------------


class ShapeKind(enum.StrEnum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass(frozen=True)
class IntervalShape:
    kind: ShapeKind
    days: int


def classify_interval(interval: Interval) -> IntervalShape:
    """Classify *interval* by the number of calendar days it covers."""
    span = interval.end - interval.start
    days = max(1, math.ceil(span / timedelta(days=1)))
    if span <= timedelta(hours=1):
        kind = ShapeKind.HOUR
    elif days <= 1:
        kind = ShapeKind.DAY
    elif days <= 7:
        kind = ShapeKind.WEEK
    elif 28 <= days <= 31:
        kind = ShapeKind.MONTH
    elif 365 <= days <= 366:
        kind = ShapeKind.YEAR
    else:
        kind = ShapeKind.CUSTOM
    return IntervalShape(kind=kind, days=days)


def previous_interval(interval: Interval) -> Interval:
    """Return the interval immediately preceding *interval* with the same shape.

    Day-sized intervals step back one day and week-sized ones one week.
    Month- and year-sized intervals step back one calendar unit, clamping to
    month ends when the interval starts on the 1st ("Mar 1-31" becomes
    "Feb 1-29" in a leap year). Anything else steps back by its exact day
    count.
    """
    shape = classify_interval(interval)
    start, end = interval.start, interval.end

    if shape.kind in (ShapeKind.HOUR, ShapeKind.DAY):
        prev_start = start_of_day(start - timedelta(days=1))
        return Interval(prev_start, end_of_day(prev_start))
    if shape.kind is ShapeKind.WEEK:
        return Interval(
            start_of_day(start - timedelta(weeks=1)), end_of_day(end - timedelta(weeks=1))
        )
    if shape.kind in (ShapeKind.MONTH, ShapeKind.YEAR):
        step = relativedelta(months=1) if shape.kind is ShapeKind.MONTH else relativedelta(years=1)
        prev_end = end - step
        if start.day == 1 and _is_month_end(end):
            prev_end = end_of_month(prev_end)
        return Interval(start_of_day(start - step), end_of_day(prev_end))

    step = timedelta(days=shape.days)
    return Interval(start_of_day(start - step), end_of_day(end - step))


def bucket_unit(shape: IntervalShape) -> str:
    """Aggregation bucket (``hour``/``day``/``month``/``year``) for charting *shape*."""
    if shape.kind in (ShapeKind.HOUR, ShapeKind.DAY):
        return "hour"
    if shape.kind in (ShapeKind.WEEK, ShapeKind.MONTH):
        return "day"
    if shape.kind is ShapeKind.YEAR:
        return "month"
    if shape.days <= 31:
        return "day"
    if shape.days <= 366:
        return "month"
    return "year"


# ---------------------------------------------------------------------------
# Natural-language phrases
# ---------------------------------------------------------------------------

_LAST_N_DAYS = re.compile(r"^(?:last|past)\s+(\d{1,4})\s+days?$")
_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")
_YEAR = re.compile(r"^\d{4}$")
_MONTH_YEAR = re.compile(r"^([a-z]+)\.?\s+(\d{4})$")
_RANGE_SEPARATOR = re.compile(r"\s*(?:,|\bto\b|\buntil\b)\s*")

_MONTH_NAMES = {
    name.lower(): index
    for names in (calendar.month_name, calendar.month_abbr)
    for index, name in enumerate(names)
    if name
}
_MONTH_NAMES["sept"] = 9


def _day(d: date | datetime) -> Interval:
    return Interval(start_of_day(d), end_of_day(d))


def _quarter(year: int, quarter: int) -> Interval:
    first_month = quarter * 3 + 1
    last = date(year, first_month + 2, 1)
    return Interval(start_of_day(date(year, first_month, 1)), end_of_month(last))


def _last_quarter(now: datetime) -> Interval:
    quarter = (now.month - 1) // 3 - 1
    year = now.year
    if quarter < 0:
        quarter, year = 3, year - 1
    return _quarter(year, quarter)


def _keyword_ranges(now: datetime) -> dict[str, Interval]:
    today_end = end_of_day(now)
    last_week = now - timedelta(days=7)
    last_month = now - relativedelta(months=1)
    last_year = date(now.year - 1, 1, 1)
    ranges = {
        "today": _day(now),
        "yesterday": _day(now - timedelta(days=1)),
        "this week": Interval(start_of_week(now), end_of_week(now)),
        "last week": Interval(start_of_week(last_week), end_of_week(last_week)),
        "this month": Interval(start_of_month(now), end_of_month(now)),
        "last month": Interval(start_of_month(last_month), end_of_month(last_month)),
        "this year": Interval(start_of_year(now), end_of_year(now)),
        "last year": Interval(start_of_year(last_year), end_of_year(last_year)),
        "this quarter": _quarter(now.year, (now.month - 1) // 3),
        "last quarter": _last_quarter(now),
    }
    for key in list(ranges):
        unit = key.partition(" ")[2]
        if key.startswith("this "):
            ranges[f"current {unit}"] = ranges[key]
        elif key.startswith("last "):
            ranges[f"previous {unit}"] = ranges[key]
    for days in (7, 30):
        window = Interval(start_of_day(now - timedelta(days=days - 1)), today_end)
        ranges[f"last {days} days"] = window
        ranges[f"past {days} days"] = window
    return ranges


def _month(year: int, month: int) -> Interval | None:
    try:
        first = date(year, month, 1)
    except ValueError:
        return None
    return Interval(start_of_day(first), end_of_month(first))


def _has_calendar_shape(text: str) -> bool:
    """Whether *text* is a year or year-month form, valid or not."""
    match = _MONTH_YEAR.match(text)
    return bool(
        _YEAR.match(text) or _YEAR_MONTH.match(text) or (match and match.group(1) in _MONTH_NAMES)
    )


def _parse_structured(text: str, now: datetime) -> Interval | None:
    match = _LAST_N_DAYS.match(text)
    if match:
        count = int(match.group(1))
        if count < 1:
            return None
        return Interval(start_of_day(now - timedelta(days=count - 1)), end_of_day(now))

    match = _YEAR_MONTH.match(text)
    if match:
        return _month(int(match.group(1)), int(match.group(2)))

    match = _MONTH_YEAR.match(text)
    if match and match.group(1) in _MONTH_NAMES:
        return _month(int(match.group(2)), _MONTH_NAMES[match.group(1)])

    if _YEAR.match(text):
        try:
            first = date(int(text), 1, 1)
        except ValueError:
            return None
        return Interval(start_of_day(first), end_of_year(first))

    try:
        return _day(_parse_iso_date(text))
    except ValueError:
        pass

    parts = _RANGE_SEPARATOR.split(text)
    if len(parts) == 2:
        try:
            first, last = _parse_iso_date(parts[0]), _parse_iso_date(parts[1])
        except ValueError:
            return None
        if first > last:
            first, last = last, first
        return Interval(start_of_day(first), end_of_day(last))
    return None


def parse_date_range(description: str | None, now: datetime) -> Interval | None:
    """Parse a natural-language date phrase into an interval, or ``None``.

    Known keywords ("last month", "past 30 days", "this quarter") are tried
    first, then explicit forms (``YYYY-MM``, ``March 2024``, ``YYYY``, ISO
    dates and ``<date>,<date>`` ranges). Anything else is handed to
    ``dateparser`` relative to *now*, preferring past dates; a hit there
    yields that single day.
    """
    if not description or not description.strip():
        return None
    now = as_utc(now)
    text = " ".join(description.strip().lower().split())

    keyword = _keyword_ranges(now).get(text)
    if keyword is not None:
        return keyword

    structured = _parse_structured(text, now)
    if structured is not None or _has_calendar_shape(text):
        return structured

    parsed = dateparser.parse(
        text,
        settings={
            "PREFER_DATES_FROM": "past",
            "RELATIVE_BASE": now.replace(tzinfo=None),
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    if parsed is None:
        logger.debug("Could not parse date phrase %r", description)
        return None
    return _day(parsed)


def resolve_date_range(
    description: str | None, now: datetime, *, default_to_this_month: bool = False
) -> Interval | None:
    """Resolve an optional date phrase used as a query filter.

    Blank input yields ``None`` (no filter) or the current month when
    *default_to_this_month* is set.

    Raises
    ------
    ValidationError
        If the phrase is present but not understood.
    """
    now = as_utc(now)
    if not description or not description.strip():
        if default_to_this_month:
            return Interval(start_of_month(now), end_of_month(now))
        return None
    interval = parse_date_range(description, now)
    if interval is None:
        raise ValidationError(f'Could not understand the date/period: "{description}"')
    return interval


def resolve_single_date(
    description: str | None, now: datetime, *, default_to_today: bool = True
) -> datetime | None:
    """Resolve a phrase that must name exactly one day; returns its start.

    Raises
    ------
    ValidationError
        If the phrase is not understood or names a multi-day range.
    """
    now = as_utc(now)
    if not description or not description.strip():
        return start_of_day(now) if default_to_today else None
    interval = parse_date_range(description, now)
    if interval is None:
        raise ValidationError(f'Could not understand the date: "{description}"')
    if interval.start.date() != interval.end.date():
        raise ValidationError(
            f'Expected a single date but received a range for "{description}". '
            "Please be more specific (e.g., 'today', 'yesterday', 'YYYY-MM-DD')."
        )
    return interval.start
