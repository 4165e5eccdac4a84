"""Value types shared by the stores and the tools.

``Interval`` is a closed ``[start, end]`` range of timezone-aware UTC
datetimes at millisecond precision. Debt terms are either a calendar-unit
recurrence (:class:`UnitTerm`) or an explicit span (:class:`CustomRange`);
the debt table keeps them as the historical ``duration``/``frequency`` column
pair, translated by :func:`term_to_columns` and :func:`term_from_columns`.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Literal

from dateutil.relativedelta import relativedelta

from finbutler.errors import ValidationError

logger = logging.getLogger(__name__)

_END_OF_DAY = time(23, 59, 59, 999000)


class IntervalError(ValidationError):
    """An interval expression could not be parsed or is out of order."""


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    else:
        value = value.astimezone(UTC)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


@dataclass(frozen=True)
class Interval:
    """A closed ``[start, end]`` time range with ``start < end``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.start >= self.end:
            raise IntervalError("Interval start must be before its end.")

    def contains(self, instant: datetime) -> bool:
        return self.start <= as_utc(instant) <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def start_of_day(value: datetime | date) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min, tzinfo=UTC)


def end_of_day(value: datetime | date) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, _END_OF_DAY, tzinfo=UTC)


def start_of_week(value: datetime) -> datetime:
    return start_of_day(value - timedelta(days=value.weekday()))


def end_of_week(value: datetime) -> datetime:
    return end_of_day(value + timedelta(days=6 - value.weekday()))


def start_of_month(value: datetime | date) -> datetime:
    return start_of_day(date(value.year, value.month, 1))


def end_of_month(value: datetime | date) -> datetime:
    last = calendar.monthrange(value.year, value.month)[1]
    return end_of_day(date(value.year, value.month, last))


def start_of_year(value: datetime | date) -> datetime:
    return start_of_day(date(value.year, 1, 1))


def end_of_year(value: datetime | date) -> datetime:
    return end_of_day(date(value.year, 12, 31))


# ---------------------------------------------------------------------------
# Debt terms
# ---------------------------------------------------------------------------

TermUnit = Literal["year", "month", "week", "day"]
TERM_UNITS: tuple[str, ...] = ("year", "month", "week", "day")


@dataclass(frozen=True)
class UnitTerm:
    """``count`` consecutive calendar units starting when the debt is recorded."""

    unit: TermUnit
    count: int

    def __post_init__(self) -> None:
        if self.unit not in TERM_UNITS:
            raise ValidationError(f"Invalid duration unit: {self.unit!r}.")
        if self.count <= 0:
            raise ValidationError("Frequency (number of units) required for duration units.")

    def due_date(self, start: date) -> date:
        if self.unit == "year":
            return start + relativedelta(years=self.count)
        if self.unit == "month":
            return start + relativedelta(months=self.count)
        if self.unit == "week":
            return start + timedelta(weeks=self.count)
        return start + timedelta(days=self.count)

    def describe(self) -> str:
        return f"{self.count} {self.unit}{'' if self.count == 1 else 's'}"


@dataclass(frozen=True)
class CustomRange:
    """An explicit first and last day."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValidationError("Invalid date range format or order.")

    def due_date(self, start: date) -> date:  # noqa: ARG002
        return self.end

    def describe(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


DebtTerm = UnitTerm | CustomRange


def term_to_columns(term: DebtTerm | None) -> tuple[str | None, str | None]:
    """Encode *term* as the stored ``(duration, frequency)`` pair."""
    if term is None:
        return None, None
    if isinstance(term, CustomRange):
        return f"{term.start.isoformat()},{term.end.isoformat()}", None
    return term.unit, str(term.count)


def term_from_columns(duration: str | None, frequency: str | None) -> DebtTerm | None:
    """Decode a stored ``(duration, frequency)`` pair; unreadable pairs yield ``None``."""
    if not duration:
        return None
    try:
        if "," in duration:
            first, last = duration.split(",", 1)
            return CustomRange(date.fromisoformat(first.strip()), date.fromisoformat(last.strip()))
        return UnitTerm(duration, int(frequency or 0))  # type: ignore[arg-type]
    except ValueError:
        logger.warning("Unreadable debt term columns: %r / %r", duration, frequency)
        return None
