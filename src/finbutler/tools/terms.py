"""Parse debt terms from tool arguments, once, where a tool receives them."""

from __future__ import annotations

from datetime import datetime

from finbutler.errors import ValidationError
from finbutler.models import (
    TERM_UNITS,
    CustomRange,
    DebtTerm,
    UnitTerm,
    term_from_columns,
    term_to_columns,
)
from finbutler.tools.intervals import resolve_date_range

__all__ = [
    "CustomRange",
    "DebtTerm",
    "UnitTerm",
    "parse_term",
    "term_from_columns",
    "term_to_columns",
]


def parse_term(
    duration_type: str,
    *,
    frequency: int | None = None,
    custom_range: str | None = None,
    now: datetime,
) -> DebtTerm:
    """Build a :data:`DebtTerm` from tool arguments.

    ``duration_type`` is one of ``year``, ``month``, ``week``, ``day`` (which
    require *frequency*) or ``custom`` (which requires a date-range phrase in
    *custom_range*).

    Raises
    ------
    ValidationError
        When the required companion argument is missing or malformed.
    """
    if duration_type == "custom":
        if not custom_range or not custom_range.strip():
            raise ValidationError(
                "Custom date range description is required when duration type is custom."
            )
        interval = resolve_date_range(custom_range, now)
        return CustomRange(interval.start.date(), interval.end.date())
    if duration_type not in TERM_UNITS:
        raise ValidationError(f"Invalid duration type: {duration_type!r}.")
    if not frequency:
        raise ValidationError("Frequency is required for non-custom duration types.")
    return UnitTerm(duration_type, int(frequency))  # type: ignore[arg-type]

