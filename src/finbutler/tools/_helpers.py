"""Amount and currency helpers shared by the finance tools."""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from finbutler.errors import ValidationError

_CENT = Decimal("0.01")


def to_amount(value: Decimal | float | int | str) -> Decimal:
    """Return *value* as a two-place Decimal.

    Raises
    ------
    ValidationError
        If *value* is not a finite number (NaN, infinity or junk text).
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("Amount must be a number.") from None
    if not amount.is_finite():
        raise ValidationError("Amount must be a number.")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def require_positive(value: Decimal | float | int, field: str = "Amount") -> Decimal:
    amount = to_amount(value)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive.")
    return amount


def normalize_currency(code: str | None, default: str) -> str:
    currency = (code or default).strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError(f"Invalid currency code: {code!r}. Expected a 3-letter code.")
    return currency


def format_currency(amount: Decimal | float | int | str | None, currency: str | None = None) -> str:
    """Render an amount for messages, e.g. ``INR 1,250.00``."""
    value = to_amount(amount or 0)
    return f"{(currency or 'INR').upper()} {value:,.2f}"


def format_day(value: datetime | date | str | None) -> str:
    """``YYYY-MM-DD`` for a datetime/date/ISO string; ``N/A`` when missing."""
    if value is None:
        return "N/A"
    if isinstance(value, str):
        return value[:10]
    if isinstance(value, datetime):
        return value.date().isoformat()
    return value.isoformat()
