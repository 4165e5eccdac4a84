"""Debt tools.

Marking a debt paid cannot be undone, so it always goes through the
identify/confirm round-trip, as do detail edits and deletion. Either party may
mark a debt paid; only its creator may edit or delete it.
"""

from __future__ import annotations

from decimal import Decimal

from finbutler.errors import NotFoundError, ValidationError
from finbutler.tools._helpers import format_currency, require_positive, to_amount
from finbutler.tools.context import FinanceContext
from finbutler.tools.response import ToolResponse, tool_boundary
from finbutler.tools.terms import UnitTerm, parse_term, term_from_columns

_PURPOSES = {
    "mark_paid": "mark this debt as paid",
    "update": "update this debt's description or duration",
    "delete": "delete this debt",
}


@tool_boundary("Failed to record debt.")
async def add_debt(
    ctx: FinanceContext,
    user_id: str,
    amount: Decimal | float | int,
    type: str,
    involved_user_identifier: str,
    account_identifier: str,
    duration_type: str,
    description: str | None = None,
    interest_rate: Decimal | float | int = 0,
    interest_type: str = "simple",
    frequency: int | None = None,
    custom_date_range_description: str | None = None,
) -> ToolResponse:
    """Record money lent (``given``) to or borrowed (``taken``) from another user."""
    principal = require_positive(amount)
    rate = to_amount(interest_rate)
    if rate < 0:
        raise ValidationError("Interest rate cannot be negative.")

    counterparty_id = await ctx.resolve_id(user_id, "user", involved_user_identifier)
    if counterparty_id == user_id:
        raise ValidationError("You cannot record a debt with yourself.")
    account_id = await ctx.resolve_id(user_id, "account", account_identifier)

    now = ctx.now()
    term = parse_term(
        duration_type, frequency=frequency, custom_range=custom_date_range_description, now=now
    )
    debt = await ctx.stores.debts.create(
        user_id,
        counterparty_id=counterparty_id,
        account_id=account_id,
        debt_type=type,
        amount=principal,
        description=description,
        percentage=rate,
        interest_type=interest_type,
        term=term,
        due_date=term.due_date(now.date()),
    )
    return ToolResponse.ok(f"Debt ({type}) recorded.", debt)


@tool_boundary("Failed to list debts.")
async def list_debts(
    ctx: FinanceContext, user_id: str, type: str | None = None, is_paid: bool | None = None
) -> ToolResponse:
    debts = await ctx.stores.debts.list(user_id, debt_type=type, is_paid=is_paid)
    if not debts:
        return ToolResponse.ok("No debts found.", [])
    outstanding = sum(
        (Decimal(str(d["amount"])) for d in debts if not d.get("is_paid")), Decimal("0")
    )
    currency = await ctx.currency_for(user_id)
    return ToolResponse.ok(
        f"Found {len(debts)} debts ({format_currency(outstanding, currency)} outstanding).",
        debts,
    )


@tool_boundary("Failed to identify debt.")
async def mark_debt_as_paid(
    ctx: FinanceContext, user_id: str, debt_identifier: str
) -> ToolResponse:
    """Identify the debt to settle; the human confirms with its ID."""
    return await ctx.identify(
        user_id, "debt", debt_identifier, action="mark_paid", purpose=_PURPOSES["mark_paid"]
    )


@tool_boundary("Failed to mark debt as paid.")
async def execute_confirmed_mark_debt_paid(
    ctx: FinanceContext, user_id: str, debt_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "debt", debt_id, "mark_paid")
    return ToolResponse.ok("Debt marked as paid.")


@tool_boundary("Failed to identify debt.")
async def identify_debt_for_action(
    ctx: FinanceContext, user_id: str, debt_identifier: str, action: str = "delete"
) -> ToolResponse:
    if action not in ("update", "delete"):
        raise ValidationError(f"Unsupported debt action: {action!r}.")
    return await ctx.identify(
        user_id, "debt", debt_identifier, action=action, purpose=_PURPOSES[action]
    )


@tool_boundary("Failed to update debt.")
async def execute_confirmed_update_debt(
    ctx: FinanceContext,
    user_id: str,
    debt_id: str,
    new_description: str | None = None,
    new_duration_type: str | None = None,
    new_frequency: int | None = None,
    new_custom_date_range_description: str | None = None,
) -> ToolResponse:
    """Change the description and/or term of a debt the caller created.

    A bare *new_frequency* keeps the current duration unit; it is rejected
    when the debt runs over a custom date range.
    """
    changes: dict = {}
    if new_description:
        changes["description"] = new_description.strip()

    if new_duration_type:
        changes["term"] = parse_term(
            new_duration_type,
            frequency=new_frequency,
            custom_range=new_custom_date_range_description,
            now=ctx.now(),
        )
    elif new_frequency:
        current = await ctx.stores.debts.find_by_id(user_id, debt_id)
        if current is None:
            raise NotFoundError("Debt not found.")
        term = term_from_columns(current.get("duration"), current.get("frequency"))
        if not isinstance(term, UnitTerm):
            raise ValidationError(
                "Duration type must be provided when updating frequency, "
                "or current type is 'custom'."
            )
        changes["term"] = UnitTerm(term.unit, new_frequency)

    if not changes:
        raise ValidationError("No valid update fields provided.")

    await ctx.gate.execute(user_id, "debt", debt_id, "update", **changes)
    return ToolResponse.ok(f"Debt (ID: {debt_id}) updated.")


@tool_boundary("Failed to delete debt.")
async def execute_confirmed_delete_debt(
    ctx: FinanceContext, user_id: str, debt_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "debt", debt_id, "delete")
    return ToolResponse.ok("Debt deleted successfully.")
