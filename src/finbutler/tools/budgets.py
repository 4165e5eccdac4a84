"""Budget tools.

A budget is identified by its category and the month/year it covers; a
month or year left out means the current one.
"""

from __future__ import annotations

from decimal import Decimal

from finbutler.errors import NotFoundError, ValidationError
from finbutler.tools._helpers import format_currency, require_positive
from finbutler.tools.context import FinanceContext
from finbutler.tools.intervals import resolve_date_range
from finbutler.tools.response import ToolResponse, tool_boundary

_PURPOSES = {
    "update": "update the amount of this budget",
    "delete": "delete this budget",
}


def _check_period(month: int | None, year: int | None) -> None:
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12.")
    if year is not None and not 1900 <= year <= 2100:
        raise ValidationError("Year must be between 1900 and 2100.")


def _target_period(ctx: FinanceContext, month: int | None, year: int | None) -> tuple[int, int]:
    _check_period(month, year)
    now = ctx.now()
    return month or now.month, year or now.year


@tool_boundary("Failed to create budget.")
async def create_budget(
    ctx: FinanceContext,
    user_id: str,
    category_identifier: str,
    amount: Decimal | float | int,
    month: int | None = None,
    year: int | None = None,
) -> ToolResponse:
    value = require_positive(amount)
    target_month, target_year = _target_period(ctx, month, year)
    category_id = await ctx.resolve_id(user_id, "category", category_identifier)
    budget = await ctx.stores.budgets.create(
        user_id, category_id, value, target_month, target_year
    )
    currency = await ctx.currency_for(user_id)
    return ToolResponse.ok(
        f"Budget of {format_currency(value, currency)} set for "
        f"{budget['category_name']} for {target_month}/{target_year}.",
        budget,
    )


@tool_boundary("Failed to list budgets.")
async def list_budgets(
    ctx: FinanceContext, user_id: str, month: int | None = None, year: int | None = None
) -> ToolResponse:
    _check_period(month, year)
    budgets = await ctx.stores.budgets.list(user_id, month=month, year=year)
    message = f"Found {len(budgets)} budget(s)." if budgets else "No budgets found."
    return ToolResponse.ok(message, budgets)


@tool_boundary("Failed to get budget progress.")
async def get_budget_progress(
    ctx: FinanceContext,
    user_id: str,
    category_identifier: str,
    month: int | None = None,
    year: int | None = None,
) -> ToolResponse:
    target_month, target_year = _target_period(ctx, month, year)
    category_id = await ctx.resolve_id(user_id, "category", category_identifier)
    budget = await ctx.stores.budgets.find_for_period(
        user_id, category_id, target_month, target_year
    )
    if budget is None:
        raise NotFoundError(
            f'No budget found for category "{category_identifier}" in {target_month}/{target_year}.'
        )
    progress = await ctx.stores.budgets.progress(user_id, budget["id"])
    return ToolResponse.ok(
        f"{progress['percentage_used']:.1f}% of the {budget['category_name']} budget used.",
        progress,
    )


@tool_boundary("Failed to retrieve budget summary.")
async def get_budget_summary(
    ctx: FinanceContext, user_id: str, period_description: str | None = None
) -> ToolResponse:
    """Budgeted vs. actual spending for a period phrase (default: this month)."""
    period = period_description or "this month"
    interval = resolve_date_range(period, ctx.now())
    summary = await ctx.stores.budgets.summary(user_id, interval)
    message = (
        f"Budget summary for {period} loaded."
        if summary
        else f"No budget data found for {period}."
    )
    return ToolResponse.ok(message, summary)


@tool_boundary("Failed to identify budget.")
async def identify_budget_for_action(
    ctx: FinanceContext,
    user_id: str,
    category_identifier: str,
    month: int,
    year: int,
    action: str = "delete",
) -> ToolResponse:
    if action not in _PURPOSES:
        raise ValidationError(f"Unsupported budget action: {action!r}.")
    _check_period(month, year)
    return await ctx.identify(
        user_id,
        "budget",
        category_identifier,
        action=action,
        purpose=_PURPOSES[action],
        month=month,
        year=year,
    )


@tool_boundary("Failed to update budget.")
async def execute_confirmed_update_budget(
    ctx: FinanceContext, user_id: str, budget_id: str, new_amount: Decimal | float | int
) -> ToolResponse:
    value = require_positive(new_amount)
    await ctx.gate.execute(user_id, "budget", budget_id, "update", amount=value)
    currency = await ctx.currency_for(user_id)
    return ToolResponse.ok(
        f"Budget (ID: {budget_id}) amount updated to {format_currency(value, currency)}."
    )


@tool_boundary("Failed to delete budget.")
async def execute_confirmed_delete_budget(
    ctx: FinanceContext, user_id: str, budget_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "budget", budget_id, "delete")
    return ToolResponse.ok(f"Budget (ID: {budget_id}) deleted.")
