"""Saving goal tools."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from finbutler.errors import ValidationError
from finbutler.tools._helpers import format_currency, require_positive
from finbutler.tools.context import FinanceContext
from finbutler.tools.intervals import resolve_single_date
from finbutler.tools.response import ToolResponse, tool_boundary


def _future_date(ctx: FinanceContext, description: str) -> date:
    now = ctx.now()
    when = resolve_single_date(description, now, default_to_today=False)
    if when is None:
        raise ValidationError("Invalid target date.")
    if when.date() < now.date():
        raise ValidationError("Target date cannot be in the past.")
    return when.date()


@tool_boundary("Failed to create saving goal.")
async def create_saving_goal(
    ctx: FinanceContext,
    user_id: str,
    goal_name: str,
    target_amount: Decimal | float | int,
    target_date_description: str | None = None,
) -> ToolResponse:
    name = (goal_name or "").strip()
    if not name:
        raise ValidationError("Goal name is required.")
    target = require_positive(target_amount, "Target amount")
    target_date = _future_date(ctx, target_date_description) if target_date_description else None
    goal = await ctx.stores.goals.create(user_id, name, target, target_date)
    return ToolResponse.ok(f'Saving goal "{goal["name"]}" created.', goal)


@tool_boundary("Failed to list saving goals.")
async def list_saving_goals(ctx: FinanceContext, user_id: str) -> ToolResponse:
    goals = await ctx.stores.goals.list(user_id)
    message = f"Found {len(goals)} saving goal(s)." if goals else "No saving goals found."
    return ToolResponse.ok(message, goals)


@tool_boundary("Failed to find saving goal.")
async def find_saving_goal(
    ctx: FinanceContext, user_id: str, goal_identifier: str, action: str = "update"
) -> ToolResponse:
    """Identify a goal to update, delete, or add to/withdraw from."""
    purposes = {
        "update": "update this goal",
        "add_amount": "add money to this goal",
        "withdraw_amount": "withdraw money from this goal",
        "delete": "delete this goal",
    }
    if action not in purposes:
        raise ValidationError(f"Unsupported goal action: {action!r}.")
    return await ctx.identify(
        user_id,
        "goal",
        goal_identifier,
        action=action,
        purpose=purposes[action],
        clarify_message="Which saving goal?",
    )


@tool_boundary("Failed to update saving goal.")
async def execute_confirmed_update_goal(
    ctx: FinanceContext,
    user_id: str,
    goal_id: str,
    new_target_amount: Decimal | float | int | None = None,
    new_target_date_description: str | None = None,
) -> ToolResponse:
    """An empty *new_target_date_description* removes the target date."""
    changes: dict[str, Any] = {}
    if new_target_amount is not None:
        changes["target_amount"] = require_positive(new_target_amount, "Target amount")
    if new_target_date_description is not None:
        if new_target_date_description.strip():
            changes["target_date"] = _future_date(ctx, new_target_date_description)
        else:
            changes["clear_target_date"] = True
    if not changes:
        raise ValidationError("No valid fields provided for update.")

    goal = await ctx.gate.execute(user_id, "goal", goal_id, "update", **changes)
    return ToolResponse.ok(f"Goal (ID: {goal_id}) updated.", goal)


@tool_boundary("Failed to add amount to goal.")
async def execute_add_amount_to_goal(
    ctx: FinanceContext, user_id: str, goal_id: str, amount: Decimal | float | int
) -> ToolResponse:
    value = require_positive(amount)
    goal = await ctx.gate.execute(user_id, "goal", goal_id, "add_amount", amount=value)
    return ToolResponse.ok(f"Amount added to goal (ID: {goal_id}).", goal)


@tool_boundary("Failed to withdraw amount from goal.")
async def execute_withdraw_amount_from_goal(
    ctx: FinanceContext, user_id: str, goal_id: str, amount: Decimal | float | int
) -> ToolResponse:
    value = require_positive(amount)
    goal = await ctx.gate.execute(user_id, "goal", goal_id, "withdraw_amount", amount=value)
    currency = await ctx.currency_for(user_id)
    return ToolResponse.ok(
        f"Amount withdrawn from goal (ID: {goal_id}). "
        f"{format_currency(goal['saved_amount'], currency)} remains saved.",
        goal,
    )


@tool_boundary("Failed to delete saving goal.")
async def execute_confirmed_delete_goal(
    ctx: FinanceContext, user_id: str, goal_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "goal", goal_id, "delete")
    return ToolResponse.ok("Saving goal deleted successfully.")
