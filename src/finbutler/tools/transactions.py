"""Transaction tools: record, list, find extremes, compare periods, and the
gated update/delete."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from finbutler.errors import NotFoundError, ValidationError
from finbutler.stores.transactions import EXTREME_KINDS
from finbutler.tools._helpers import format_currency, require_positive, to_amount
from finbutler.tools.context import FinanceContext
from finbutler.tools.intervals import (
    bucket_unit,
    classify_interval,
    previous_interval,
    resolve_date_range,
    resolve_interval,
    resolve_single_date,
)
from finbutler.tools.resolvers import Clarify, NotFound
from finbutler.tools.response import ToolResponse, tool_boundary

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = ("income", "expense")

_PURPOSES = {
    "update": "update this transaction",
    "delete": "delete this transaction",
}


def _is_income(type: str | None) -> bool | None:
    if type is None:
        return None
    if type not in TRANSACTION_TYPES:
        raise ValidationError(f"Invalid transaction type: {type!r}. Use 'income' or 'expense'.")
    return type == "income"


def percentage_change(current: Decimal, previous: Decimal) -> float:
    """Change from *previous* to *current* in percent; 100 when there was nothing before."""
    if not previous:
        return 100.0
    return round(float((current - previous) / previous * 100), 2)


@tool_boundary("Failed to add transaction.")
async def add_transaction(
    ctx: FinanceContext,
    user_id: str,
    amount: Decimal | float | int,
    description: str,
    type: str,
    account_identifier: str,
    category_identifier: str | None = None,
    date_description: str | None = None,
    transfer_details: str | None = None,
) -> ToolResponse:
    value = require_positive(amount)
    text = (description or "").strip()
    if not text:
        raise ValidationError("Description is required.")
    is_income = _is_income(type)

    account_id = await ctx.resolve_id(user_id, "account", account_identifier)
    category_id = await ctx.resolve_optional_id(user_id, "category", category_identifier)
    when = resolve_single_date(date_description, ctx.now(), default_to_today=False)

    account = await ctx.stores.accounts.find_by_id(user_id, account_id)
    if account is None:
        raise NotFoundError("Account not found.")
    transaction = await ctx.stores.transactions.create(
        user_id,
        account_id=account_id,
        amount=value,
        is_income=bool(is_income),
        currency=account["currency"],
        category_id=category_id,
        description=text,
        transfer=transfer_details,
        created_at=when,
    )
    return ToolResponse.ok("Transaction added.", transaction)


@tool_boundary("Failed to list transactions.")
async def list_transactions(
    ctx: FinanceContext,
    user_id: str,
    account_identifier: str | None = None,
    category_identifier: str | None = None,
    date_description: str | None = None,
    type: str | None = None,
    min_amount: Decimal | float | int | None = None,
    max_amount: Decimal | float | int | None = None,
    search_text: str | None = None,
    limit: int = 10,
) -> ToolResponse:
    if limit <= 0:
        raise ValidationError("Limit must be positive.")
    account_id = await ctx.resolve_optional_id(user_id, "account", account_identifier)
    category_id = await ctx.resolve_optional_id(user_id, "category", category_identifier)
    interval = resolve_date_range(date_description, ctx.now())

    transactions = await ctx.stores.transactions.search(
        user_id,
        text=search_text,
        account_id=account_id,
        category_id=category_id,
        interval=interval,
        is_income=_is_income(type),
        min_amount=to_amount(min_amount) if min_amount is not None else None,
        max_amount=to_amount(max_amount) if max_amount is not None else None,
        limit=limit,
    )
    message = (
        f"Found {len(transactions)} transaction(s)." if transactions else "No transactions found."
    )
    return ToolResponse.ok(message, transactions)


@tool_boundary("Failed to identify transaction.")
async def identify_transaction_for_action(
    ctx: FinanceContext,
    user_id: str,
    identifier: str,
    account_identifier: str | None = None,
    date_description: str | None = None,
    amount_hint: Decimal | float | int | None = None,
    action: str = "delete",
) -> ToolResponse:
    """Find ONE transaction by keywords, narrowed by account, date and approximate amount.

    The amount hint matches within 5% either way.
    """
    if action not in _PURPOSES:
        raise ValidationError(f"Unsupported transaction action: {action!r}.")
    if len((identifier or "").strip()) < 3:
        raise ValidationError("Transaction identifier must be at least 3 characters.")
    account_id = await ctx.resolve_optional_id(user_id, "account", account_identifier)
    interval = resolve_date_range(date_description, ctx.now())
    return await ctx.identify(
        user_id,
        "transaction",
        identifier,
        action=action,
        purpose=_PURPOSES[action],
        clarify_message="Found multiple transactions. Please specify which one by ID:",
        account_id=account_id,
        interval=interval,
        amount_hint=to_amount(amount_hint) if amount_hint is not None else None,
    )


@tool_boundary("Failed to update transaction.")
async def execute_confirmed_update_transaction(
    ctx: FinanceContext,
    user_id: str,
    transaction_id: str,
    new_amount: Decimal | float | int | None = None,
    new_description: str | None = None,
    new_type: str | None = None,
    new_category_identifier: str | None = None,
    new_date_description: str | None = None,
    new_transfer_details: str | None = None,
) -> ToolResponse:
    """Update the given fields; an empty *new_category_identifier* removes the category."""
    fields: dict[str, Any] = {}
    if new_amount is not None:
        fields["amount"] = require_positive(new_amount)
    if new_description is not None:
        if not new_description.strip():
            raise ValidationError("Description cannot be empty.")
        fields["description"] = new_description.strip()
    if new_type is not None:
        fields["is_income"] = _is_income(new_type)
    if new_transfer_details is not None:
        fields["transfer"] = new_transfer_details
    if new_date_description is not None:
        when = resolve_single_date(new_date_description, ctx.now(), default_to_today=False)
        if when is None:
            raise ValidationError("Invalid date for update.")
        fields["created_at"] = when
    if new_category_identifier is not None:
        if not new_category_identifier.strip():
            fields["category_id"] = None
        else:
            outcome = await ctx.resolvers["category"].resolve(user_id, new_category_identifier)
            if isinstance(outcome, Clarify):
                raise ValidationError(
                    f'Multiple categories match "{new_category_identifier}". '
                    "Please be more specific."
                )
            if isinstance(outcome, NotFound):
                raise NotFoundError(outcome.reason)
            fields["category_id"] = outcome.id

    if not fields:
        raise ValidationError("No valid fields provided for update.")

    transaction = await ctx.gate.execute(user_id, "transaction", transaction_id, "update", **fields)
    return ToolResponse.ok(f"Transaction (ID: {transaction_id}) updated.", transaction)


@tool_boundary("Failed to delete transaction.")
async def execute_confirmed_delete_transaction(
    ctx: FinanceContext, user_id: str, transaction_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "transaction", transaction_id, "delete")
    return ToolResponse.ok("Transaction deleted successfully.")


@tool_boundary("Failed to find transaction.")
async def get_extreme_transaction(
    ctx: FinanceContext,
    user_id: str,
    type: str,
    date_description: str | None = None,
    account_identifier: str | None = None,
) -> ToolResponse:
    """Highest or lowest income or expense; all time unless a period is given."""
    if type not in EXTREME_KINDS:
        raise ValidationError(f"Invalid extreme transaction type: {type!r}.")
    account_id = await ctx.resolve_optional_id(user_id, "account", account_identifier)
    interval = resolve_date_range(date_description, ctx.now())

    transaction = await ctx.stores.transactions.extreme(
        user_id, type, interval=interval, account_id=account_id
    )
    if transaction is None:
        return ToolResponse.ok("No matching transaction found.")
    amount = format_currency(transaction["amount"], transaction.get("currency"))
    return ToolResponse.ok(
        f'The {type.replace("_", " ")} transaction is "{transaction.get("description")}" '
        f"for {amount} on {str(transaction['created_at'])[:10]} "
        f'in account "{transaction.get("account_name") or "N/A"}" '
        f"(Category: {transaction.get('category_name') or 'Uncategorized'}).",
        transaction,
    )


@tool_boundary("Failed to compare spending.")
async def compare_spending(
    ctx: FinanceContext,
    user_id: str,
    duration: str | None = None,
    account_identifier: str | None = None,
) -> ToolResponse:
    """Income and expense totals for a period against the period before it.

    *duration* is ``today``, ``thisWeek``, ``thisMonth``, ``thisYear``,
    ``all`` or ``YYYY-MM-DD,YYYY-MM-DD`` (default ``thisMonth``). The
    previous period keeps the calendar shape: the month before a month, the
    year before a year.
    """
    account_id = await ctx.resolve_optional_id(user_id, "account", account_identifier)
    current = await resolve_interval(
        duration,
        ctx.now(),
        earliest_record=lambda: ctx.stores.transactions.earliest(user_id),
    )
    previous = previous_interval(current)
    shape = classify_interval(current)

    now_totals = await ctx.stores.transactions.totals(user_id, current, account_id)
    then_totals = await ctx.stores.transactions.totals(user_id, previous, account_id)
    currency = await ctx.currency_for(user_id)

    data = {
        "current": {**current.to_dict(), **now_totals},
        "previous": {**previous.to_dict(), **then_totals},
        "shape": shape.kind.value,
        "days": shape.days,
        "bucket": bucket_unit(shape),
        "income_change": percentage_change(now_totals["income"], then_totals["income"]),
        "expense_change": percentage_change(now_totals["expense"], then_totals["expense"]),
        "net_change": percentage_change(now_totals["net"], then_totals["net"]),
    }
    logger.debug("Compared %s against %s for user %s", current, previous, user_id)
    return ToolResponse.ok(
        f"Spent {format_currency(now_totals['expense'], currency)} "
        f"({data['expense_change']:+.2f}% vs. the previous {shape.kind.value}).",
        data,
    )
