"""Per-domain wiring of the resolvers and the action gate.

Labels are what a human sees when picking between candidates; summaries are
what they see before confirming a protected action. Both carry enough context
to tell similar rows apart from text alone.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING, Any

from finbutler.tools._helpers import format_currency, format_day
from finbutler.tools.gate import ActionGate, GatedDomain
from finbutler.tools.resolvers import (
    CLARIFY_LIMIT,
    EntityResolver,
    NotFound,
    Resolved,
    ResolutionOutcome,
    Resolvers,
    looks_like_identifier,
)

if TYPE_CHECKING:
    from finbutler.stores import FinanceStores

Row = dict[str, Any]

_HINT_TOLERANCE = Decimal("0.05")


# ---------------------------------------------------------------------------
# Labels and summaries
# ---------------------------------------------------------------------------


def account_label(row: Row) -> str:
    return f"{row['name']} ({format_currency(row.get('balance'), row.get('currency'))})"


def account_summary(row: Row) -> str:
    balance = format_currency(row.get("balance"), row.get("currency"))
    return f"Account: {row['name']} (Balance: {balance})"


def category_label(row: Row) -> str:
    return row["name"]


def category_summary(row: Row) -> str:
    return f"Category: {row['name']}"


def budget_summary(row: Row, currency: str) -> str:
    return (
        f"Budget for {row.get('category_name') or 'Unknown category'} "
        f"({row['month']}/{row['year']}): {format_currency(row['amount'], currency)}"
    )


def debt_label(row: Row, currency: str) -> str:
    return (
        f"{row['type']} - {row.get('description') or 'No description'} "
        f"(w/ {row.get('counterparty_name') or 'unknown'}, "
        f"{format_currency(row['amount'], currency)})"
    )


def debt_summary(row: Row, currency: str) -> str:
    return (
        f"Debt: {row.get('description') or 'No description'} "
        f"(w/ {row.get('counterparty_name') or 'unknown'}, Type: {row['type']}, "
        f"Amount: {format_currency(row['amount'], currency)}, Paid: {row.get('is_paid', False)})"
    )


def transaction_summary(row: Row) -> str:
    sign = "+" if row.get("is_income") else "-"
    text = row.get("description") or row.get("transfer") or "No description"
    amount = format_currency(row["amount"], row.get("currency"))
    return f"{format_day(row.get('created_at'))}: {text} ({sign}{amount})"


def goal_summary(row: Row, currency: str) -> str:
    return (
        f"Goal: {row['name']} (Target: {format_currency(row['target_amount'], currency)}, "
        f"Saved: {format_currency(row.get('saved_amount'), currency)}, "
        f"Due: {format_day(row.get('target_date'))})"
    )


def user_label(row: Row) -> str:
    return f"{row['name']} <{row['email']}>" if row.get("email") else row["name"]


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def authorize_debt(row: Row, user_id: str, action: str) -> bool:
    """Either party may mark a debt paid; only its creator may change or delete it."""
    if str(row.get("created_by")) == user_id:
        return True
    return action == "mark_paid" and str(row.get("counterparty_id")) == user_id


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _transaction_candidates(stores: FinanceStores) -> Callable[..., Any]:
    async def find(
        user_id: str,
        text: str,
        limit: int,
        *,
        account_id: str | None = None,
        interval: Any = None,
        amount_hint: Decimal | None = None,
    ) -> list[Row]:
        bounds: dict[str, Decimal] = {}
        if amount_hint is not None:
            bounds = {
                "min_amount": amount_hint * (1 - _HINT_TOLERANCE),
                "max_amount": amount_hint * (1 + _HINT_TOLERANCE),
            }
        return await stores.transactions.search(
            user_id, text=text, account_id=account_id, interval=interval, limit=limit, **bounds
        )

    return find


def build_resolvers(
    stores: FinanceStores, *, currency: str, limit: int = CLARIFY_LIMIT
) -> Resolvers:
    def make(domain: str, noun: str, store: Any, label: Callable[[Row], str], **kwargs: Any):
        if "find_candidates" not in kwargs:
            kwargs["find_candidates"] = store.find_by_fuzzy_key
        return EntityResolver(
            domain, noun, find_by_id=store.find_by_id, label=label, limit=limit, **kwargs
        )

    return Resolvers(
        {
            "account": make("account", "Account", stores.accounts, account_label),
            "category": make("category", "Category", stores.categories, category_label),
            "goal": make("goal", "Goal", stores.goals, partial(goal_summary, currency=currency)),
            "debt": make("debt", "Debt", stores.debts, partial(debt_label, currency=currency)),
            "transaction": make(
                "transaction",
                "Transaction",
                stores.transactions,
                transaction_summary,
                find_candidates=_transaction_candidates(stores),
                not_found=lambda text: "No matching transaction found.",
            ),
            "user": make(
                "user",
                "User",
                stores.users,
                user_label,
                find_candidates=stores.users.find_by_exact_key,
                not_found=lambda text: f'User "{text}" not found.',
            ),
        }
    )


def _budget_resolver(stores: FinanceStores, resolvers: Resolvers) -> Callable[..., Any]:
    async def resolve(
        user_id: str, raw_identifier: str | None, *, month: int, year: int
    ) -> ResolutionOutcome:
        """A budget is named by its category plus the month it covers."""
        text = (raw_identifier or "").strip()
        if looks_like_identifier(text):
            budget = await stores.budgets.find_by_id(user_id, text)
            if budget is not None:
                return Resolved(str(budget["id"]))

        outcome = await resolvers["category"].resolve(user_id, text)
        if not isinstance(outcome, Resolved):
            return outcome
        budget = await stores.budgets.find_for_period(user_id, outcome.id, month, year)
        if budget is None:
            return NotFound(f'No budget found for category "{text}" in {month}/{year}.')
        return Resolved(str(budget["id"]))

    return resolve


def build_gate(stores: FinanceStores, resolvers: Resolvers, *, currency: str) -> ActionGate:
    return ActionGate(
        [
            GatedDomain(
                name="account",
                noun="Account",
                resolve=resolvers["account"].resolve,
                fetch=stores.accounts.find_by_id,
                summarize=account_summary,
                mutations={"rename": stores.accounts.rename, "delete": stores.accounts.delete},
            ),
            GatedDomain(
                name="category",
                noun="Category",
                resolve=resolvers["category"].resolve,
                fetch=stores.categories.find_by_id,
                summarize=category_summary,
                mutations={"rename": stores.categories.rename, "delete": stores.categories.delete},
            ),
            GatedDomain(
                name="budget",
                noun="Budget",
                resolve=_budget_resolver(stores, resolvers),
                fetch=stores.budgets.find_by_id,
                summarize=partial(budget_summary, currency=currency),
                mutations={"update": stores.budgets.update_amount, "delete": stores.budgets.delete},
            ),
            GatedDomain(
                name="debt",
                noun="Debt",
                resolve=resolvers["debt"].resolve,
                fetch=stores.debts.find_by_id,
                summarize=partial(debt_summary, currency=currency),
                mutations={
                    "mark_paid": stores.debts.mark_paid,
                    "update": stores.debts.update_details,
                    "delete": stores.debts.delete,
                },
                authorize=authorize_debt,
            ),
            GatedDomain(
                name="transaction",
                noun="Transaction",
                resolve=resolvers["transaction"].resolve,
                fetch=stores.transactions.find_by_id,
                summarize=transaction_summary,
                mutations={
                    "update": stores.transactions.update,
                    "delete": stores.transactions.delete,
                },
            ),
            GatedDomain(
                name="goal",
                noun="Goal",
                resolve=resolvers["goal"].resolve,
                fetch=stores.goals.find_by_id,
                summarize=partial(goal_summary, currency=currency),
                mutations={
                    "update": stores.goals.update,
                    "add_amount": stores.goals.add_amount,
                    "withdraw_amount": stores.goals.withdraw_amount,
                    "delete": stores.goals.delete,
                },
            ),
        ]
    )
