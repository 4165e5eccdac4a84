"""Account tools: create, list, balance, and the gated rename/delete."""

from __future__ import annotations

from decimal import Decimal

from finbutler.errors import ValidationError
from finbutler.tools._helpers import format_currency, to_amount
from finbutler.tools.context import FinanceContext
from finbutler.tools.response import ToolResponse, tool_boundary

_PURPOSES = {
    "rename": "rename this account",
    "delete": "delete this account (deleting also removes all of its transactions)",
}


@tool_boundary("Failed to create account.")
async def create_account(
    ctx: FinanceContext,
    user_id: str,
    account_name: str,
    initial_balance: Decimal | float | int = 0,
    currency: str | None = None,
) -> ToolResponse:
    name = (account_name or "").strip()
    if not name:
        raise ValidationError("Account name is required.")
    balance = to_amount(initial_balance)
    if balance < 0:
        raise ValidationError("Initial balance cannot be negative.")
    code = await ctx.currency_for(user_id, currency)
    account = await ctx.stores.accounts.create(user_id, name, balance, code)
    return ToolResponse.ok(f'Account "{name}" created.', account)


@tool_boundary("Failed to list accounts.")
async def list_accounts(
    ctx: FinanceContext, user_id: str, search_name: str | None = None, recent: int = 0
) -> ToolResponse:
    """Accounts by name, or the *recent* newest (which overrides *search_name*)."""
    accounts = await ctx.stores.accounts.list(user_id, search=search_name, recent=recent)
    message = f"Found {len(accounts)} account(s)." if accounts else "No accounts found."
    return ToolResponse.ok(message, accounts)


@tool_boundary("Failed to get account balance.")
async def get_account_balance(
    ctx: FinanceContext, user_id: str, account_identifier: str
) -> ToolResponse:
    account_id = await ctx.resolve_id(user_id, "account", account_identifier)
    account = await ctx.stores.accounts.find_by_id(user_id, account_id)
    if account is None:
        return ToolResponse.fail("Account not found.")
    balance = format_currency(account["balance"], account["currency"])
    return ToolResponse.ok(
        f"Balance for {account['name']} is {balance}.",
        {
            "id": account["id"],
            "name": account["name"],
            "balance": account["balance"],
            "currency": account["currency"],
        },
    )


@tool_boundary("Failed to identify account.")
async def identify_account_for_action(
    ctx: FinanceContext, user_id: str, account_identifier: str, action: str = "delete"
) -> ToolResponse:
    """Identify an account to rename or delete; returns its ID for confirmation."""
    if action not in _PURPOSES:
        raise ValidationError(f"Unsupported account action: {action!r}.")
    return await ctx.identify(
        user_id, "account", account_identifier, action=action, purpose=_PURPOSES[action]
    )


@tool_boundary("Failed to delete account.")
async def execute_confirmed_delete_account(
    ctx: FinanceContext, user_id: str, account_id: str
) -> ToolResponse:
    await ctx.gate.execute(user_id, "account", account_id, "delete")
    return ToolResponse.ok(f"Account (ID: {account_id}) and its transactions deleted.")


@tool_boundary("Failed to rename account.")
async def execute_confirmed_update_account_name(
    ctx: FinanceContext, user_id: str, account_id: str, new_account_name: str
) -> ToolResponse:
    name = (new_account_name or "").strip()
    if not name:
        raise ValidationError("New account name is required.")
    account = await ctx.gate.execute(user_id, "account", account_id, "rename", name=name)
    return ToolResponse.ok(f'Account (ID: {account_id}) renamed to "{name}".', account)
