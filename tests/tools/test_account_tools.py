"""Tests for the account tools against the in-memory stores."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from finbutler.tools import accounts
from tests._fakes import add_user

pytestmark = pytest.mark.unit


async def _account(ctx, user_id, name="Cash", balance="1000"):
    return await ctx.stores.accounts.create(user_id, name, Decimal(balance), "INR")


class TestCreateAccount:
    async def test_uses_default_currency(self, ctx, alice):
        result = await accounts.create_account(ctx, alice, "Cash", 100)
        assert result["success"] is True
        assert result["message"] == 'Account "Cash" created.'
        assert result["data"]["currency"] == "INR"
        assert result["data"]["balance"] == Decimal("100.00")

    async def test_uses_preferred_currency(self, ctx, tables):
        carol = add_user(tables, "Carol", preferred_currency="usd")
        result = await accounts.create_account(ctx, carol, "Checking")
        assert result["data"]["currency"] == "USD"

    async def test_explicit_currency_wins(self, ctx, alice):
        result = await accounts.create_account(ctx, alice, "Travel", 0, currency="eur")
        assert result["data"]["currency"] == "EUR"

    async def test_invalid_currency(self, ctx, alice):
        result = await accounts.create_account(ctx, alice, "Travel", 0, currency="EURO")
        assert result["success"] is False
        assert "Invalid currency code" in result["error"]

    async def test_blank_name(self, ctx, alice):
        result = await accounts.create_account(ctx, alice, "   ")
        assert result == {"success": False, "error": "Account name is required."}

    async def test_negative_balance(self, ctx, alice):
        result = await accounts.create_account(ctx, alice, "Cash", -5)
        assert result == {"success": False, "error": "Initial balance cannot be negative."}


class TestListAccounts:
    async def test_search(self, ctx, alice, bob):
        await _account(ctx, alice, "Cash")
        await _account(ctx, alice, "Savings")
        await _account(ctx, bob, "Cash Box")

        result = await accounts.list_accounts(ctx, alice, search_name="CASH")
        assert [a["name"] for a in result["data"]] == ["Cash"]
        assert result["message"] == "Found 1 account(s)."

    async def test_recent_overrides_search(self, ctx, alice):
        for name in ("First", "Second", "Third"):
            await _account(ctx, alice, name)

        result = await accounts.list_accounts(ctx, alice, search_name="First", recent=2)
        assert [a["name"] for a in result["data"]] == ["Third", "Second"]

    async def test_empty(self, ctx, alice):
        result = await accounts.list_accounts(ctx, alice)
        assert result == {"success": True, "message": "No accounts found.", "data": []}


class TestGetAccountBalance:
    async def test_by_name(self, ctx, alice):
        await _account(ctx, alice, "Cash", "1250")
        result = await accounts.get_account_balance(ctx, alice, "cash")
        assert result["message"] == "Balance for Cash is INR 1,250.00."
        assert result["data"]["balance"] == Decimal("1250")

    async def test_by_id(self, ctx, alice):
        account = await _account(ctx, alice)
        result = await accounts.get_account_balance(ctx, alice, account["id"])
        assert result["data"]["id"] == account["id"]

    async def test_ambiguous_name_asks_which(self, ctx, alice):
        await _account(ctx, alice, "Cash")
        await _account(ctx, alice, "Cash Box")
        result = await accounts.get_account_balance(ctx, alice, "cash")
        assert result["clarification_needed"] is True
        assert result["message"] == "Which account do you mean?"
        assert [o["label"] for o in result["options"]] == [
            "Cash (INR 1,000.00)",
            "Cash Box (INR 1,000.00)",
        ]

    async def test_other_users_accounts_are_invisible(self, ctx, alice, bob):
        foreign = await _account(ctx, bob, "Bob Wallet")
        by_name = await accounts.get_account_balance(ctx, alice, "bob wallet")
        by_id = await accounts.get_account_balance(ctx, alice, foreign["id"])
        assert by_name == {"success": False, "error": 'Account like "bob wallet" not found.'}
        assert by_id["success"] is False


class TestGatedAccountActions:
    async def test_identify_asks_for_confirmation(self, ctx, alice):
        account = await _account(ctx, alice)
        result = await accounts.identify_account_for_action(ctx, alice, "cash")
        assert result["confirmation_needed"] is True
        assert result["id"] == account["id"]
        assert result["details"] == "Account: Cash (Balance: INR 1,000.00)"
        assert "Please confirm you want to delete this account" in result["message"]
        assert await ctx.stores.accounts.find_by_id(alice, account["id"]) is not None

    async def test_unsupported_action(self, ctx, alice):
        result = await accounts.identify_account_for_action(ctx, alice, "cash", action="archive")
        assert result == {"success": False, "error": "Unsupported account action: 'archive'."}

    async def test_delete_removes_transactions(self, ctx, alice, tables):
        account = await _account(ctx, alice)
        await ctx.stores.transactions.create(
            alice, account_id=account["id"], amount=Decimal("10"), is_income=False, currency="INR"
        )

        result = await accounts.execute_confirmed_delete_account(ctx, alice, account["id"])
        assert result["success"] is True
        assert tables.accounts == {}
        assert tables.transactions == {}

    async def test_delete_of_foreign_account_is_not_found(self, ctx, alice, bob, tables):
        foreign = await _account(ctx, bob)
        result = await accounts.execute_confirmed_delete_account(ctx, alice, foreign["id"])
        assert result == {"success": False, "error": "Account not found."}
        assert foreign["id"] in tables.accounts

    async def test_delete_with_unknown_id(self, ctx, alice):
        result = await accounts.execute_confirmed_delete_account(ctx, alice, str(uuid.uuid4()))
        assert result == {"success": False, "error": "Account not found."}

    async def test_rename(self, ctx, alice):
        account = await _account(ctx, alice)
        result = await accounts.execute_confirmed_update_account_name(
            ctx, alice, account["id"], " Wallet "
        )
        assert result["message"] == f'Account (ID: {account["id"]}) renamed to "Wallet".'
        assert result["data"]["name"] == "Wallet"

    async def test_rename_requires_name(self, ctx, alice):
        account = await _account(ctx, alice)
        result = await accounts.execute_confirmed_update_account_name(ctx, alice, account["id"], "")
        assert result == {"success": False, "error": "New account name is required."}
