"""Tests for the transaction tools, including balance bookkeeping and comparisons."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from finbutler.tools import transactions
from finbutler.tools.transactions import percentage_change

pytestmark = pytest.mark.unit


@pytest.fixture
async def cash(ctx, alice):
    return await ctx.stores.accounts.create(alice, "Cash", Decimal("1000.00"), "INR")


def _balance(tables, account) -> Decimal:
    return tables.accounts[account["id"]]["balance"]


async def _add(ctx, user_id, account, amount, description, is_income=False, when=None, **kwargs):
    return await ctx.stores.transactions.create(
        user_id,
        account_id=account["id"],
        amount=Decimal(amount),
        is_income=is_income,
        currency="INR",
        description=description,
        created_at=when,
        **kwargs,
    )


class TestPercentageChange:
    def test_increase(self):
        assert percentage_change(Decimal("150"), Decimal("100")) == 50.0

    def test_decrease(self):
        assert percentage_change(Decimal("75"), Decimal("100")) == -25.0

    def test_nothing_before(self):
        assert percentage_change(Decimal("10"), Decimal("0")) == 100.0


class TestAddTransaction:
    async def test_expense_lowers_balance(self, ctx, alice, cash, tables):
        result = await transactions.add_transaction(ctx, alice, 250, "Groceries", "expense", "cash")
        assert result["message"] == "Transaction added."
        assert result["data"]["account_name"] == "Cash"
        assert _balance(tables, cash) == Decimal("750.00")

    async def test_income_raises_balance(self, ctx, alice, cash, tables):
        await transactions.add_transaction(ctx, alice, 500, "Salary", "income", "Cash")
        assert _balance(tables, cash) == Decimal("1500.00")

    async def test_date_phrase(self, ctx, alice, cash):
        result = await transactions.add_transaction(
            ctx, alice, 20, "Coffee", "expense", "cash", date_description="yesterday"
        )
        assert result["data"]["created_at"] == "2024-03-14T00:00:00+00:00"

    async def test_range_is_not_a_date(self, ctx, alice, cash, tables):
        result = await transactions.add_transaction(
            ctx, alice, 20, "Coffee", "expense", "cash", date_description="last month"
        )
        assert result["success"] is False
        assert result["error"].startswith("Expected a single date but received a range")
        assert tables.transactions == {}

    async def test_with_category(self, ctx, alice, cash):
        await ctx.stores.categories.create(alice, "Food")
        result = await transactions.add_transaction(
            ctx, alice, 20, "Lunch", "expense", "cash", category_identifier="food"
        )
        assert result["data"]["category_name"] == "Food"

    async def test_unknown_category(self, ctx, alice, cash):
        result = await transactions.add_transaction(
            ctx, alice, 20, "Lunch", "expense", "cash", category_identifier="Rent"
        )
        assert result == {"success": False, "error": 'Category like "Rent" not found.'}

    async def test_invalid_type(self, ctx, alice, cash):
        result = await transactions.add_transaction(ctx, alice, 20, "x", "transfer", "cash")
        assert result["error"] == "Invalid transaction type: 'transfer'. Use 'income' or 'expense'."

    async def test_blank_description(self, ctx, alice, cash):
        result = await transactions.add_transaction(ctx, alice, 20, "  ", "expense", "cash")
        assert result == {"success": False, "error": "Description is required."}

    async def test_amount_must_be_positive(self, ctx, alice, cash):
        result = await transactions.add_transaction(ctx, alice, 0, "x", "expense", "cash")
        assert result == {"success": False, "error": "Amount must be positive."}

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), "ten"])
    async def test_amount_must_be_a_number(self, ctx, alice, cash, tables, amount):
        result = await transactions.add_transaction(ctx, alice, amount, "x", "expense", "cash")
        assert result == {"success": False, "error": "Amount must be a number."}
        assert _balance(tables, cash) == Decimal("1000.00")


class TestListTransactions:
    async def test_filters(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "120", "Coffee beans")
        await _add(ctx, alice, cash, "5000", "Salary", is_income=True)
        await _add(ctx, alice, cash, "80", "Coffee", when=datetime(2024, 1, 5, tzinfo=UTC))

        result = await transactions.list_transactions(
            ctx, alice, date_description="this month", type="expense", search_text="coffee"
        )
        assert [t["description"] for t in result["data"]] == ["Coffee beans"]
        assert result["message"] == "Found 1 transaction(s)."

    async def test_amount_bounds_and_newest_first(self, ctx, alice, cash):
        for amount, text in (("10", "a"), ("50", "b"), ("90", "c")):
            await _add(ctx, alice, cash, amount, text)

        result = await transactions.list_transactions(ctx, alice, min_amount=20, max_amount=100)
        assert [t["description"] for t in result["data"]] == ["c", "b"]

    async def test_limit(self, ctx, alice, cash):
        for text in ("a", "b", "c"):
            await _add(ctx, alice, cash, "1", text)
        result = await transactions.list_transactions(ctx, alice, limit=2)
        assert len(result["data"]) == 2

    async def test_non_positive_limit(self, ctx, alice):
        result = await transactions.list_transactions(ctx, alice, limit=0)
        assert result == {"success": False, "error": "Limit must be positive."}

    async def test_none_found(self, ctx, alice):
        result = await transactions.list_transactions(ctx, alice)
        assert result["message"] == "No transactions found."

    async def test_year_zero_period(self, ctx, alice):
        result = await transactions.list_transactions(ctx, alice, date_description="0000-05")
        assert result == {
            "success": False,
            "error": 'Could not understand the date/period: "0000-05"',
        }


class TestGatedTransactionActions:
    async def test_short_identifier(self, ctx, alice):
        result = await transactions.identify_transaction_for_action(ctx, alice, "ab")
        assert result == {
            "success": False,
            "error": "Transaction identifier must be at least 3 characters.",
        }

    async def test_ambiguous_match(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "120", "Coffee")
        await _add(ctx, alice, cash, "450", "Coffee with team")

        result = await transactions.identify_transaction_for_action(ctx, alice, "coffee")
        assert result["message"] == "Found multiple transactions. Please specify which one by ID:"
        assert len(result["options"]) == 2

    async def test_amount_hint_narrows_within_five_percent(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "120", "Coffee")
        team = await _add(ctx, alice, cash, "450", "Coffee with team")

        result = await transactions.identify_transaction_for_action(
            ctx, alice, "coffee", amount_hint=440
        )
        assert result["confirmation_needed"] is True
        assert result["id"] == team["id"]
        assert result["details"] == "2024-03-01: Coffee with team (-INR 450.00)"

    async def test_date_narrows(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "120", "Coffee")
        old = await _add(ctx, alice, cash, "99", "Coffee", when=datetime(2024, 1, 5, tzinfo=UTC))

        result = await transactions.identify_transaction_for_action(
            ctx, alice, "coffee", date_description="january 2024"
        )
        assert result["id"] == old["id"]

    async def test_nothing_matches(self, ctx, alice, cash):
        result = await transactions.identify_transaction_for_action(ctx, alice, "rent")
        assert result == {"success": False, "error": "No matching transaction found."}

    async def test_update_amount_rebalances(self, ctx, alice, cash, tables):
        tx = await _add(ctx, alice, cash, "200", "Dinner")
        assert _balance(tables, cash) == Decimal("800.00")

        result = await transactions.execute_confirmed_update_transaction(
            ctx, alice, tx["id"], new_amount=150
        )
        assert result["success"] is True
        assert _balance(tables, cash) == Decimal("850.00")

    async def test_update_type_flips_sign(self, ctx, alice, cash, tables):
        tx = await _add(ctx, alice, cash, "200", "Refund")
        await transactions.execute_confirmed_update_transaction(
            ctx, alice, tx["id"], new_type="income"
        )
        assert _balance(tables, cash) == Decimal("1200.00")

    async def test_empty_category_removes_it(self, ctx, alice, cash):
        food = await ctx.stores.categories.create(alice, "Food")
        tx = await _add(ctx, alice, cash, "20", "Lunch", category_id=food["id"])

        result = await transactions.execute_confirmed_update_transaction(
            ctx, alice, tx["id"], new_category_identifier=""
        )
        assert result["data"]["category_id"] is None

    async def test_ambiguous_new_category(self, ctx, alice, cash):
        await ctx.stores.categories.create(alice, "Food")
        await ctx.stores.categories.create(alice, "Fast food")
        tx = await _add(ctx, alice, cash, "20", "Lunch")

        result = await transactions.execute_confirmed_update_transaction(
            ctx, alice, tx["id"], new_category_identifier="food"
        )
        assert result["error"] == 'Multiple categories match "food". Please be more specific.'

    async def test_update_requires_a_field(self, ctx, alice, cash):
        tx = await _add(ctx, alice, cash, "20", "Lunch")
        result = await transactions.execute_confirmed_update_transaction(ctx, alice, tx["id"])
        assert result == {"success": False, "error": "No valid fields provided for update."}

    async def test_delete_restores_balance(self, ctx, alice, cash, tables):
        tx = await _add(ctx, alice, cash, "200", "Dinner")
        result = await transactions.execute_confirmed_delete_transaction(ctx, alice, tx["id"])
        assert result["message"] == "Transaction deleted successfully."
        assert _balance(tables, cash) == Decimal("1000.00")

    async def test_delete_twice(self, ctx, alice, cash):
        tx = await _add(ctx, alice, cash, "200", "Dinner")
        await transactions.execute_confirmed_delete_transaction(ctx, alice, tx["id"])
        result = await transactions.execute_confirmed_delete_transaction(ctx, alice, tx["id"])
        assert result == {"success": False, "error": "Transaction not found."}


class TestExtremeTransaction:
    async def test_highest_expense_all_time(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "20000", "Rent", when=datetime(2023, 7, 1, tzinfo=UTC))
        await _add(ctx, alice, cash, "300", "Groceries")

        result = await transactions.get_extreme_transaction(ctx, alice, "highest_expense")
        assert result["message"] == (
            'The highest expense transaction is "Rent" for INR 20,000.00 on 2023-07-01 '
            'in account "Cash" (Category: Uncategorized).'
        )

    async def test_lowest_income_in_period(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "10", "Interest", is_income=True)
        await _add(
            ctx, alice, cash, "5", "Cashback", is_income=True, when=datetime(2023, 7, 1, tzinfo=UTC)
        )

        result = await transactions.get_extreme_transaction(
            ctx, alice, "lowest_income", date_description="this month"
        )
        assert result["data"]["description"] == "Interest"

    async def test_nothing_found(self, ctx, alice):
        result = await transactions.get_extreme_transaction(ctx, alice, "highest_income")
        assert result == {"success": True, "message": "No matching transaction found."}

    async def test_invalid_kind(self, ctx, alice):
        result = await transactions.get_extreme_transaction(ctx, alice, "biggest")
        assert result == {"success": False, "error": "Invalid extreme transaction type: 'biggest'."}


class TestCompareSpending:
    async def test_month_against_previous_month(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "1500", "March rent", when=datetime(2024, 3, 2, tzinfo=UTC))
        await _add(ctx, alice, cash, "1000", "Feb rent", when=datetime(2024, 2, 29, tzinfo=UTC))
        await _add(ctx, alice, cash, "999", "Old", when=datetime(2024, 1, 31, tzinfo=UTC))

        result = await transactions.compare_spending(ctx, alice)
        data = result["data"]
        assert result["message"] == "Spent INR 1,500.00 (+50.00% vs. the previous month)."
        assert data["previous"]["start"] == "2024-02-01T00:00:00+00:00"
        assert data["previous"]["end"] == "2024-02-29T23:59:59.999000+00:00"
        assert data["previous"]["expense"] == Decimal("1000")
        assert (data["shape"], data["days"], data["bucket"]) == ("month", 31, "day")
        assert data["expense_change"] == 50.0
        assert data["net_change"] == 50.0
        assert data["income_change"] == 100.0

    async def test_last_millisecond_of_month_counts(self, ctx, alice, cash):
        edge = datetime(2024, 2, 29, 23, 59, 59, 999000, tzinfo=UTC)
        await _add(ctx, alice, cash, "40", "Late night", when=edge)

        result = await transactions.compare_spending(ctx, alice, "thisMonth")
        assert result["data"]["previous"]["expense"] == Decimal("40")

    async def test_all_time_reaches_first_record(self, ctx, alice, cash):
        await _add(ctx, alice, cash, "10", "Ancient", when=datetime(2021, 5, 1, tzinfo=UTC))

        result = await transactions.compare_spending(ctx, alice, "all")
        assert result["data"]["current"]["start"] == "2021-01-01T00:00:00+00:00"
        assert result["data"]["current"]["expense"] == Decimal("10")

    async def test_bad_custom_range(self, ctx, alice):
        result = await transactions.compare_spending(ctx, alice, "2024-03-10,2024-03-01")
        assert result == {
            "success": False,
            "error": "Invalid custom date range format or order.",
        }
