"""Tests for TransactionStore SQL and balance bookkeeping."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from finbutler.errors import NotFoundError, ValidationError
from finbutler.models import Interval
from finbutler.stores.transactions import TransactionStore

pytestmark = pytest.mark.unit

USER = str(uuid.uuid4())
ACCOUNT = uuid.uuid4()
OTHER_ACCOUNT = uuid.uuid4()
TX = str(uuid.uuid4())


class _AsyncCM:
    """Simple async context manager returning a fixed value."""

    def __init__(self, value):
        self._value = value

    async def __aenter__(self):
        return self._value

    async def __aexit__(self, *args):
        return False


def _make_pool_and_conn():
    conn = AsyncMock()
    conn.transaction = MagicMock(return_value=_AsyncCM(None))
    pool = MagicMock()
    pool.acquire = MagicMock(return_value=_AsyncCM(conn))
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchrow = AsyncMock(return_value=None)
    pool.fetchval = AsyncMock(return_value=None)
    return pool, conn


def _tx_row(**overrides):
    row = {
        "id": uuid.UUID(TX),
        "owner_id": uuid.UUID(USER),
        "account_id": ACCOUNT,
        "account_name": "Cash",
        "category_id": None,
        "category_name": None,
        "amount": Decimal("25.00"),
        "is_income": False,
        "description": "Lunch",
        "transfer": None,
        "currency": "INR",
        "created_at": datetime(2024, 3, 1, tzinfo=UTC),
        "updated_at": datetime(2024, 3, 1, tzinfo=UTC),
    }
    row.update(overrides)
    return row


def _balance_deltas(conn) -> list[tuple]:
    return [
        (c.args[1], c.args[2])
        for c in conn.execute.await_args_list
        if "UPDATE accounts SET balance" in c.args[0]
    ]


class TestCreate:
    async def test_expense_subtracts_from_balance(self):
        pool, conn = _make_pool_and_conn()
        conn.fetchrow.return_value = {"id": uuid.UUID(TX)}
        pool.fetchrow.return_value = _tx_row()

        result = await TransactionStore(pool).create(
            USER,
            account_id=str(ACCOUNT),
            amount=Decimal("25.00"),
            is_income=False,
            currency="INR",
            description="Lunch",
        )

        assert result["id"] == TX
        assert result["created_at"] == "2024-03-01T00:00:00+00:00"
        assert _balance_deltas(conn) == [(str(ACCOUNT), Decimal("-25.00"))]
        conn.transaction.assert_called_once()

    async def test_missing_date_defers_to_database_clock(self):
        pool, conn = _make_pool_and_conn()
        conn.fetchrow.return_value = {"id": uuid.UUID(TX)}
        pool.fetchrow.return_value = _tx_row()

        await TransactionStore(pool).create(
            USER, account_id=str(ACCOUNT), amount=Decimal("1"), is_income=True, currency="INR"
        )

        sql, *args = conn.fetchrow.await_args.args
        assert "COALESCE($9, now())" in sql
        assert args[-1] is None


class TestUpdate:
    async def test_moves_balance_between_accounts(self):
        pool, conn = _make_pool_and_conn()
        conn.fetchrow.side_effect = [
            {"account_id": ACCOUNT, "amount": Decimal("25.00"), "is_income": False},
            {"account_id": OTHER_ACCOUNT, "amount": Decimal("40.00"), "is_income": True},
        ]
        pool.fetchrow.return_value = _tx_row(account_id=OTHER_ACCOUNT)

        await TransactionStore(pool).update(
            USER, TX, account_id=str(OTHER_ACCOUNT), amount=Decimal("40.00"), is_income=True
        )

        assert _balance_deltas(conn) == [
            (ACCOUNT, Decimal("25.00")),
            (OTHER_ACCOUNT, Decimal("40.00")),
        ]

    async def test_set_clause_follows_field_order(self):
        pool, conn = _make_pool_and_conn()
        old = {"account_id": ACCOUNT, "amount": Decimal("25.00"), "is_income": False}
        conn.fetchrow.side_effect = [old, old]
        pool.fetchrow.return_value = _tx_row()

        await TransactionStore(pool).update(USER, TX, description="Brunch", category_id=None)

        sql, *params = conn.fetchrow.await_args_list[1].args
        assert "category_id = $3::uuid" in sql
        assert "description = $4" in sql
        assert params == [TX, USER, None, "Brunch"]

    async def test_unchanged_amount_moves_nothing(self):
        pool, conn = _make_pool_and_conn()
        old = {"account_id": ACCOUNT, "amount": Decimal("25.00"), "is_income": False}
        conn.fetchrow.side_effect = [old, old]
        pool.fetchrow.return_value = _tx_row()

        await TransactionStore(pool).update(USER, TX, description="Brunch")
        # The two adjustments cancel out but are still applied as a pair.
        assert sum(delta for _, delta in _balance_deltas(conn)) == 0

    async def test_missing_row(self):
        pool, conn = _make_pool_and_conn()
        conn.fetchrow.return_value = None
        with pytest.raises(NotFoundError, match="Transaction not found."):
            await TransactionStore(pool).update(USER, TX, amount=Decimal("1"))

    async def test_unknown_field(self):
        pool, _ = _make_pool_and_conn()
        with pytest.raises(ValidationError, match="Unsupported transaction fields: owner_id."):
            await TransactionStore(pool).update(USER, TX, owner_id=USER)

    async def test_no_fields(self):
        pool, _ = _make_pool_and_conn()
        with pytest.raises(ValidationError):
            await TransactionStore(pool).update(USER, TX)


class TestDelete:
    async def test_reverses_balance(self):
        pool, conn = _make_pool_and_conn()
        conn.fetchrow.return_value = {
            "account_id": ACCOUNT,
            "amount": Decimal("100.00"),
            "is_income": True,
        }
        await TransactionStore(pool).delete(USER, TX)
        assert _balance_deltas(conn) == [(ACCOUNT, Decimal("-100.00"))]

    async def test_missing_row(self):
        pool, conn = _make_pool_and_conn()
        conn.fetchrow.return_value = None
        with pytest.raises(NotFoundError):
            await TransactionStore(pool).delete(USER, TX)
        assert _balance_deltas(conn) == []


class TestQueries:
    async def test_search_builds_numbered_filters(self):
        pool, _ = _make_pool_and_conn()
        interval = Interval(datetime(2024, 3, 1, tzinfo=UTC), datetime(2024, 3, 31, tzinfo=UTC))

        await TransactionStore(pool).search(
            USER, text="50%_off", interval=interval, is_income=False, limit=5
        )

        sql, *params = pool.fetch.await_args.args
        assert "t.description ILIKE $2" in sql
        assert "t.created_at >= $3 AND t.created_at <= $4" in sql
        assert "t.is_income = $5" in sql
        assert "LIMIT $6 OFFSET $7" in sql
        assert params == [
            USER,
            "%50\\%\\_off%",
            interval.start,
            interval.end,
            False,
            5,
            0,
        ]

    async def test_find_by_id_skips_malformed_ids(self):
        pool, _ = _make_pool_and_conn()
        assert await TransactionStore(pool).find_by_id(USER, "lunch") is None
        pool.fetchrow.assert_not_awaited()

    @pytest.mark.parametrize(
        "kind,order,is_income",
        [
            ("highest_expense", "DESC", False),
            ("lowest_income", "ASC", True),
        ],
    )
    async def test_extreme(self, kind, order, is_income):
        pool, _ = _make_pool_and_conn()
        pool.fetchrow.return_value = _tx_row()

        result = await TransactionStore(pool).extreme(USER, kind)

        sql, *params = pool.fetchrow.await_args.args
        assert f"ORDER BY t.amount {order}" in sql
        assert params == [USER, is_income]
        assert result["description"] == "Lunch"

    async def test_extreme_rejects_unknown_kind(self):
        pool, _ = _make_pool_and_conn()
        with pytest.raises(ValidationError, match="Invalid extreme transaction type"):
            await TransactionStore(pool).extreme(USER, "median_expense")

    async def test_totals(self):
        pool, _ = _make_pool_and_conn()
        pool.fetchrow.return_value = {"income": Decimal("100"), "expense": Decimal("30.50")}
        interval = Interval(datetime(2024, 3, 1, tzinfo=UTC), datetime(2024, 3, 31, tzinfo=UTC))

        totals = await TransactionStore(pool).totals(USER, interval, account_id=str(ACCOUNT))

        assert totals == {
            "income": Decimal("100"),
            "expense": Decimal("30.50"),
            "net": Decimal("69.50"),
        }
        sql = pool.fetchrow.await_args.args[0]
        assert "account_id = $4::uuid" in sql
