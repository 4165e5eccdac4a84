"""Transactions and the account balances they move.

Income adds to the account balance and expenses subtract from it. Every
create, update and delete adjusts the balance in the same database
transaction as the row change.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from finbutler.errors import NotFoundError, ValidationError
from finbutler.models import Interval
from finbutler.stores.base import PoolStore, like_pattern, row_to_dict, valid_id

logger = logging.getLogger(__name__)

EXTREME_KINDS = ("highest_income", "lowest_income", "highest_expense", "lowest_expense")

_SELECT = """
    SELECT t.id, t.owner_id, t.account_id, a.name AS account_name,
           t.category_id, c.name AS category_name, t.amount, t.is_income,
           t.description, t.transfer, t.currency, t.created_at, t.updated_at
    FROM transactions t
    JOIN accounts a ON a.id = t.account_id
    LEFT JOIN categories c ON c.id = t.category_id
"""

_UPDATABLE = (
    "account_id",
    "category_id",
    "amount",
    "is_income",
    "description",
    "transfer",
    "created_at",
)


def _signed(amount: Decimal, is_income: bool) -> Decimal:
    return amount if is_income else -amount


async def _adjust_balance(conn: Any, account_id: Any, delta: Decimal) -> None:
    if delta:
        await conn.execute(
            "UPDATE accounts SET balance = balance + $2, updated_at = now() WHERE id = $1::uuid",
            account_id,
            delta,
        )


class TransactionStore(PoolStore):
    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None:
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"{_SELECT} WHERE t.id = $1::uuid AND t.owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        return row_to_dict(row) if row is not None else None

    async def find_by_fuzzy_key(self, user_id: str, text: str, limit: int) -> list[dict[str, Any]]:
        return await self.search(user_id, text=text, limit=limit)

    async def search(
        self,
        user_id: str,
        *,
        text: str | None = None,
        account_id: str | None = None,
        category_id: str | None = None,
        interval: Interval | None = None,
        is_income: bool | None = None,
        min_amount: Decimal | None = None,
        max_amount: Decimal | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Newest-first transactions matching every given filter.

        *text* matches the description or the transfer note as a
        case-insensitive substring. Interval bounds are inclusive.
        """
        conditions = ["t.owner_id = $1::uuid"]
        params: list[Any] = [user_id]
        idx = 2

        if text:
            conditions.append(
                f"(t.description ILIKE ${idx} ESCAPE '\\' OR t.transfer ILIKE ${idx} ESCAPE '\\')"
            )
            params.append(like_pattern(text))
            idx += 1

        if account_id is not None:
            conditions.append(f"t.account_id = ${idx}::uuid")
            params.append(account_id)
            idx += 1

        if category_id is not None:
            conditions.append(f"t.category_id = ${idx}::uuid")
            params.append(category_id)
            idx += 1

        if interval is not None:
            conditions.append(f"t.created_at >= ${idx} AND t.created_at <= ${idx + 1}")
            params.extend([interval.start, interval.end])
            idx += 2

        if is_income is not None:
            conditions.append(f"t.is_income = ${idx}")
            params.append(is_income)
            idx += 1

        if min_amount is not None:
            conditions.append(f"t.amount >= ${idx}")
            params.append(min_amount)
            idx += 1

        if max_amount is not None:
            conditions.append(f"t.amount <= ${idx}")
            params.append(max_amount)
            idx += 1

        rows = await self._pool.fetch(
            f"""
            {_SELECT}
            WHERE {" AND ".join(conditions)}
            ORDER BY t.created_at DESC
            LIMIT ${idx} OFFSET ${idx + 1}
            """,
            *params,
            limit,
            offset,
        )
        return [row_to_dict(r) for r in rows]

    async def create(
        self,
        user_id: str,
        *,
        account_id: str,
        amount: Decimal,
        is_income: bool,
        currency: str,
        category_id: str | None = None,
        description: str | None = None,
        transfer: str | None = None,
        created_at: datetime | None = None,
    ) -> dict[str, Any]:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    INSERT INTO transactions (
                        owner_id, account_id, category_id, amount, is_income,
                        description, transfer, currency, created_by, created_at
                    ) VALUES (
                        $1::uuid, $2::uuid, $3::uuid, $4, $5, $6, $7, $8, $1::uuid,
                        COALESCE($9, now())
                    )
                    RETURNING id
                    """,
                    user_id,
                    account_id,
                    category_id,
                    amount,
                    is_income,
                    description,
                    transfer,
                    currency,
                    created_at,
                )
                await _adjust_balance(conn, account_id, _signed(amount, is_income))
        logger.info("Recorded transaction %s for user %s", row["id"], user_id)
        created = await self.find_by_id(user_id, str(row["id"]))
        if created is None:
            raise NotFoundError("Transaction not found.")
        return created

    async def update(self, user_id: str, entity_id: str, **fields: Any) -> dict[str, Any]:
        """Apply *fields* and move the balance difference between accounts.

        A ``category_id`` of ``None`` clears the category.
        """
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise ValidationError(f"Unsupported transaction fields: {', '.join(sorted(unknown))}.")
        if not fields:
            raise ValidationError("No valid fields provided for update.")

        async with self._pool.acquire() as conn:
            async with conn.transaction():
                old = await conn.fetchrow(
                    """
                    SELECT account_id, amount, is_income FROM transactions
                    WHERE id = $1::uuid AND owner_id = $2::uuid
                    FOR UPDATE
                    """,
                    entity_id,
                    user_id,
                )
                if old is None:
                    raise NotFoundError("Transaction not found.")

                assignments = ["updated_at = now()"]
                params: list[Any] = [entity_id, user_id]
                idx = 3
                for name in _UPDATABLE:
                    if name not in fields:
                        continue
                    cast = "::uuid" if name.endswith("_id") else ""
                    assignments.append(f"{name} = ${idx}{cast}")
                    params.append(fields[name])
                    idx += 1

                new = await conn.fetchrow(
                    f"""
                    UPDATE transactions SET {", ".join(assignments)}
                    WHERE id = $1::uuid AND owner_id = $2::uuid
                    RETURNING account_id, amount, is_income
                    """,
                    *params,
                )
                await _adjust_balance(
                    conn, old["account_id"], -_signed(old["amount"], old["is_income"])
                )
                await _adjust_balance(
                    conn, new["account_id"], _signed(new["amount"], new["is_income"])
                )

        updated = await self.find_by_id(user_id, entity_id)
        if updated is None:
            raise NotFoundError("Transaction not found.")
        return updated

    async def delete(self, user_id: str, entity_id: str) -> None:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    DELETE FROM transactions
                    WHERE id = $1::uuid AND owner_id = $2::uuid
                    RETURNING account_id, amount, is_income
                    """,
                    entity_id,
                    user_id,
                )
                if row is None:
                    raise NotFoundError("Transaction not found.")
                await _adjust_balance(
                    conn, row["account_id"], -_signed(row["amount"], row["is_income"])
                )
        logger.info("Deleted transaction %s for user %s", entity_id, user_id)

    async def extreme(
        self,
        user_id: str,
        kind: str,
        interval: Interval | None = None,
        account_id: str | None = None,
    ) -> dict[str, Any] | None:
        """The largest or smallest income or expense, or ``None`` when there is none."""
        if kind not in EXTREME_KINDS:
            raise ValidationError(f"Invalid extreme transaction type: {kind!r}.")
        direction, side = kind.split("_", 1)
        order = "DESC" if direction == "highest" else "ASC"

        conditions = ["t.owner_id = $1::uuid", "t.is_income = $2"]
        params: list[Any] = [user_id, side == "income"]
        idx = 3

        if interval is not None:
            conditions.append(f"t.created_at >= ${idx} AND t.created_at <= ${idx + 1}")
            params.extend([interval.start, interval.end])
            idx += 2

        if account_id is not None:
            conditions.append(f"t.account_id = ${idx}::uuid")
            params.append(account_id)
            idx += 1

        row = await self._pool.fetchrow(
            f"""
            {_SELECT}
            WHERE {" AND ".join(conditions)}
            ORDER BY t.amount {order}, t.created_at DESC
            LIMIT 1
            """,
            *params,
        )
        return row_to_dict(row) if row is not None else None

    async def earliest(self, user_id: str) -> datetime | None:
        """Timestamp of the user's first transaction."""
        return await self._pool.fetchval(
            "SELECT min(created_at) FROM transactions WHERE owner_id = $1::uuid", user_id
        )

    async def totals(
        self, user_id: str, interval: Interval, account_id: str | None = None
    ) -> dict[str, Decimal]:
        """Income and expense sums over *interval* (bounds inclusive)."""
        params: list[Any] = [user_id, interval.start, interval.end]
        account_clause = ""
        if account_id is not None:
            account_clause = "AND account_id = $4::uuid"
            params.append(account_id)
        row = await self._pool.fetchrow(
            f"""
            SELECT
                COALESCE(SUM(amount) FILTER (WHERE is_income), 0) AS income,
                COALESCE(SUM(amount) FILTER (WHERE NOT is_income), 0) AS expense
            FROM transactions
            WHERE owner_id = $1::uuid AND created_at >= $2 AND created_at <= $3
              {account_clause}
            """,
            *params,
        )
        income = Decimal(str(row["income"])) if row is not None else Decimal("0")
        expense = Decimal(str(row["expense"])) if row is not None else Decimal("0")
        return {"income": income, "expense": expense, "net": income - expense}
