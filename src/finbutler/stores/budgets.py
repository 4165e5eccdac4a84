"""Monthly category budgets and their spending progress."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

import asyncpg

from finbutler.errors import NotFoundError, ValidationError
from finbutler.models import Interval, end_of_month, start_of_month
from finbutler.stores.base import PoolStore, row_to_dict, rows_affected, valid_id

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT b.id, b.owner_id, b.category_id, c.name AS category_name,
           b.month, b.year, b.amount, b.created_at, b.updated_at
    FROM budgets b
    JOIN categories c ON c.id = b.category_id
"""


class BudgetStore(PoolStore):
    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None:
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"{_SELECT} WHERE b.id = $1::uuid AND b.owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        return row_to_dict(row) if row is not None else None

    async def find_for_period(
        self, user_id: str, category_id: str, month: int, year: int
    ) -> dict[str, Any] | None:
        row = await self._pool.fetchrow(
            f"""
            {_SELECT}
            WHERE b.owner_id = $1::uuid AND b.category_id = $2::uuid
              AND b.month = $3 AND b.year = $4
            """,
            user_id,
            category_id,
            month,
            year,
        )
        return row_to_dict(row) if row is not None else None

    async def create(
        self, user_id: str, category_id: str, amount: Decimal, month: int, year: int
    ) -> dict[str, Any]:
        try:
            row = await self._pool.fetchrow(
                """
                WITH b AS (
                    INSERT INTO budgets (owner_id, category_id, month, year, amount)
                    VALUES ($1::uuid, $2::uuid, $3, $4, $5)
                    RETURNING *
                )
                SELECT b.id, b.owner_id, b.category_id, c.name AS category_name,
                       b.month, b.year, b.amount, b.created_at, b.updated_at
                FROM b JOIN categories c ON c.id = b.category_id
                """,
                user_id,
                category_id,
                month,
                year,
                amount,
            )
        except asyncpg.UniqueViolationError:
            raise ValidationError(
                f"A budget for this category already exists for {month}/{year}."
            ) from None
        return row_to_dict(row)

    async def list(
        self, user_id: str, month: int | None = None, year: int | None = None
    ) -> list[dict[str, Any]]:
        conditions = ["b.owner_id = $1::uuid"]
        params: list[Any] = [user_id]
        idx = 2

        if month is not None:
            conditions.append(f"b.month = ${idx}")
            params.append(month)
            idx += 1

        if year is not None:
            conditions.append(f"b.year = ${idx}")
            params.append(year)
            idx += 1

        rows = await self._pool.fetch(
            f"""
            {_SELECT}
            WHERE {" AND ".join(conditions)}
            ORDER BY b.year DESC, b.month DESC, c.name
            LIMIT 100
            """,
            *params,
        )
        return [row_to_dict(r) for r in rows]

    async def update_amount(self, user_id: str, entity_id: str, amount: Decimal) -> None:
        status = await self._pool.execute(
            """
            UPDATE budgets SET amount = $3, updated_at = now()
            WHERE id = $1::uuid AND owner_id = $2::uuid
            """,
            entity_id,
            user_id,
            amount,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Budget not found.")

    async def delete(self, user_id: str, entity_id: str) -> None:
        status = await self._pool.execute(
            "DELETE FROM budgets WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Budget not found.")
        logger.info("Deleted budget %s for user %s", entity_id, user_id)

    async def progress(self, user_id: str, entity_id: str) -> dict[str, Any]:
        """Budgeted amount vs. expense spending in the budget's category and month."""
        budget = await self.find_by_id(user_id, entity_id)
        if budget is None:
            raise NotFoundError("Budget not found.")
        first = date(budget["year"], budget["month"], 1)
        spent = await self._pool.fetchval(
            """
            SELECT COALESCE(SUM(amount), 0) FROM transactions
            WHERE owner_id = $1::uuid AND category_id = $2::uuid AND NOT is_income
              AND created_at >= $3 AND created_at <= $4
            """,
            user_id,
            budget["category_id"],
            start_of_month(first),
            end_of_month(first),
        )
        budgeted = Decimal(str(budget["amount"]))
        spent = Decimal(str(spent or 0))
        return {
            **budget,
            "spent": spent,
            "remaining": budgeted - spent,
            "percentage_used": float(spent / budgeted * 100) if budgeted else 0.0,
        }

    async def summary(self, user_id: str, interval: Interval) -> list[dict[str, Any]]:
        """Budgeted vs. actual spending for every budget whose month overlaps *interval*."""
        rows = await self._pool.fetch(
            """
            SELECT b.id, b.category_id, c.name AS category_name, b.month, b.year,
                   b.amount AS budgeted,
                   COALESCE((
                       SELECT SUM(t.amount) FROM transactions t
                       WHERE t.owner_id = b.owner_id AND t.category_id = b.category_id
                         AND NOT t.is_income
                         AND date_part('month', t.created_at) = b.month
                         AND date_part('year', t.created_at) = b.year
                   ), 0) AS actual
            FROM budgets b
            JOIN categories c ON c.id = b.category_id
            WHERE b.owner_id = $1::uuid
              AND make_date(b.year, b.month, 1) BETWEEN $2::date AND $3::date
            ORDER BY b.year, b.month, c.name
            """,
            user_id,
            start_of_month(interval.start).date(),
            interval.end.date(),
        )
        return [row_to_dict(r) for r in rows]
