"""Debts between two users: the creator and the counterparty.

Both parties can see a debt. Only the creator may edit its details or delete
it; either party may mark it paid.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from finbutler.errors import ForbiddenError, NotFoundError, ValidationError
from finbutler.models import DebtTerm, term_from_columns, term_to_columns
from finbutler.stores.base import (
    PoolStore,
    like_pattern,
    row_to_dict,
    rows_affected,
    valid_id,
)

logger = logging.getLogger(__name__)

DEBT_TYPES = ("given", "taken")
INTEREST_TYPES = ("simple", "compound")

# $1 is always the acting user; "counterparty" is whoever is on the other side.
_SELECT = """
    SELECT d.id, d.created_by, d.counterparty_id, d.account_id, d.type, d.amount,
           d.premium_amount, d.percentage, d.interest_type, d.description,
           d.due_date, d.duration, d.frequency, d.is_paid, d.created_at, d.updated_at,
           u.name AS counterparty_name, a.name AS account_name
    FROM debts d
    JOIN users u
      ON u.id = CASE WHEN d.created_by = $1::uuid THEN d.counterparty_id ELSE d.created_by END
    LEFT JOIN accounts a ON a.id = d.account_id
"""
_VISIBLE = "(d.created_by = $1::uuid OR d.counterparty_id = $1::uuid)"


def _debt_to_dict(row: Any) -> dict[str, Any]:
    d = row_to_dict(row)
    term = term_from_columns(d.get("duration"), d.get("frequency"))
    d["term"] = term.describe() if term is not None else None
    return d


def _as_number(text: str) -> Decimal | None:
    try:
        value = Decimal(text.replace(",", ""))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


class DebtStore(PoolStore):
    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None:
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"{_SELECT} WHERE d.id = $2::uuid AND {_VISIBLE}", user_id, entity_id
        )
        return _debt_to_dict(row) if row is not None else None

    async def find_by_fuzzy_key(self, user_id: str, text: str, limit: int) -> list[dict[str, Any]]:
        """Match description, counterparty name, account name, or an exact amount."""
        params: list[Any] = [user_id, like_pattern(text), limit]
        amount_clause = ""
        number = _as_number(text)
        if number is not None:
            params.append(number)
            amount_clause = "OR d.amount = $4 OR d.premium_amount = $4"
        rows = await self._pool.fetch(
            f"""
            {_SELECT}
            WHERE {_VISIBLE}
              AND (
                  d.description ILIKE $2 ESCAPE '\\'
                  OR u.name ILIKE $2 ESCAPE '\\'
                  OR a.name ILIKE $2 ESCAPE '\\'
                  {amount_clause}
              )
            ORDER BY d.created_at DESC
            LIMIT $3
            """,
            *params,
        )
        return [_debt_to_dict(r) for r in rows]

    async def create(
        self,
        user_id: str,
        *,
        counterparty_id: str,
        account_id: str | None,
        debt_type: str,
        amount: Decimal,
        description: str | None,
        percentage: Decimal,
        interest_type: str,
        term: DebtTerm | None,
        due_date: date | None,
        premium_amount: Decimal = Decimal("0"),
    ) -> dict[str, Any]:
        if debt_type not in DEBT_TYPES:
            raise ValidationError(f"Invalid debt type: {debt_type!r}.")
        if interest_type not in INTEREST_TYPES:
            raise ValidationError(f"Invalid interest type: {interest_type!r}.")
        duration, frequency = term_to_columns(term)
        row = await self._pool.fetchrow(
            """
            INSERT INTO debts (
                created_by, counterparty_id, account_id, type, amount, premium_amount,
                percentage, interest_type, description, due_date, duration, frequency
            ) VALUES (
                $1::uuid, $2::uuid, $3::uuid, $4, $5, $6, $7, $8, $9, $10, $11, $12
            )
            RETURNING id
            """,
            user_id,
            counterparty_id,
            account_id,
            debt_type,
            amount,
            premium_amount,
            percentage,
            interest_type,
            description,
            due_date,
            duration,
            frequency,
        )
        logger.info("Recorded %s debt %s for user %s", debt_type, row["id"], user_id)
        created = await self.find_by_id(user_id, str(row["id"]))
        if created is None:
            raise NotFoundError("Debt not found.")
        return created

    async def list(
        self, user_id: str, debt_type: str | None = None, is_paid: bool | None = None
    ) -> list[dict[str, Any]]:
        conditions = [_VISIBLE]
        params: list[Any] = [user_id]
        idx = 2

        if debt_type is not None:
            conditions.append(f"d.type = ${idx}")
            params.append(debt_type)
            idx += 1

        if is_paid is not None:
            conditions.append(f"d.is_paid = ${idx}")
            params.append(is_paid)
            idx += 1

        rows = await self._pool.fetch(
            f"""
            {_SELECT}
            WHERE {" AND ".join(conditions)}
            ORDER BY d.due_date ASC NULLS LAST, d.created_at DESC
            LIMIT 100
            """,
            *params,
        )
        return [_debt_to_dict(r) for r in rows]

    async def _parties(self, entity_id: str) -> Any:
        row = await self._pool.fetchrow(
            "SELECT created_by, counterparty_id, created_at FROM debts WHERE id = $1::uuid",
            entity_id,
        )
        if row is None:
            raise NotFoundError("Debt record not found.")
        return row

    async def mark_paid(self, user_id: str, entity_id: str) -> None:
        parties = await self._parties(entity_id)
        if user_id not in (str(parties["created_by"]), str(parties["counterparty_id"])):
            raise ForbiddenError("Permission denied to mark this debt as paid.")
        status = await self._pool.execute(
            f"""
            UPDATE debts d SET is_paid = true, updated_at = now()
            WHERE d.id = $2::uuid AND {_VISIBLE}
            """,
            user_id,
            entity_id,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Debt record not found.")

    async def update_details(
        self,
        user_id: str,
        entity_id: str,
        *,
        description: str | None = None,
        term: DebtTerm | None = None,
    ) -> None:
        """Update description and/or term; creator only.

        A new term also moves the due date, counted from when the debt was
        recorded.
        """
        parties = await self._parties(entity_id)
        if str(parties["created_by"]) != user_id:
            raise ForbiddenError("Permission denied to modify this debt.")

        assignments = ["updated_at = now()"]
        params: list[Any] = [entity_id, user_id]
        idx = 3

        if description is not None:
            assignments.append(f"description = ${idx}")
            params.append(description)
            idx += 1

        if term is not None:
            duration, frequency = term_to_columns(term)
            assignments.append(f"duration = ${idx}, frequency = ${idx + 1}")
            params.extend([duration, frequency])
            idx += 2
            assignments.append(f"due_date = ${idx}")
            params.append(term.due_date(parties["created_at"].date()))
            idx += 1

        if len(assignments) == 1:
            raise ValidationError("No valid update fields provided.")

        status = await self._pool.execute(
            f"""
            UPDATE debts SET {", ".join(assignments)}
            WHERE id = $1::uuid AND created_by = $2::uuid
            """,
            *params,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Debt record not found.")

    async def delete(self, user_id: str, entity_id: str) -> None:
        status = await self._pool.execute(
            "DELETE FROM debts WHERE id = $1::uuid AND created_by = $2::uuid",
            entity_id,
            user_id,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Debt record not found or you do not have permission to delete it.")
        logger.info("Deleted debt %s for user %s", entity_id, user_id)
