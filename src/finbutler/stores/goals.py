"""Saving goals, scoped to the owning user."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from finbutler.errors import NotFoundError, ValidationError
from finbutler.stores.base import (
    PoolStore,
    like_pattern,
    row_to_dict,
    rows_affected,
    valid_id,
)

logger = logging.getLogger(__name__)

_COLUMNS = "id, owner_id, name, target_amount, saved_amount, target_date, created_at, updated_at"


class GoalStore(PoolStore):
    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None:
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM saving_goals WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        return row_to_dict(row) if row is not None else None

    async def find_by_fuzzy_key(self, user_id: str, text: str, limit: int) -> list[dict[str, Any]]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM saving_goals
            WHERE owner_id = $1::uuid AND name ILIKE $2 ESCAPE '\\'
            ORDER BY created_at DESC
            LIMIT $3
            """,
            user_id,
            like_pattern(text),
            limit,
        )
        return [row_to_dict(r) for r in rows]

    async def create(
        self, user_id: str, name: str, target_amount: Decimal, target_date: date | None
    ) -> dict[str, Any]:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO saving_goals (owner_id, name, target_amount, target_date)
            VALUES ($1::uuid, $2, $3, $4)
            RETURNING {_COLUMNS}
            """,
            user_id,
            name,
            target_amount,
            target_date,
        )
        logger.info("Created saving goal %s for user %s", row["id"], user_id)
        return row_to_dict(row)

    async def list(self, user_id: str) -> list[dict[str, Any]]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM saving_goals WHERE owner_id = $1::uuid
            ORDER BY target_date ASC NULLS LAST, created_at DESC
            LIMIT 100
            """,
            user_id,
        )
        return [row_to_dict(r) for r in rows]

    async def update(
        self,
        user_id: str,
        entity_id: str,
        *,
        target_amount: Decimal | None = None,
        target_date: date | None = None,
        clear_target_date: bool = False,
    ) -> dict[str, Any]:
        assignments = ["updated_at = now()"]
        params: list[Any] = [entity_id, user_id]
        idx = 3

        if target_amount is not None:
            assignments.append(f"target_amount = ${idx}")
            params.append(target_amount)
            idx += 1

        if clear_target_date:
            assignments.append("target_date = NULL")
        elif target_date is not None:
            assignments.append(f"target_date = ${idx}")
            params.append(target_date)
            idx += 1

        if len(assignments) == 1:
            raise ValidationError("No valid fields provided for update.")

        row = await self._pool.fetchrow(
            f"""
            UPDATE saving_goals SET {", ".join(assignments)}
            WHERE id = $1::uuid AND owner_id = $2::uuid
            RETURNING {_COLUMNS}
            """,
            *params,
        )
        if row is None:
            raise NotFoundError("Goal not found.")
        return row_to_dict(row)

    async def add_amount(self, user_id: str, entity_id: str, amount: Decimal) -> dict[str, Any]:
        row = await self._pool.fetchrow(
            f"""
            UPDATE saving_goals SET saved_amount = saved_amount + $3, updated_at = now()
            WHERE id = $1::uuid AND owner_id = $2::uuid
            RETURNING {_COLUMNS}
            """,
            entity_id,
            user_id,
            amount,
        )
        if row is None:
            raise NotFoundError("Goal not found.")
        return row_to_dict(row)

    async def withdraw_amount(
        self, user_id: str, entity_id: str, amount: Decimal
    ) -> dict[str, Any]:
        """Take *amount* out of the saved total; never below zero."""
        row = await self._pool.fetchrow(
            f"""
            UPDATE saving_goals SET saved_amount = saved_amount - $3, updated_at = now()
            WHERE id = $1::uuid AND owner_id = $2::uuid AND saved_amount >= $3
            RETURNING {_COLUMNS}
            """,
            entity_id,
            user_id,
            amount,
        )
        if row is not None:
            return row_to_dict(row)
        if await self.find_by_id(user_id, entity_id) is None:
            raise NotFoundError("Goal not found.")
        raise ValidationError("Withdrawal amount exceeds the saved amount.")

    async def delete(self, user_id: str, entity_id: str) -> None:
        status = await self._pool.execute(
            "DELETE FROM saving_goals WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Goal not found.")
        logger.info("Deleted saving goal %s for user %s", entity_id, user_id)
