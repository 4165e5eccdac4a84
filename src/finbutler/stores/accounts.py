"""Account persistence, scoped to the owning user."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from finbutler.errors import NotFoundError
from finbutler.stores.base import (
    PoolStore,
    like_pattern,
    row_to_dict,
    rows_affected,
    valid_id,
)

logger = logging.getLogger(__name__)

_COLUMNS = "id, owner_id, name, balance, currency, is_default, created_at, updated_at"


class AccountStore(PoolStore):
    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None:
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM accounts WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        return row_to_dict(row) if row is not None else None

    async def find_by_fuzzy_key(self, user_id: str, text: str, limit: int) -> list[dict[str, Any]]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM accounts
            WHERE owner_id = $1::uuid AND name ILIKE $2 ESCAPE '\\'
            ORDER BY name
            LIMIT $3
            """,
            user_id,
            like_pattern(text),
            limit,
        )
        return [row_to_dict(r) for r in rows]

    async def create(
        self, user_id: str, name: str, balance: Decimal, currency: str
    ) -> dict[str, Any]:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO accounts (owner_id, name, balance, currency)
            VALUES ($1::uuid, $2, $3, $4)
            RETURNING {_COLUMNS}
            """,
            user_id,
            name,
            balance,
            currency,
        )
        logger.info("Created account %s for user %s", row["id"], user_id)
        return row_to_dict(row)

    async def list(
        self, user_id: str, search: str | None = None, recent: int = 0
    ) -> list[dict[str, Any]]:
        """Accounts ordered by name, or the *recent* newest when ``recent > 0``."""
        if recent > 0:
            rows = await self._pool.fetch(
                f"""
                SELECT {_COLUMNS} FROM accounts WHERE owner_id = $1::uuid
                ORDER BY created_at DESC LIMIT $2
                """,
                user_id,
                recent,
            )
        else:
            rows = await self._pool.fetch(
                f"""
                SELECT {_COLUMNS} FROM accounts
                WHERE owner_id = $1::uuid AND name ILIKE $2 ESCAPE '\\'
                ORDER BY name LIMIT 100
                """,
                user_id,
                like_pattern(search or ""),
            )
        return [row_to_dict(r) for r in rows]

    async def rename(self, user_id: str, entity_id: str, name: str) -> dict[str, Any]:
        row = await self._pool.fetchrow(
            f"""
            UPDATE accounts SET name = $3, updated_at = now()
            WHERE id = $1::uuid AND owner_id = $2::uuid
            RETURNING {_COLUMNS}
            """,
            entity_id,
            user_id,
            name,
        )
        if row is None:
            raise NotFoundError("Account not found.")
        return row_to_dict(row)

    async def delete(self, user_id: str, entity_id: str) -> None:
        """Delete the account; its transactions go with it (ON DELETE CASCADE)."""
        status = await self._pool.execute(
            "DELETE FROM accounts WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Account not found.")
        logger.info("Deleted account %s for user %s", entity_id, user_id)
