"""User lookups for debt counterparties and preferences."""

from __future__ import annotations

from typing import Any

from finbutler.stores.base import PoolStore, row_to_dict, valid_id

_COLUMNS = "id, name, email, is_active, preferred_currency, created_at"


class UserStore(PoolStore):
    async def get(self, user_id: str) -> dict[str, Any] | None:
        """Return the acting user's own row."""
        if not valid_id(user_id):
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM users WHERE id = $1::uuid", user_id
        )
        return row_to_dict(row) if row is not None else None

    async def find_by_id(
        self, user_id: str, entity_id: str  # noqa: ARG002
    ) -> dict[str, Any] | None:
        """Return an active user by id (any user may be a counterparty)."""
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM users WHERE id = $1::uuid AND is_active",
            entity_id,
        )
        return row_to_dict(row) if row is not None else None

    async def find_by_exact_key(
        self, user_id: str, text: str, limit: int  # noqa: ARG002
    ) -> list[dict[str, Any]]:
        """Active users whose email or name equals *text*, ignoring case.

        No substring matching: this lookup reaches outside the caller's own
        data.
        """
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM users
            WHERE is_active
              AND (lower(email) = lower($1) OR lower(name) = lower($1))
            ORDER BY name
            LIMIT $2
            """,
            text,
            limit,
        )
        return [row_to_dict(r) for r in rows]
