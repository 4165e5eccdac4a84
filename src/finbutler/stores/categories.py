"""Category persistence, scoped to the owning user."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from finbutler.errors import NotFoundError, ValidationError
from finbutler.stores.base import (
    PoolStore,
    like_pattern,
    row_to_dict,
    rows_affected,
    valid_id,
)

logger = logging.getLogger(__name__)

_COLUMNS = "id, owner_id, name, created_at, updated_at"


class CategoryStore(PoolStore):
    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None:
        if not valid_id(entity_id):
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM categories WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        return row_to_dict(row) if row is not None else None

    async def find_by_fuzzy_key(self, user_id: str, text: str, limit: int) -> list[dict[str, Any]]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM categories
            WHERE owner_id = $1::uuid AND name ILIKE $2 ESCAPE '\\'
            ORDER BY name
            LIMIT $3
            """,
            user_id,
            like_pattern(text),
            limit,
        )
        return [row_to_dict(r) for r in rows]

    async def create(self, user_id: str, name: str) -> dict[str, Any]:
        try:
            row = await self._pool.fetchrow(
                f"""
                INSERT INTO categories (owner_id, name) VALUES ($1::uuid, $2)
                RETURNING {_COLUMNS}
                """,
                user_id,
                name,
            )
        except asyncpg.UniqueViolationError:
            raise ValidationError(f'Category "{name}" already exists.') from None
        return row_to_dict(row)

    async def list(self, user_id: str, search: str | None = None) -> list[dict[str, Any]]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM categories
            WHERE owner_id = $1::uuid AND name ILIKE $2 ESCAPE '\\'
            ORDER BY name LIMIT 100
            """,
            user_id,
            like_pattern(search or ""),
        )
        return [row_to_dict(r) for r in rows]

    async def rename(self, user_id: str, entity_id: str, name: str) -> dict[str, Any]:
        try:
            row = await self._pool.fetchrow(
                f"""
                UPDATE categories SET name = $3, updated_at = now()
                WHERE id = $1::uuid AND owner_id = $2::uuid
                RETURNING {_COLUMNS}
                """,
                entity_id,
                user_id,
                name,
            )
        except asyncpg.UniqueViolationError:
            raise ValidationError(f'Category "{name}" already exists.') from None
        if row is None:
            raise NotFoundError("Category not found.")
        return row_to_dict(row)

    async def delete(self, user_id: str, entity_id: str) -> None:
        """Delete a category that no transaction uses."""
        in_use = await self._pool.fetchval(
            "SELECT count(*) FROM transactions"
            " WHERE category_id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        if in_use:
            raise ValidationError(
                f"Cannot delete category: it is used by {in_use} transaction(s)."
            )
        status = await self._pool.execute(
            "DELETE FROM categories WHERE id = $1::uuid AND owner_id = $2::uuid",
            entity_id,
            user_id,
        )
        if rows_affected(status) == 0:
            raise NotFoundError("Category not found.")
        logger.info("Deleted category %s for user %s", entity_id, user_id)
