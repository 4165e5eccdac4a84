"""Store protocol and shared SQL helpers.

Every store method takes the acting ``user_id`` and scopes its SQL to rows
that user may see. Stores raise :class:`~finbutler.errors.NotFoundError`,
:class:`~finbutler.errors.ForbiddenError` or
:class:`~finbutler.errors.ValidationError` for expected failures; asyncpg
errors propagate.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Protocol

import asyncpg


class DomainStore(Protocol):
    """What entity resolution and the confirmation gate need from a store."""

    async def find_by_id(self, user_id: str, entity_id: str) -> dict[str, Any] | None: ...

    async def find_by_fuzzy_key(
        self, user_id: str, text: str, limit: int
    ) -> list[dict[str, Any]]: ...


def valid_id(value: str | None) -> bool:
    """True when *value* can be bound to a ``uuid`` parameter."""
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def row_to_dict(row: Mapping[str, Any]) -> dict[str, Any]:
    """Convert an asyncpg Record to a dict with UUID/datetime serialization.

    - UUID values are converted to strings.
    - datetime and date values are ISO-formatted strings.
    - Decimal values are kept; callers format them for display.
    """
    d = dict(row)
    for key, val in d.items():
        if isinstance(val, uuid.UUID):
            d[key] = str(val)
        elif isinstance(val, (datetime, date)):
            d[key] = val.isoformat()
    return d


def like_pattern(text: str) -> str:
    """``%text%`` with LIKE wildcards in *text* escaped (``ESCAPE '\\'``)."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def rows_affected(status: str) -> int:
    """Row count from an asyncpg command status such as ``"DELETE 1"``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class PoolStore:
    """Base for stores backed by an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool
