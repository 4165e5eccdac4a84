"""Entity resolution: free text to exactly one row, a short list, or nothing.

One algorithm serves every domain:

1. Blank input (after trimming) is a :class:`~finbutler.errors.ValidationError`.
2. Identifier-shaped input (a UUID) skips fuzzy matching; the row is looked up
   directly under the caller's scope.
3. Otherwise the domain's candidate search runs (case-insensitive substring on
   its human-readable key, capped at ``limit`` rows).
4. Zero rows give :class:`NotFound`, one gives :class:`Resolved`, several give
   :class:`Clarify` with one labelled option per row.

``NotFound`` and ``Clarify`` are values the caller branches on, not errors.
Store failures propagate unchanged.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from finbutler.errors import ValidationError

logger = logging.getLogger(__name__)

CLARIFY_LIMIT = 5

Row = dict[str, Any]
FindById = Callable[[str, str], Awaitable[Row | None]]
FindCandidates = Callable[..., Awaitable[list[Row]]]


@dataclass(frozen=True)
class ResolutionQuery:
    user_id: str
    domain: str
    raw_identifier: str


@dataclass(frozen=True)
class ResolutionOption:
    id: str
    label: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "label": self.label}


@dataclass(frozen=True)
class Resolved:
    id: str


@dataclass(frozen=True)
class Clarify:
    options: tuple[ResolutionOption, ...]


@dataclass(frozen=True)
class NotFound:
    reason: str


ResolutionOutcome = Resolved | Clarify | NotFound


def looks_like_identifier(text: str) -> bool:
    """True when *text* has the shape of a row identifier (a UUID)."""
    try:
        uuid.UUID(text)
    except ValueError:
        return False
    return True


class EntityResolver:
    """Resolve identifiers for one domain.

    Parameters
    ----------
    domain:
        Domain key, e.g. ``"account"``.
    noun:
        Capitalised noun used in messages, e.g. ``"Account"``.
    find_by_id:
        ``(user_id, id) -> row | None`` under the caller's scope.
    find_candidates:
        ``(user_id, text, limit, **criteria) -> rows`` matching *text*
        under the caller's scope.
    label:
        Renders the option label shown when clarification is needed.
    limit:
        Maximum number of candidates fetched and offered.
    not_found:
        Optional override for the not-found reason, given the searched text.
    """

    def __init__(
        self,
        domain: str,
        noun: str,
        *,
        find_by_id: FindById,
        find_candidates: FindCandidates,
        label: Callable[[Row], str],
        limit: int = CLARIFY_LIMIT,
        not_found: Callable[[str], str] | None = None,
    ) -> None:
        self.domain = domain
        self.noun = noun
        self._find_by_id = find_by_id
        self._find_candidates = find_candidates
        self._label = label
        self._limit = limit
        self._not_found = not_found or (lambda text: f'{noun} like "{text}" not found.')

    async def resolve(
        self, user_id: str, raw_identifier: str | None, **criteria: Any
    ) -> ResolutionOutcome:
        """Resolve *raw_identifier*; *criteria* narrow the candidate search only."""
        text = (raw_identifier or "").strip()
        if not text:
            raise ValidationError(f"{self.noun} identifier is required.")

        if looks_like_identifier(text):
            row = await self._find_by_id(user_id, text)
            if row is None:
                return NotFound(self._not_found(text))
            return Resolved(str(row["id"]))

        rows = (await self._find_candidates(user_id, text, self._limit, **criteria))[: self._limit]
        if not rows:
            return NotFound(self._not_found(text))
        if len(rows) == 1:
            return Resolved(str(rows[0]["id"]))
        logger.debug("%s lookup for %r is ambiguous (%d rows)", self.domain, text, len(rows))
        return Clarify(tuple(ResolutionOption(str(r["id"]), self._label(r)) for r in rows))


class Resolvers:
    """Registry dispatching a :class:`ResolutionQuery` to its domain resolver."""

    def __init__(self, resolvers: Mapping[str, EntityResolver]) -> None:
        self._resolvers = dict(resolvers)

    def __getitem__(self, domain: str) -> EntityResolver:
        try:
            return self._resolvers[domain]
        except KeyError:
            raise ValidationError(f"Unknown domain: {domain!r}.") from None

    def __contains__(self, domain: object) -> bool:
        return domain in self._resolvers

    async def resolve(self, query: ResolutionQuery) -> ResolutionOutcome:
        return await self[query.domain].resolve(query.user_id, query.raw_identifier)
