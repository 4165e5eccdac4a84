"""Two-phase confirmation gate for destructive and high-impact mutations.

``identify`` resolves fuzzy input to one row and renders a summary for the
human to approve; it never mutates. ``execute`` takes the confirmed id back,
re-checks that the row still exists and that the caller may perform the
action, then runs the mutation. No state is kept between the two calls: the
id is the whole state, and ``execute`` never re-runs fuzzy matching.

A missing row, a row outside the caller's scope, a role that does not allow
the action, a malformed id, or a row that disappears mid-mutation all raise
the same ``NotFoundError("<Noun> not found.")``, so callers cannot tell
"exists but not yours" from "does not exist".
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from finbutler.errors import ForbiddenError, NotFoundError, ValidationError
from finbutler.tools.resolvers import Clarify, NotFound, Resolved, looks_like_identifier

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Mutation = Callable[..., Awaitable[Any]]


def allow_owner(row: Row, user_id: str, action: str) -> bool:  # noqa: ARG001
    """Default rule: rows are fetched under the owner's scope, so any action is allowed."""
    return True


@dataclass
class GatedDomain:
    """How the gate resolves, re-fetches, describes and mutates one domain.

    ``resolve(user_id, raw_identifier, **criteria)`` returns a resolution
    outcome; ``fetch(user_id, id)`` returns the row only if it is visible to
    the user; ``authorize(row, user_id, action)`` decides role-specific
    permissions; each mutation is called as ``fn(user_id, id, **args)``.
    """

    name: str
    noun: str
    resolve: Callable[..., Awaitable[Resolved | Clarify | NotFound]]
    fetch: Callable[[str, str], Awaitable[Row | None]]
    summarize: Callable[[Row], str]
    mutations: Mapping[str, Mutation] = field(default_factory=dict)
    authorize: Callable[[Row, str, str], bool] = allow_owner

    def not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.noun} not found.")


@dataclass(frozen=True)
class PendingAction:
    """A row identified for *action*, awaiting the human's confirmation."""

    id: str
    domain: str
    action: str
    summary: str

    @property
    def required_confirmation_id(self) -> str:
        return self.id

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "domain": self.domain,
            "action": self.action,
            "summary": self.summary,
        }


class ActionGate:
    def __init__(self, domains: Iterable[GatedDomain]) -> None:
        self._domains = {d.name: d for d in domains}

    def domain(self, name: str) -> GatedDomain:
        try:
            return self._domains[name]
        except KeyError:
            raise ValidationError(f"Unknown domain: {name!r}.") from None

    async def identify(
        self,
        user_id: str,
        domain: str,
        raw_identifier: str | None,
        *,
        action: str,
        **criteria: Any,
    ) -> PendingAction | Clarify | NotFound:
        """Resolve *raw_identifier* to one row the user may *action*.

        Read-only and safe to repeat. Clarify and NotFound outcomes from the
        resolver are passed through unchanged.
        """
        gated = self.domain(domain)
        outcome = await gated.resolve(user_id, raw_identifier, **criteria)
        if not isinstance(outcome, Resolved):
            return outcome

        row = await gated.fetch(user_id, outcome.id)
        if row is None or not gated.authorize(row, user_id, action):
            return NotFound(f"{gated.noun} not found.")
        return PendingAction(
            id=outcome.id,
            domain=domain,
            action=action,
            summary=gated.summarize(row),
        )

    async def execute(
        self,
        user_id: str,
        domain: str,
        confirmed_id: str | None,
        action: str,
        **mutation_args: Any,
    ) -> Any:
        """Run *action* on *confirmed_id* after re-validating it.

        Raises
        ------
        NotFoundError
            When the id is malformed, missing, outside the user's scope, not
            permitted for *action*, or vanished during the mutation.
        ValidationError
            When the domain has no such action, or the mutation rejects its
            arguments.
        """
        gated = self.domain(domain)
        mutation = gated.mutations.get(action)
        if mutation is None:
            raise ValidationError(f"Unsupported {domain} action: {action!r}.")

        entity_id = (confirmed_id or "").strip()
        if not looks_like_identifier(entity_id):
            raise gated.not_found()

        row = await gated.fetch(user_id, entity_id)
        if row is None or not gated.authorize(row, user_id, action):
            logger.info("Rejected %s %s on %s for user %s", domain, action, entity_id, user_id)
            raise gated.not_found()

        try:
            return await mutation(user_id, entity_id, **mutation_args)
        except (NotFoundError, ForbiddenError):
            raise gated.not_found() from None
