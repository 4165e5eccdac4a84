"""Shared state handed to every finance tool."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from finbutler.config import DEFAULT_CURRENCY
from finbutler.core.clock import Clock, SystemClock
from finbutler.errors import AmbiguousError, NotFoundError
from finbutler.tools._helpers import normalize_currency
from finbutler.tools.domains import build_gate, build_resolvers
from finbutler.tools.gate import PendingAction
from finbutler.tools.resolvers import CLARIFY_LIMIT, Clarify, NotFound, Resolved
from finbutler.tools.response import ToolResponse

if TYPE_CHECKING:
    from finbutler.stores import FinanceStores

logger = logging.getLogger(__name__)


class FinanceContext:
    """Stores, clock, resolvers and the action gate for one process.

    Parameters
    ----------
    stores:
        Domain stores (normally :class:`~finbutler.stores.FinanceStores`).
    clock:
        Source of "now"; defaults to :class:`~finbutler.core.clock.SystemClock`.
    default_currency:
        Currency used when a tool call does not name one.
    clarify_limit:
        Maximum candidates offered in a clarification.
    """

    def __init__(
        self,
        stores: FinanceStores,
        *,
        clock: Clock | None = None,
        default_currency: str = DEFAULT_CURRENCY,
        clarify_limit: int = CLARIFY_LIMIT,
    ) -> None:
        self.stores = stores
        self.clock = clock or SystemClock()
        self.default_currency = default_currency
        self.resolvers = build_resolvers(stores, currency=default_currency, limit=clarify_limit)
        self.gate = build_gate(stores, self.resolvers, currency=default_currency)

    def now(self) -> datetime:
        return self.clock.now()

    async def currency_for(self, user_id: str, code: str | None = None) -> str:
        """*code* if given, else the user's preferred currency, else the default."""
        if code and code.strip():
            return normalize_currency(code, self.default_currency)
        user = await self.stores.users.get(user_id)
        preferred = user.get("preferred_currency") if user else None
        return normalize_currency(preferred, self.default_currency)

    async def resolve_id(
        self, user_id: str, domain: str, raw_identifier: str | None, **criteria: Any
    ) -> str:
        """Resolve to exactly one id or raise.

        Raises
        ------
        NotFoundError
            With the resolver's reason when nothing matched.
        AmbiguousError
            With the candidate options when several rows matched.
        """
        resolver = self.resolvers[domain]
        outcome = await resolver.resolve(user_id, raw_identifier, **criteria)
        if isinstance(outcome, Resolved):
            return outcome.id
        if isinstance(outcome, NotFound):
            raise NotFoundError(outcome.reason)
        raise AmbiguousError(f"Which {resolver.noun.lower()} do you mean?", outcome.options)

    async def resolve_optional_id(
        self, user_id: str, domain: str, raw_identifier: str | None, **criteria: Any
    ) -> str | None:
        if not raw_identifier or not raw_identifier.strip():
            return None
        return await self.resolve_id(user_id, domain, raw_identifier, **criteria)

    async def identify(
        self,
        user_id: str,
        domain: str,
        raw_identifier: str | None,
        *,
        action: str,
        purpose: str,
        clarify_message: str | None = None,
        **criteria: Any,
    ) -> ToolResponse:
        """Run the gate's identify phase and render the outcome.

        *purpose* completes "Please confirm you want to ..." in the
        confirmation prompt, e.g. ``"delete this account"``.
        """
        outcome = await self.gate.identify(
            user_id, domain, raw_identifier, action=action, **criteria
        )
        if isinstance(outcome, PendingAction):
            return ToolResponse.confirm(
                outcome.id,
                outcome.summary,
                f"Found {outcome.summary}. Please confirm you want to {purpose} "
                f"by providing the ID ({outcome.required_confirmation_id}).",
            )
        if isinstance(outcome, Clarify):
            noun = self.gate.domain(domain).noun.lower()
            message = clarify_message or f"Which {noun} do you mean?"
            return ToolResponse.clarify(message, outcome.options)
        logger.debug("No %s to %s for user %s: %s", domain, action, user_id, outcome.reason)
        return ToolResponse.fail(outcome.reason)
