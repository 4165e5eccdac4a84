"""Finance module: wires the conversational finance tools into a FastMCP server.

Tool closures take the acting user from the request-scoped user context
(:func:`finbutler.core.logging.set_user_context`), never from tool arguments,
and inject the shared :class:`~finbutler.tools.context.FinanceContext` from
module state at call time.

Type conversions at the MCP boundary:
- Amount fields: accepted as ``float`` from MCP; the tools quantise them to
  two-place ``Decimal`` values.
- Dates: accepted as natural-language phrases and resolved against the
  context's clock.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from finbutler.config import DEFAULT_CLARIFY_LIMIT, DEFAULT_CURRENCY
from finbutler.core.clock import Clock
from finbutler.core.logging import get_user_context
from finbutler.core.telemetry import SpanWrappingMCP
from finbutler.errors import InfrastructureError
from finbutler.modules.base import Module, ToolMeta
from finbutler.tools.context import FinanceContext
from finbutler.tools.response import ToolResponse

logger = logging.getLogger(__name__)

# Tools that act on an identifier returned by a prior identify call.
_CONFIRMED_TOOLS = {
    "execute_confirmed_delete_account": True,
    "execute_confirmed_update_account_name": False,
    "execute_confirmed_delete_category": True,
    "execute_confirmed_update_category_name": False,
    "execute_confirmed_update_budget": False,
    "execute_confirmed_delete_budget": True,
    "execute_confirmed_mark_debt_paid": True,
    "execute_confirmed_update_debt": False,
    "execute_confirmed_delete_debt": True,
    "execute_confirmed_update_transaction": False,
    "execute_confirmed_delete_transaction": True,
    "execute_confirmed_update_goal": False,
    "execute_add_amount_to_goal": False,
    "execute_withdraw_amount_from_goal": False,
    "execute_confirmed_delete_goal": True,
}


class FinanceModuleConfig(BaseModel):
    """Configuration for the finance module."""

    default_currency: str = Field(default=DEFAULT_CURRENCY, pattern=r"^[A-Z]{3}$")
    clarify_limit: int = Field(default=DEFAULT_CLARIFY_LIMIT, ge=2, le=20)


class FinanceModule(Module):
    """Finance module providing account, category, budget, debt, transaction
    and saving-goal tools.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._db: Any = None
        self._ctx: FinanceContext | None = None
        self._clock = clock

    @property
    def name(self) -> str:
        return "finance"

    @property
    def config_schema(self) -> type[BaseModel]:
        return FinanceModuleConfig

    @property
    def dependencies(self) -> list[str]:
        return []

    def migration_revisions(self) -> str | None:
        return "finance"

    async def on_startup(self, config: Any, db: Any) -> None:
        """Build the finance context over the database pool."""
        from finbutler.stores import FinanceStores

        cfg = config if isinstance(config, FinanceModuleConfig) else FinanceModuleConfig(
            **(config or {})
        )
        self._db = db
        self._ctx = FinanceContext(
            FinanceStores.from_pool(db.require_pool()),
            clock=self._clock,
            default_currency=cfg.default_currency,
            clarify_limit=cfg.clarify_limit,
        )
        logger.info("Finance module started (currency=%s)", cfg.default_currency)

    async def on_shutdown(self) -> None:
        """Clear state references."""
        self._db = None
        self._ctx = None

    def tool_metadata(self) -> dict[str, ToolMeta]:
        return {
            name: ToolMeta(requires_confirmed_id=True, destructive=destructive)
            for name, destructive in _CONFIRMED_TOOLS.items()
        }

    def _get_context(self) -> FinanceContext:
        """Return the finance context.

        Raises
        ------
        InfrastructureError
            If :meth:`on_startup` has not run.
        """
        if self._ctx is None:
            raise InfrastructureError("FinanceModule not initialised; call on_startup first")
        return self._ctx

    async def call(
        self, tool: Callable[..., Awaitable[dict[str, Any]]], **kwargs: Any
    ) -> dict[str, Any]:
        """Invoke *tool* for the request's current user."""
        user_id = get_user_context()
        if not user_id:
            return ToolResponse.fail("No active user for this request.").to_dict()
        try:
            ctx = self._get_context()
        except InfrastructureError:
            logger.exception("Finance tool called before the module started")
            return ToolResponse.fail("Finance tools are not available right now.").to_dict()
        return await tool(ctx, user_id, **kwargs)

    async def register_tools(self, mcp: Any, config: Any, db: Any) -> None:
        """Register all finance MCP tools, each wrapped in a tool span."""
        from finbutler.modules.finance.tools import register_tools

        self._db = db
        proxy = SpanWrappingMCP(mcp, module_name=self.name, tool_metadata=self.tool_metadata())
        register_tools(proxy, self)


__all__ = ["FinanceModule", "FinanceModuleConfig"]
