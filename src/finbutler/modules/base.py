"""Abstract base class for finbutler modules."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass
class ToolMeta:
    """Metadata for a single MCP tool registered by a module.

    Attributes:
        requires_confirmed_id: The tool mutates a row and only accepts an
            identifier returned by a prior identify call, never fuzzy text.
        destructive: The mutation deletes data or cannot be undone through
            the tools.
    """

    requires_confirmed_id: bool = False
    destructive: bool = False


class Module(abc.ABC):
    """Abstract base class for modules.

    A module adds domain-specific MCP tools to a host's FastMCP server but
    never touches the host's own infrastructure.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique module name (e.g., 'finance')."""
        ...

    @property
    @abc.abstractmethod
    def config_schema(self) -> type[BaseModel]:
        """Pydantic model class for this module's configuration."""
        ...

    @abc.abstractmethod
    async def register_tools(self, mcp: Any, config: Any, db: Any) -> None:
        """Register MCP tools on the host's FastMCP server."""
        ...

    @abc.abstractmethod
    def migration_revisions(self) -> str | None:
        """Return Alembic branch label for module migrations, or None."""
        ...

    @abc.abstractmethod
    async def on_startup(self, config: Any, db: Any) -> None:
        """Called after migrations, before the first tool call.

        Parameters
        ----------
        config:
            Module-specific validated configuration object.
        db:
            Database instance (provides ``db.pool`` for asyncpg).
        """
        ...

    @abc.abstractmethod
    async def on_shutdown(self) -> None:
        """Called during host shutdown."""
        ...

    def tool_metadata(self) -> dict[str, ToolMeta]:
        """Return metadata for tools registered by this module.

        Modules that do not override this method declare nothing.
        """
        return {}
