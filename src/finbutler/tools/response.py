"""Uniform result envelope returned by every finance tool.

A tool call ends in exactly one of four shapes:

- ``ok``: completed, with a message and optional data.
- ``clarify``: several rows matched; the human must pick one of ``options``.
- ``confirm``: one row was identified; the human must approve ``id``.
- ``fail``: a short, human-readable ``error``.

``clarify`` and ``confirm`` are successful calls that need another round-trip.
No exception crosses the tool boundary: :func:`tool_boundary` turns domain
errors into ``fail`` with their message and anything else into ``fail`` with
a generic message after logging the traceback.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, ParamSpec

from finbutler.errors import AmbiguousError, FinanceError, InfrastructureError

logger = logging.getLogger(__name__)

P = ParamSpec("P")


@dataclass
class ToolResponse:
    success: bool
    message: str | None = None
    data: Any = None
    clarification_needed: bool = False
    confirmation_needed: bool = False
    id: str | None = None
    details: str | None = None
    options: list[dict[str, str]] = field(default_factory=list)
    error: str | None = None

    def __post_init__(self) -> None:
        if self.clarification_needed and self.confirmation_needed:
            raise ValueError("A response cannot ask for clarification and confirmation at once")
        if (self.clarification_needed or self.confirmation_needed) and not self.success:
            raise ValueError("Clarification and confirmation responses must be successful")
        if not self.success and not self.error:
            raise ValueError("A failed response must carry an error message")

    # -- constructors -------------------------------------------------------

    @classmethod
    def ok(cls, message: str | None = None, data: Any = None) -> ToolResponse:
        return cls(success=True, message=message, data=data)

    @classmethod
    def clarify(cls, message: str, options: Sequence[Any]) -> ToolResponse:
        """Ask the human to choose; *options* are dicts or objects with ``to_dict``."""
        rendered = [o.to_dict() if hasattr(o, "to_dict") else dict(o) for o in options]
        return cls(success=True, clarification_needed=True, message=message, options=rendered)

    @classmethod
    def confirm(cls, entity_id: str, details: str, message: str) -> ToolResponse:
        return cls(
            success=True,
            confirmation_needed=True,
            id=entity_id,
            details=details,
            message=message,
        )

    @classmethod
    def fail(cls, error: str) -> ToolResponse:
        return cls(success=False, error=error)

    # -- serialisation ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the caller-facing dict, omitting unset keys."""
        if not self.success:
            return {"success": False, "error": self.error}
        out: dict[str, Any] = {"success": True}
        if self.message is not None:
            out["message"] = self.message
        if self.clarification_needed:
            out["clarification_needed"] = True
            out["options"] = self.options
        elif self.confirmation_needed:
            out["confirmation_needed"] = True
            out["id"] = self.id
            out["details"] = self.details
        elif self.data is not None:
            out["data"] = self.data
        return out


def tool_boundary(
    fallback: str,
) -> Callable[[Callable[P, Awaitable[ToolResponse]]], Callable[P, Awaitable[dict[str, Any]]]]:
    """Decorate an async tool so it always returns a serialised :class:`ToolResponse`.

    Parameters
    ----------
    fallback:
        Message reported when an unexpected (non-domain) exception escapes
        the tool, e.g. ``"Failed to create budget."``.
    """

    def decorator(
        fn: Callable[P, Awaitable[ToolResponse]],
    ) -> Callable[P, Awaitable[dict[str, Any]]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> dict[str, Any]:
            try:
                response = await fn(*args, **kwargs)
            except AmbiguousError as exc:
                response = ToolResponse.clarify(exc.message, exc.options)
            except InfrastructureError:
                logger.exception("Tool %s hit an infrastructure failure", fn.__name__)
                response = ToolResponse.fail(fallback)
            except FinanceError as exc:
                logger.info("Tool %s rejected: %s", fn.__name__, exc.message)
                response = ToolResponse.fail(exc.message)
            except Exception:
                logger.exception("Tool %s failed", fn.__name__)
                response = ToolResponse.fail(fallback)
            return response.to_dict()

        return wrapper

    return decorator
