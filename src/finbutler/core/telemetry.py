"""OpenTelemetry span helpers for finance tool invocations.

Only the OTel API is used here; installing a TracerProvider and exporter is
left to the hosting process. Without one, spans are no-ops.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

from finbutler.core.logging import get_user_context

if TYPE_CHECKING:
    from finbutler.modules.base import ToolMeta

_TRACER_NAME = "finbutler"


def get_tracer(name: str = _TRACER_NAME) -> trace.Tracer:
    """Get a tracer from the current provider."""
    return trace.get_tracer(name)


class tool_span:
    """Create an OpenTelemetry span for a tool invocation.

    Can be used as a **context manager** or as a **decorator** on async functions.

    Context manager usage::

        with tool_span("list_accounts", user_id=user_id):
            ...

    Decorator usage::

        @tool_span("list_accounts")
        async def list_accounts(...):
            ...

    The span is named ``finbutler.tool.<tool_name>`` and carries the
    ``finbutler.user_id`` attribute when one is known, plus any extra
    *attributes*. Exceptions are recorded
    on the span and the status is set to ERROR before the exception is
    re-raised.
    """

    def __init__(
        self,
        tool_name: str,
        *,
        user_id: str | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        self._tool_name = tool_name
        self._user_id = user_id
        self._attributes = dict(attributes or {})
        self._span_name = f"finbutler.tool.{tool_name}"
        self._span: trace.Span | None = None
        self._token: object | None = None

    def __enter__(self) -> trace.Span:
        tracer = trace.get_tracer(_TRACER_NAME)
        self._span = tracer.start_span(self._span_name)
        self._span.set_attribute("finbutler.tool", self._tool_name)
        if self._user_id is not None:
            self._span.set_attribute("finbutler.user_id", self._user_id)
        for key, value in self._attributes.items():
            self._span.set_attribute(key, value)
        self._token = trace.context_api.attach(trace.set_span_in_context(self._span))
        return self._span

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._span is None:
            return
        if exc_val is not None:
            self._span.set_status(trace.StatusCode.ERROR, str(exc_val))
            self._span.record_exception(exc_val)
        self._span.end()
        if self._token is not None:
            trace.context_api.detach(self._token)

    def __call__(self, func):  # noqa: ANN001, ANN204
        # A fresh instance per invocation keeps concurrent calls from sharing
        # _span / _token state.
        tool_name = self._tool_name
        user_id = self._user_id
        attributes = self._attributes

        @functools.wraps(func)
        async def _wrapper(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
            with tool_span(tool_name, user_id=user_id, attributes=attributes):
                return await func(*args, **kwargs)

        return _wrapper


def _meta_attributes(meta: ToolMeta | None) -> dict[str, bool]:
    if meta is None:
        return {}
    return {
        "finbutler.tool.requires_confirmed_id": meta.requires_confirmed_id,
        "finbutler.tool.destructive": meta.destructive,
    }


class SpanWrappingMCP:
    """Proxy around FastMCP that auto-wraps tool handlers with :class:`tool_span`.

    When a module calls ``mcp.tool()`` to register its tools, this proxy
    intercepts the registration and wraps the handler with a
    ``finbutler.tool.<name>`` span carrying the request's user id. Tools named
    in *tool_metadata* also get ``finbutler.tool.requires_confirmed_id`` and
    ``finbutler.tool.destructive`` span attributes.

    All other attribute access is forwarded to the underlying FastMCP instance.
    """

    def __init__(
        self,
        mcp: Any,
        *,
        module_name: str | None = None,
        tool_metadata: Mapping[str, ToolMeta] | None = None,
    ) -> None:
        self._mcp = mcp
        self._module_name = module_name or "unknown"
        self._tool_metadata = dict(tool_metadata or {})
        self.registered_tool_names: set[str] = set()

    def tool(self, *args, **kwargs):  # noqa: ANN002, ANN003, ANN201
        """Return a decorator that wraps the handler with tool_span."""
        declared_name = kwargs.get("name")
        original_decorator = self._mcp.tool(*args, **kwargs)

        def wrapper(fn):  # noqa: ANN001, ANN202
            resolved_tool_name = declared_name or fn.__name__
            if resolved_tool_name in self.registered_tool_names:
                raise ValueError(
                    f"Module '{self._module_name}' registered tool "
                    f"'{resolved_tool_name}' twice"
                )
            self.registered_tool_names.add(resolved_tool_name)
            attributes = _meta_attributes(self._tool_metadata.get(resolved_tool_name))

            @functools.wraps(fn)
            async def instrumented(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
                user_id = get_user_context()
                with tool_span(resolved_tool_name, user_id=user_id, attributes=attributes):
                    return await fn(*args, **kwargs)

            return original_decorator(instrumented)

        return wrapper

    def __getattr__(self, name: str) -> Any:
        return getattr(self._mcp, name)
