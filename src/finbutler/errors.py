"""Error taxonomy shared by stores, resolvers, the action gate and tools.

Every error a user may legitimately trigger derives from :class:`FinanceError`
and carries a short, human-readable message that is safe to show verbatim.
Anything else reaching the tool boundary is treated as an infrastructure
failure: logged with its traceback, reported with a generic message.
"""

from __future__ import annotations


class FinanceError(Exception):
    """Base class for expected, user-presentable finance errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(FinanceError, ValueError):
    """Malformed input: bad date, non-positive amount, missing field, start >= end."""


class NotFoundError(FinanceError):
    """The referenced row does not exist or is not visible to the caller."""


class ForbiddenError(FinanceError):
    """The row exists but the caller's role does not allow this mutation.

    Never surfaced as-is from a confirmed action: the action gate rewrites it
    into :class:`NotFoundError` so callers cannot tell foreign rows from missing ones.
    """


class InfrastructureError(FinanceError):
    """The underlying store failed unexpectedly.

    The tool boundary logs it and reports the tool's generic failure message
    rather than this one.
    """


class AmbiguousError(FinanceError):
    """Several rows matched where a tool needed exactly one.

    The tool boundary turns this into a clarification response listing
    ``options`` rather than a failure.
    """

    def __init__(self, message: str, options: tuple = ()) -> None:
        super().__init__(message)
        self.options = options
