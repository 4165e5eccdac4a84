"""Conversational finance tools.

Each tool module exposes plain async functions taking a
:class:`~finbutler.tools.context.FinanceContext` and the acting user id and
returning a :class:`~finbutler.tools.response.ToolResponse` dict. Import the
domain modules directly (``from finbutler.tools import debts``).
"""
