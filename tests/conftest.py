"""Shared fixtures for the finbutler test suite."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from finbutler.core.clock import FixedClock
from finbutler.core.logging import set_user_context
from finbutler.tools.context import FinanceContext

from ._fakes import Tables, add_user, fake_stores

# Friday, mid-month, mid-quarter.
NOW = datetime(2024, 3, 15, 10, 30, tzinfo=UTC)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def tables() -> Tables:
    """Fake rows without an explicit date land early in the current month."""
    return Tables(clock=datetime(2024, 3, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def alice(tables: Tables) -> str:
    return add_user(tables, "Alice", "alice@example.com")


@pytest.fixture
def bob(tables: Tables) -> str:
    return add_user(tables, "Bob", "bob@example.com")


@pytest.fixture
def ctx(tables: Tables, clock: FixedClock) -> FinanceContext:
    return FinanceContext(fake_stores(tables), clock=clock, default_currency="INR")


@pytest.fixture(autouse=True)
def _reset_user_context():
    yield
    set_user_context(None)
