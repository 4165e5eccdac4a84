"""asyncpg-backed domain stores."""

from __future__ import annotations

from dataclasses import dataclass

import asyncpg

from finbutler.stores.accounts import AccountStore
from finbutler.stores.budgets import BudgetStore
from finbutler.stores.categories import CategoryStore
from finbutler.stores.debts import DebtStore
from finbutler.stores.goals import GoalStore
from finbutler.stores.transactions import TransactionStore
from finbutler.stores.users import UserStore


@dataclass
class FinanceStores:
    users: UserStore
    accounts: AccountStore
    categories: CategoryStore
    budgets: BudgetStore
    debts: DebtStore
    transactions: TransactionStore
    goals: GoalStore

    @classmethod
    def from_pool(cls, pool: asyncpg.Pool) -> FinanceStores:
        return cls(
            users=UserStore(pool),
            accounts=AccountStore(pool),
            categories=CategoryStore(pool),
            budgets=BudgetStore(pool),
            debts=DebtStore(pool),
            transactions=TransactionStore(pool),
            goals=GoalStore(pool),
        )


__all__ = [
    "AccountStore",
    "BudgetStore",
    "CategoryStore",
    "DebtStore",
    "FinanceStores",
    "GoalStore",
    "TransactionStore",
    "UserStore",
]
