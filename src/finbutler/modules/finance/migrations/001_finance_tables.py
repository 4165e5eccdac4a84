"""finance_tables

Revision ID: finance_001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "finance_001"
down_revision = None
branch_labels = ("finance",)
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # --- users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id                 UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name               TEXT NOT NULL,
            email              TEXT,
            is_active          BOOLEAN NOT NULL DEFAULT true,
            preferred_currency CHAR(3),
            created_at         TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_users_email
            ON users (lower(email))
            WHERE email IS NOT NULL
    """)

    # --- accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id         UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id   UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name       TEXT NOT NULL,
            balance    NUMERIC(14, 2) NOT NULL DEFAULT 0,
            currency   CHAR(3) NOT NULL DEFAULT 'USD',
            is_default BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_accounts_owner
            ON accounts (owner_id, created_at DESC)
    """)

    # --- categories ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id         UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id   UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name       TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_categories_owner_name
            ON categories (owner_id, lower(name))
    """)

    # --- transactions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id    UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            account_id  UUID NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            category_id UUID REFERENCES categories(id) ON DELETE RESTRICT,
            amount      NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
            is_income   BOOLEAN NOT NULL,
            description TEXT NOT NULL,
            transfer    TEXT,
            currency    CHAR(3) NOT NULL,
            created_by  UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_transactions_owner_created_at
            ON transactions (owner_id, created_at DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_transactions_account
            ON transactions (account_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_transactions_category
            ON transactions (category_id)
            WHERE category_id IS NOT NULL
    """)

    # --- budgets ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS budgets (
            id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id    UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            category_id UUID NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
            month       SMALLINT NOT NULL CHECK (month BETWEEN 1 AND 12),
            year        SMALLINT NOT NULL CHECK (year BETWEEN 1900 AND 2100),
            amount      NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
            UNIQUE (owner_id, category_id, month, year)
        )
    """)

    # --- debts ---
    # duration holds a unit name or an ISO "start,end" pair; frequency is the unit count.
    op.execute("""
        CREATE TABLE IF NOT EXISTS debts (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            created_by      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            counterparty_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            account_id      UUID REFERENCES accounts(id) ON DELETE SET NULL,
            type            TEXT NOT NULL CHECK (type IN ('given', 'taken')),
            amount          NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
            premium_amount  NUMERIC(14, 2) NOT NULL DEFAULT 0,
            percentage      NUMERIC(6, 2) NOT NULL DEFAULT 0 CHECK (percentage >= 0),
            interest_type   TEXT NOT NULL DEFAULT 'simple'
                                CHECK (interest_type IN ('simple', 'compound')),
            description     TEXT,
            due_date        DATE,
            duration        TEXT,
            frequency       TEXT,
            is_paid         BOOLEAN NOT NULL DEFAULT false,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            CHECK (created_by <> counterparty_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_debts_created_by
            ON debts (created_by)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_debts_counterparty
            ON debts (counterparty_id)
    """)

    # --- saving_goals ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS saving_goals (
            id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name          TEXT NOT NULL,
            target_amount NUMERIC(14, 2) NOT NULL CHECK (target_amount > 0),
            saved_amount  NUMERIC(14, 2) NOT NULL DEFAULT 0 CHECK (saved_amount >= 0),
            target_date   DATE,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_saving_goals_owner
            ON saving_goals (owner_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS saving_goals")
    op.execute("DROP TABLE IF EXISTS debts")
    op.execute("DROP TABLE IF EXISTS budgets")
    op.execute("DROP TABLE IF EXISTS transactions")
    op.execute("DROP TABLE IF EXISTS categories")
    op.execute("DROP TABLE IF EXISTS accounts")
    op.execute("DROP TABLE IF EXISTS users")
