"""002 – Leave balances.

Creates ``leave_balances`` (one row per employee per leave type) and adds
``leave_requests.balance_deducted``, the amount taken from the balance when
a request was approved, so a later revocation restores exactly that much.

Revision ID: 002_leave_balances
Revises: 001_initial_schema
Create Date: 2026-10-18 15:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "002_leave_balances"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ══════════════════════════════════════════════════════════════════
    # 1. leave_balances
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS leave_balances (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id  UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_type   leave_type NOT NULL,
            balance      NUMERIC(6, 1) NOT NULL DEFAULT 0,
            accrued_ytd  NUMERIC(6, 1) NOT NULL DEFAULT 0,
            used_ytd     NUMERIC(6, 1) NOT NULL DEFAULT 0,
            last_updated TIMESTAMPTZ,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_balance_emp_type UNIQUE (employee_id, leave_type)
        )
    """)

    # ══════════════════════════════════════════════════════════════════
    # 2. leave_requests.balance_deducted
    # ══════════════════════════════════════════════════════════════════
    op.execute(
        "ALTER TABLE leave_requests ADD COLUMN IF NOT EXISTS balance_deducted NUMERIC(5, 1)"
    )


def downgrade() -> None:
    op.execute("ALTER TABLE leave_requests DROP COLUMN IF EXISTS balance_deducted")
    op.execute("DROP TABLE IF EXISTS leave_balances CASCADE")
