"""001 – Initial schema: departments, employees, users, leave, attendance, compliance.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("employment_status", ["onboarding", "active", "on_leave", "suspended", "terminated"]),
    ("employment_type", ["full_time", "part_time", "contract", "intern"]),
    ("pay_rate_type", ["salary", "hourly"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled", "completed"]),
    (
        "leave_type",
        [
            "vacation",
            "sick",
            "personal",
            "bereavement",
            "jury_duty",
            "maternity",
            "paternity",
            "unpaid",
            "other",
        ],
    ),
    (
        "attendance_status",
        [
            "present",
            "absent",
            "late",
            "half_day",
            "remote",
            "on_leave",
            "holiday",
            "leave",
            "sick",
            "vacation",
            "personal",
            "excused",
            "maternity",
            "unpaid",
        ],
    ),
    ("compliance_status", ["valid", "pending", "expiring_soon", "expired"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(150) NOT NULL UNIQUE,
            description TEXT,
            manager_id  UUID,  -- FK added after employees table
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code     VARCHAR(20)  NOT NULL UNIQUE,
            first_name        VARCHAR(100) NOT NULL,
            last_name         VARCHAR(100) NOT NULL,
            email             VARCHAR(255) NOT NULL UNIQUE,
            phone             VARCHAR(20),
            job_title         VARCHAR(200),
            department_id     UUID REFERENCES departments(id),
            manager_id        UUID REFERENCES employees(id),
            employment_status employment_status NOT NULL DEFAULT 'active',
            employment_type   employment_type   NOT NULL DEFAULT 'full_time',
            hire_date         DATE NOT NULL,
            termination_date  DATE,
            salary            NUMERIC(12, 2),
            pay_rate_type     pay_rate_type,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_employees_department ON employees(department_id)")

    # Deferred FK: departments.manager_id → employees.id
    op.execute("""
        ALTER TABLE departments
            ADD CONSTRAINT fk_dept_manager
            FOREIGN KEY (manager_id) REFERENCES employees(id) ON DELETE SET NULL
    """)

    # ── 3. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email         VARCHAR(255) NOT NULL UNIQUE,
            name          VARCHAR(255) NOT NULL,
            role          VARCHAR(50)  NOT NULL DEFAULT 'employee',
            employee_id   UUID UNIQUE REFERENCES employees(id) ON DELETE SET NULL,
            department_id UUID REFERENCES departments(id),
            is_active     BOOLEAN DEFAULT TRUE,
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            updated_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 4. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_type        leave_type   NOT NULL,
            status            leave_status NOT NULL DEFAULT 'pending',
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            is_first_day_half BOOLEAN DEFAULT FALSE,
            is_last_day_half  BOOLEAN DEFAULT FALSE,
            total_days        NUMERIC(5, 1) NOT NULL,
            reason            TEXT,
            approved_by_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            approver_name     VARCHAR(255),
            approved_at       TIMESTAMPTZ,
            approver_notes    TEXT,
            created_by_id     UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_date_order CHECK (start_date <= end_date)
        )
    """)
    op.execute("""
        CREATE INDEX ix_leave_employee_dates
            ON leave_requests(employee_id, start_date, end_date)
    """)

    # ── 5. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id     UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            date            DATE NOT NULL,
            time_in         TIME,
            time_out        TIME,
            status          attendance_status NOT NULL DEFAULT 'present',
            notes           TEXT,
            total_hours     NUMERIC(4, 2),
            source_leave_id UUID REFERENCES leave_requests(id) ON DELETE SET NULL,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_attendance_emp_date UNIQUE (employee_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_source_leave ON attendance_records(source_leave_id)")

    # ── 6. compliance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE compliance_records (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id        UUID REFERENCES employees(id) ON DELETE CASCADE,
            department_id      UUID REFERENCES departments(id),
            license_type       VARCHAR(150) NOT NULL,
            license_number     VARCHAR(100),
            issue_date         DATE,
            expiration_date    DATE,
            status             compliance_status NOT NULL DEFAULT 'pending',
            is_hipaa_sensitive BOOLEAN DEFAULT FALSE,
            notes              TEXT,
            verified_by_id     UUID REFERENCES users(id) ON DELETE SET NULL,
            verification_date  DATE,
            created_at         TIMESTAMPTZ DEFAULT NOW(),
            updated_at         TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX idx_compliance_expiration
            ON compliance_records(expiration_date)
            WHERE status <> 'expired'
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "compliance_records",
        "attendance_records",
        "leave_requests",
        "users",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop deferred FK before dropping employees / departments
    op.execute(
        "ALTER TABLE departments DROP CONSTRAINT IF EXISTS fk_dept_manager"
    )
    op.execute("DROP TABLE IF EXISTS employees CASCADE")
    op.execute("DROP TABLE IF EXISTS departments CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
