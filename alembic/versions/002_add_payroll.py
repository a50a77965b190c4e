"""002 – Add payroll tables: salary settings, pay items, insurance grades, pay slips.

Uses CREATE TABLE IF NOT EXISTS so the migration is safe to run even
if tables were created by hand.

Revision ID: 002_add_payroll
Revises: 001_initial_schema
Create Date: 2026-10-18 10:00:00.000000+09:00
"""

import re

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "002_add_payroll"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None

_SAFE_IDENT_RE = re.compile(r'^[a-z_][a-z0-9_]*$')

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("payment_type", ["monthly", "daily", "hourly"]),
    ("pay_item_kind", ["allowance", "deduction"]),
    ("pay_slip_status", ["draft", "confirmed", "paid"]),
]

TABLES = ["salary_settings", "pay_items", "social_insurance_grades", "pay_slips"]

COMMON_COLUMNS = """
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            tenant_id   UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,"""

TIMESTAMPS = """
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()"""


def _validate_identifier(name: str) -> str:
    if not _SAFE_IDENT_RE.match(name):
        raise ValueError(f"Unsafe SQL identifier: {name!r}")
    return name


def _safe_drop_table(name: str) -> None:
    _validate_identifier(name)
    op.execute(sa.text(f'DROP TABLE IF EXISTS "{name}" CASCADE'))


def upgrade() -> None:
    for name, values in ENUM_TYPES:
        _validate_identifier(name)
        vals = ", ".join(f"'{v}'" for v in values)
        op.execute(f"""
            DO $$ BEGIN
                CREATE TYPE {name} AS ENUM ({vals});
            EXCEPTION WHEN duplicate_object THEN NULL;
            END $$
        """)

    # ══════════════════════════════════════════════════════════════════
    # 1. salary_settings
    # ══════════════════════════════════════════════════════════════════
    op.execute(f"""
        CREATE TABLE IF NOT EXISTS salary_settings ({COMMON_COLUMNS}
            user_id                    UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            effective_from             DATE NOT NULL,
            effective_to               DATE,
            payment_type               payment_type NOT NULL DEFAULT 'monthly',
            basic_salary               INTEGER NOT NULL DEFAULT 0,
            daily_rate                 INTEGER,
            hourly_rate                INTEGER,
            social_insurance_grade     INTEGER,
            employment_insurance_rate  NUMERIC(6,4) NOT NULL DEFAULT 0.006,
            resident_tax_amount        INTEGER NOT NULL DEFAULT 0,
            dependent_count            INTEGER NOT NULL DEFAULT 0,
            notes                      TEXT,
            is_active                  BOOLEAN NOT NULL DEFAULT TRUE,{TIMESTAMPS},
            CONSTRAINT uq_salary_settings_user_from UNIQUE (user_id, effective_from)
        )
    """)

    # ══════════════════════════════════════════════════════════════════
    # 2. pay_items
    # ══════════════════════════════════════════════════════════════════
    op.execute(f"""
        CREATE TABLE IF NOT EXISTS pay_items ({COMMON_COLUMNS}
            user_id         UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            kind            pay_item_kind NOT NULL,
            code            VARCHAR(50) NOT NULL,
            amount          INTEGER NOT NULL,
            effective_from  DATE NOT NULL,
            effective_to    DATE,
            notes           TEXT,
            is_active       BOOLEAN NOT NULL DEFAULT TRUE,{TIMESTAMPS},
            CONSTRAINT uq_pay_items_user_kind_code_from
                UNIQUE (user_id, kind, code, effective_from)
        )
    """)

    # ══════════════════════════════════════════════════════════════════
    # 3. social_insurance_grades
    # ══════════════════════════════════════════════════════════════════
    op.execute(f"""
        CREATE TABLE IF NOT EXISTS social_insurance_grades ({COMMON_COLUMNS}
            fiscal_year                 INTEGER NOT NULL,
            grade                       INTEGER NOT NULL,
            standard_monthly_amount     INTEGER NOT NULL,
            min_monthly_amount          INTEGER,
            max_monthly_amount          INTEGER,
            health_insurance_employee   INTEGER NOT NULL,
            health_insurance_employer   INTEGER NOT NULL,
            pension_insurance_employee  INTEGER NOT NULL,
            pension_insurance_employer  INTEGER NOT NULL,{TIMESTAMPS},
            CONSTRAINT uq_social_insurance_grades_year_grade
                UNIQUE (tenant_id, fiscal_year, grade)
        )
    """)

    # ══════════════════════════════════════════════════════════════════
    # 4. pay_slips
    # ══════════════════════════════════════════════════════════════════
    op.execute(f"""
        CREATE TABLE IF NOT EXISTS pay_slips ({COMMON_COLUMNS}
            user_id               UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            pay_period            VARCHAR(7) NOT NULL,
            payment_date          DATE NOT NULL,
            basic_salary          INTEGER NOT NULL DEFAULT 0,
            overtime_allowance    INTEGER NOT NULL DEFAULT 0,
            late_night_allowance  INTEGER NOT NULL DEFAULT 0,
            holiday_allowance     INTEGER NOT NULL DEFAULT 0,
            absence_deduction     INTEGER NOT NULL DEFAULT 0,
            allowances            JSONB NOT NULL DEFAULT '{{}}',
            total_allowances      INTEGER NOT NULL DEFAULT 0,
            gross_pay             INTEGER NOT NULL DEFAULT 0,
            health_insurance      INTEGER NOT NULL DEFAULT 0,
            pension_insurance     INTEGER NOT NULL DEFAULT 0,
            employment_insurance  INTEGER NOT NULL DEFAULT 0,
            income_tax            INTEGER NOT NULL DEFAULT 0,
            resident_tax          INTEGER NOT NULL DEFAULT 0,
            deductions            JSONB NOT NULL DEFAULT '{{}}',
            other_deductions      INTEGER NOT NULL DEFAULT 0,
            total_deductions      INTEGER NOT NULL DEFAULT 0,
            net_pay               INTEGER NOT NULL DEFAULT 0,
            working_days          INTEGER NOT NULL DEFAULT 0,
            absence_days          NUMERIC(4,1) NOT NULL DEFAULT 0,
            paid_leave_days       NUMERIC(4,1) NOT NULL DEFAULT 0,
            overtime_hours        NUMERIC(6,2) NOT NULL DEFAULT 0,
            late_night_hours      NUMERIC(6,2) NOT NULL DEFAULT 0,
            holiday_work_hours    NUMERIC(6,2) NOT NULL DEFAULT 0,
            status                pay_slip_status NOT NULL DEFAULT 'draft',
            confirmed_at          TIMESTAMPTZ,
            paid_at               TIMESTAMPTZ,
            notes                 TEXT,{TIMESTAMPS},
            CONSTRAINT uq_pay_slips_user_period UNIQUE (user_id, pay_period)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_pay_slips_tenant_period ON pay_slips(tenant_id, pay_period)"
    )

    for table in TABLES:
        _validate_identifier(table)
        op.execute(f"CREATE INDEX IF NOT EXISTS ix_{table}_tenant_id ON {table}(tenant_id)")


def downgrade() -> None:
    for table in reversed(TABLES):
        _safe_drop_table(table)
    for name, _ in reversed(ENUM_TYPES):
        op.execute(f"DROP TYPE IF EXISTS {_validate_identifier(name)}")
