"""001 – Initial schema: tenants, people, time, leave, assets, SaaS, workflow.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-28 10:00:00.000000+09:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["admin", "hr", "manager", "executive", "employee", "applicant"]),
    ("user_status", ["active", "inactive", "suspended", "retired"]),
    (
        "retirement_reason",
        ["voluntary", "company", "contract_end", "retirement_age", "other"],
    ),
    ("org_unit_type", ["company", "division", "department", "team"]),
    ("attendance_status", ["present", "absent", "holiday", "leave", "late", "early"]),
    ("work_location", ["office", "home", "client", "other"]),
    (
        "leave_type",
        ["paid", "sick", "special", "compensatory", "half_day_am", "half_day_pm"],
    ),
    ("leave_category", ["paid", "sick", "special", "compensatory"]),
    ("leave_status", ["draft", "pending", "approved", "rejected", "cancelled"]),
    (
        "announcement_type",
        ["general", "deadline", "system", "event", "policy", "emergency"],
    ),
    ("announcement_priority", ["urgent", "high", "normal", "low"]),
    (
        "announcement_target",
        ["all", "employee", "manager", "hr", "executive", "custom"],
    ),
    ("announcement_read_status", ["unread", "read", "completed"]),
    ("ownership_type", ["owned", "leased", "rental"]),
    ("asset_status", ["active", "maintenance", "retired"]),
    ("tire_type", ["summer", "winter"]),
    (
        "maintenance_type",
        ["oil_change", "tire_change", "inspection", "shaken", "repair", "other"],
    ),
    ("general_asset_type", ["mobile", "tablet", "equipment", "other"]),
    (
        "saas_category",
        [
            "communication",
            "productivity",
            "development",
            "design",
            "hr",
            "finance",
            "marketing",
            "sales",
            "security",
            "storage",
            "other",
        ],
    ),
    ("license_type", ["user-based", "fixed", "usage-based"]),
    ("security_rating", ["A", "B", "C", "D"]),
    ("billing_cycle", ["monthly", "yearly"]),
    ("payment_method", ["credit_card", "invoice", "bank_transfer"]),
    ("currency", ["JPY", "USD"]),
    ("license_status", ["active", "inactive", "pending"]),
    (
        "workflow_type",
        [
            "leave_request",
            "overtime_request",
            "expense_claim",
            "business_trip",
            "purchase_request",
            "document_approval",
            "shift_change",
            "remote_work",
        ],
    ),
    (
        "workflow_status",
        [
            "draft",
            "pending",
            "in_review",
            "partially_approved",
            "approved",
            "rejected",
            "cancelled",
        ],
    ),
    ("workflow_priority", ["low", "normal", "high", "urgent"]),
    ("approval_step_status", ["waiting", "pending", "approved", "rejected", "skipped"]),
    (
        "timeline_action",
        [
            "created",
            "submitted",
            "approved",
            "rejected",
            "cancelled",
            "delegated",
            "commented",
            "completed",
        ],
    ),
    (
        "notification_type",
        ["info", "action_required", "approval", "reminder", "alert"],
    ),
]

# Tables carrying created_at / updated_at + tenant_id
TENANT_TABLES = [
    "org_units",
    "users",
    "attendance_records",
    "leave_balances",
    "leave_requests",
    "announcements",
    "announcement_reads",
    "vendors",
    "vehicles",
    "maintenance_records",
    "monthly_mileage",
    "pc_assets",
    "software_licenses",
    "general_assets",
    "saas_services",
    "license_plans",
    "license_assignments",
    "workflow_requests",
    "approval_steps",
    "timeline_events",
    "notifications",
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# Column groups shared by vehicles / pc_assets / general_assets
OWNERSHIP_COLUMNS = """
            ownership_type      ownership_type NOT NULL DEFAULT 'owned',
            purchase_date       DATE,
            purchase_cost       NUMERIC(12,2),
            lease_company       VARCHAR(200),
            lease_monthly_cost  NUMERIC(12,2),
            lease_start         DATE,
            lease_end           DATE,
            status              asset_status NOT NULL DEFAULT 'active',
            notes               TEXT,
            assigned_user_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            assigned_date       DATE,"""

COMMON_COLUMNS = """
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            tenant_id   UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,"""

TIMESTAMPS = """
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()"""


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. tenants ────────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE tenants (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name            VARCHAR(200) NOT NULL,
            logo_url        VARCHAR(500),
            timezone        VARCHAR(50) NOT NULL DEFAULT 'Asia/Tokyo',
            closing_day     VARCHAR(3)  NOT NULL DEFAULT 'end',
            week_start_day  SMALLINT    NOT NULL DEFAULT 1,
            is_active       BOOLEAN     NOT NULL DEFAULT TRUE,{TIMESTAMPS}
        )
    """)

    # ── 2. org_units ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE org_units ({COMMON_COLUMNS}
            name         VARCHAR(150) NOT NULL,
            parent_id    UUID REFERENCES org_units(id) ON DELETE RESTRICT,
            unit_type    org_unit_type NOT NULL DEFAULT 'department',
            level        SMALLINT NOT NULL DEFAULT 0,
            description  TEXT,
            is_active    BOOLEAN NOT NULL DEFAULT TRUE,{TIMESTAMPS},
            CONSTRAINT uq_org_units_name UNIQUE (tenant_id, parent_id, name)
        )
    """)

    # ── 3. users ──────────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE users ({COMMON_COLUMNS}
            email              VARCHAR(255) NOT NULL UNIQUE,
            name               VARCHAR(200) NOT NULL,
            name_kana          VARCHAR(200),
            phone              VARCHAR(30),
            employee_number    VARCHAR(30),
            position           VARCHAR(100),
            hire_date          DATE,
            unit_id            UUID REFERENCES org_units(id) ON DELETE SET NULL,
            role               user_role   NOT NULL DEFAULT 'employee',
            status             user_status NOT NULL DEFAULT 'active',
            timezone           VARCHAR(50) NOT NULL DEFAULT 'Asia/Tokyo',
            retired_date       DATE,
            retirement_reason  retirement_reason,
            google_id          VARCHAR(100) UNIQUE,
            profile_photo_url  VARCHAR(500),{TIMESTAMPS}
        )
    """)
    op.execute("CREATE INDEX ix_users_tenant_unit ON users(tenant_id, unit_id)")

    # ── 4. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id             UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash          VARCHAR(64) NOT NULL,
            refresh_token_hash  VARCHAR(64),
            ip_address          INET,
            user_agent          TEXT,
            expires_at          TIMESTAMPTZ NOT NULL,
            is_revoked          BOOLEAN NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_user_id ON user_sessions(user_id)")
    op.execute("CREATE INDEX ix_user_sessions_token_hash ON user_sessions(token_hash)")
    op.execute(
        "CREATE INDEX ix_user_sessions_refresh_token_hash ON user_sessions(refresh_token_hash)"
    )

    # ── 5. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            tenant_id    UUID REFERENCES tenants(id) ON DELETE CASCADE,
            actor_id     UUID REFERENCES users(id) ON DELETE SET NULL,
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID NOT NULL,
            old_values   JSONB,
            new_values   JSONB,
            ip_address   INET,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")

    # ── 6. attendance_records ─────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE attendance_records ({COMMON_COLUMNS}
            user_id           UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            date              DATE NOT NULL,
            check_in          TIME,
            check_out         TIME,
            break_start       TIME,
            break_end         TIME,
            work_minutes      INTEGER NOT NULL DEFAULT 0,
            overtime_minutes  INTEGER NOT NULL DEFAULT 0,
            status            attendance_status NOT NULL DEFAULT 'present',
            location          work_location     NOT NULL DEFAULT 'office',
            notes             TEXT,{TIMESTAMPS},
            CONSTRAINT uq_attendance_user_date UNIQUE (user_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_tenant_date ON attendance_records(tenant_id, date)")

    # ── 7. leave_balances ─────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE leave_balances ({COMMON_COLUMNS}
            user_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            year         INTEGER NOT NULL,
            category     leave_category NOT NULL,
            total        NUMERIC(5,1) NOT NULL DEFAULT 0,
            used         NUMERIC(5,1) NOT NULL DEFAULT 0,
            expiry_date  DATE,{TIMESTAMPS},
            CONSTRAINT uq_leave_balances_user_year_category UNIQUE (user_id, year, category)
        )
    """)

    # ── 8. leave_requests ─────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE leave_requests ({COMMON_COLUMNS}
            user_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            leave_type       leave_type NOT NULL,
            start_date       DATE NOT NULL,
            end_date         DATE NOT NULL,
            days             NUMERIC(5,1) NOT NULL,
            reason           TEXT,
            status           leave_status NOT NULL DEFAULT 'pending',
            approver_id      UUID REFERENCES users(id) ON DELETE SET NULL,
            approved_at      TIMESTAMPTZ,
            rejected_reason  TEXT,
            cancelled_at     TIMESTAMPTZ,{TIMESTAMPS},
            CHECK (end_date >= start_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_tenant_status ON leave_requests(tenant_id, status)"
    )
    op.execute(
        "CREATE INDEX ix_leave_requests_user_start ON leave_requests(user_id, start_date)"
    )

    # ── 9. announcements ──────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE announcements ({COMMON_COLUMNS}
            title            VARCHAR(200) NOT NULL,
            content          TEXT NOT NULL,
            type             announcement_type     NOT NULL DEFAULT 'general',
            priority         announcement_priority NOT NULL DEFAULT 'normal',
            target           announcement_target   NOT NULL DEFAULT 'all',
            target_roles     JSONB NOT NULL DEFAULT '[]',
            target_unit_ids  JSONB NOT NULL DEFAULT '[]',
            start_date       DATE NOT NULL,
            end_date         DATE,
            requires_action  BOOLEAN NOT NULL DEFAULT FALSE,
            action_label     VARCHAR(100),
            action_url       VARCHAR(500),
            action_deadline  DATE,
            published        BOOLEAN NOT NULL DEFAULT FALSE,
            published_at     TIMESTAMPTZ,
            created_by       UUID REFERENCES users(id) ON DELETE SET NULL,{TIMESTAMPS}
        )
    """)
    op.execute(
        "CREATE INDEX ix_announcements_tenant_published "
        "ON announcements(tenant_id, published, start_date)"
    )

    op.execute(f"""
        CREATE TABLE announcement_reads ({COMMON_COLUMNS}
            announcement_id  UUID NOT NULL REFERENCES announcements(id) ON DELETE CASCADE,
            user_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status           announcement_read_status NOT NULL DEFAULT 'unread',
            read_at          TIMESTAMPTZ,
            completed_at     TIMESTAMPTZ,
            CONSTRAINT uq_announcement_reads_user UNIQUE (announcement_id, user_id)
        )
    """)

    # ── 10. vendors ───────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE vendors ({COMMON_COLUMNS}
            name            VARCHAR(200) NOT NULL,
            phone           VARCHAR(30),
            address         VARCHAR(500),
            contact_person  VARCHAR(100),
            email           VARCHAR(255),
            rating          SMALLINT CHECK (rating BETWEEN 1 AND 5),
            notes           TEXT,
            work_count      INTEGER NOT NULL DEFAULT 0,{TIMESTAMPS}
        )
    """)

    # ── 11. vehicles ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE vehicles ({COMMON_COLUMNS}
            vehicle_number     VARCHAR(50)  NOT NULL,
            license_plate      VARCHAR(50)  NOT NULL,
            make               VARCHAR(100) NOT NULL,
            model              VARCHAR(100) NOT NULL,
            year               INTEGER NOT NULL,
            color              VARCHAR(50),
            inspection_date    DATE NOT NULL,
            maintenance_date   DATE NOT NULL,
            insurance_date     DATE NOT NULL,
            current_tire_type  tire_type NOT NULL DEFAULT 'summer',
            mileage_tracking   BOOLEAN NOT NULL DEFAULT FALSE,
            current_mileage    INTEGER,{OWNERSHIP_COLUMNS}{TIMESTAMPS},
            CONSTRAINT uq_vehicles_number UNIQUE (tenant_id, vehicle_number)
        )
    """)

    op.execute(f"""
        CREATE TABLE maintenance_records ({COMMON_COLUMNS}
            vehicle_id        UUID NOT NULL REFERENCES vehicles(id) ON DELETE CASCADE,
            maintenance_type  maintenance_type NOT NULL,
            date              DATE NOT NULL,
            cost              NUMERIC(12,2) NOT NULL DEFAULT 0,
            vendor_id         UUID REFERENCES vendors(id) ON DELETE SET NULL,
            description       TEXT NOT NULL,
            tire_type         tire_type,
            performed_by_id   UUID REFERENCES users(id) ON DELETE SET NULL,
            notes             TEXT,{TIMESTAMPS}
        )
    """)
    op.execute("CREATE INDEX ix_maintenance_records_vehicle_id ON maintenance_records(vehicle_id)")

    op.execute(f"""
        CREATE TABLE monthly_mileage ({COMMON_COLUMNS}
            vehicle_id   UUID NOT NULL REFERENCES vehicles(id) ON DELETE CASCADE,
            month        VARCHAR(7) NOT NULL,
            distance_km  INTEGER NOT NULL CHECK (distance_km >= 0),
            recorded_by  UUID REFERENCES users(id) ON DELETE SET NULL,{TIMESTAMPS},
            CONSTRAINT uq_monthly_mileage_vehicle_month UNIQUE (vehicle_id, month)
        )
    """)

    # ── 12. pc_assets / software_licenses ─────────────────────────────────
    op.execute(f"""
        CREATE TABLE pc_assets ({COMMON_COLUMNS}
            asset_number         VARCHAR(50)  NOT NULL,
            manufacturer         VARCHAR(100) NOT NULL,
            model                VARCHAR(100) NOT NULL,
            serial_number        VARCHAR(100) NOT NULL,
            cpu                  VARCHAR(100),
            memory               VARCHAR(50),
            storage              VARCHAR(50),
            os                   VARCHAR(100),
            warranty_expiration  DATE,{OWNERSHIP_COLUMNS}{TIMESTAMPS},
            CONSTRAINT uq_pc_assets_number UNIQUE (tenant_id, asset_number)
        )
    """)

    op.execute(f"""
        CREATE TABLE software_licenses ({COMMON_COLUMNS}
            pc_id            UUID NOT NULL REFERENCES pc_assets(id) ON DELETE CASCADE,
            software_name    VARCHAR(200) NOT NULL,
            license_key      VARCHAR(500),
            expiration_date  DATE,
            monthly_cost     NUMERIC(12,2),{TIMESTAMPS}
        )
    """)
    op.execute("CREATE INDEX ix_software_licenses_pc_id ON software_licenses(pc_id)")

    # ── 13. general_assets ────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE general_assets ({COMMON_COLUMNS}
            asset_type     general_asset_type NOT NULL,
            asset_number   VARCHAR(50)  NOT NULL,
            name           VARCHAR(200) NOT NULL,
            manufacturer   VARCHAR(100),
            model          VARCHAR(100),
            serial_number  VARCHAR(100),
            contract_end   DATE,
            monthly_cost   NUMERIC(12,2),{OWNERSHIP_COLUMNS}{TIMESTAMPS},
            CONSTRAINT uq_general_assets_number UNIQUE (tenant_id, asset_number)
        )
    """)

    # ── 14. SaaS ──────────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE saas_services ({COMMON_COLUMNS}
            name             VARCHAR(200) NOT NULL,
            category         saas_category NOT NULL DEFAULT 'other',
            vendor           VARCHAR(200),
            website          VARCHAR(500),
            description      TEXT,
            license_type     license_type NOT NULL,
            security_rating  security_rating,
            sso_enabled      BOOLEAN NOT NULL DEFAULT FALSE,
            mfa_enabled      BOOLEAN NOT NULL DEFAULT FALSE,
            admin_email      VARCHAR(255),
            contract_start   DATE,
            contract_end     DATE,
            auto_renew       BOOLEAN NOT NULL DEFAULT FALSE,
            billing_cycle    billing_cycle NOT NULL DEFAULT 'monthly',
            payment_method   payment_method,
            is_active        BOOLEAN NOT NULL DEFAULT TRUE,{TIMESTAMPS}
        )
    """)

    op.execute(f"""
        CREATE TABLE license_plans ({COMMON_COLUMNS}
            service_id      UUID NOT NULL REFERENCES saas_services(id) ON DELETE CASCADE,
            plan_name       VARCHAR(200) NOT NULL,
            billing_cycle   billing_cycle NOT NULL DEFAULT 'monthly',
            price_per_user  NUMERIC(12,2),
            fixed_price     NUMERIC(12,2),
            currency        currency NOT NULL DEFAULT 'JPY',
            max_users       INTEGER CHECK (max_users > 0),
            features        JSONB NOT NULL DEFAULT '[]',
            is_active       BOOLEAN NOT NULL DEFAULT TRUE,{TIMESTAMPS}
        )
    """)
    op.execute("CREATE INDEX ix_license_plans_service_id ON license_plans(service_id)")

    op.execute(f"""
        CREATE TABLE license_assignments ({COMMON_COLUMNS}
            service_id     UUID NOT NULL REFERENCES saas_services(id) ON DELETE CASCADE,
            plan_id        UUID NOT NULL REFERENCES license_plans(id) ON DELETE CASCADE,
            user_id        UUID REFERENCES users(id) ON DELETE CASCADE,
            unit_id        UUID REFERENCES org_units(id) ON DELETE CASCADE,
            account_email  VARCHAR(255),
            status         license_status NOT NULL DEFAULT 'active',
            assigned_date  DATE NOT NULL,
            revoked_date   DATE,
            last_used_at   TIMESTAMPTZ,
            usage_count    INTEGER NOT NULL DEFAULT 0,
            notes          TEXT,{TIMESTAMPS},
            CHECK (user_id IS NOT NULL OR unit_id IS NOT NULL)
        )
    """)
    op.execute(
        "CREATE INDEX ix_license_assignments_service_status "
        "ON license_assignments(service_id, status)"
    )
    op.execute("CREATE INDEX ix_license_assignments_user ON license_assignments(user_id)")

    # ── 15. workflow ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE workflow_requests ({COMMON_COLUMNS}
            request_number  VARCHAR(20)  NOT NULL,
            type            workflow_type NOT NULL,
            title           VARCHAR(200) NOT NULL,
            description     TEXT,
            requester_id    UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status          workflow_status   NOT NULL DEFAULT 'draft',
            priority        workflow_priority NOT NULL DEFAULT 'normal',
            amount          NUMERIC(12,2),
            details         JSONB NOT NULL DEFAULT '{{}}',
            due_date        DATE,
            submitted_at    TIMESTAMPTZ,
            completed_at    TIMESTAMPTZ,
            cancel_reason   TEXT,{TIMESTAMPS},
            CONSTRAINT uq_workflow_requests_number UNIQUE (tenant_id, request_number)
        )
    """)
    op.execute(
        "CREATE INDEX ix_workflow_requests_requester ON workflow_requests(requester_id, status)"
    )

    op.execute(f"""
        CREATE TABLE approval_steps ({COMMON_COLUMNS}
            request_id         UUID NOT NULL REFERENCES workflow_requests(id) ON DELETE CASCADE,
            step_order         INTEGER NOT NULL,
            approver_id        UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            delegated_from_id  UUID REFERENCES users(id) ON DELETE SET NULL,
            status             approval_step_status NOT NULL DEFAULT 'waiting',
            is_optional        BOOLEAN NOT NULL DEFAULT FALSE,
            comment            TEXT,
            acted_at           TIMESTAMPTZ,
            CONSTRAINT uq_approval_steps_order UNIQUE (request_id, step_order)
        )
    """)
    op.execute(
        "CREATE INDEX ix_approval_steps_approver_status ON approval_steps(approver_id, status)"
    )

    op.execute(f"""
        CREATE TABLE timeline_events ({COMMON_COLUMNS}
            request_id  UUID NOT NULL REFERENCES workflow_requests(id) ON DELETE CASCADE,
            actor_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            action      timeline_action NOT NULL,
            comment     TEXT,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_timeline_events_request_id ON timeline_events(request_id)")

    # ── 16. notifications ─────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE notifications ({COMMON_COLUMNS}
            recipient_id  UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type          notification_type NOT NULL DEFAULT 'info',
            title         VARCHAR(200) NOT NULL,
            message       TEXT NOT NULL,
            action_url    VARCHAR(500),
            entity_type   VARCHAR(50),
            entity_id     UUID,
            is_read       BOOLEAN NOT NULL DEFAULT FALSE,
            read_at       TIMESTAMPTZ,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient_unread ON notifications(recipient_id, is_read)"
    )

    # ── tenant_id indexes ─────────────────────────────────────────────────
    for table in TENANT_TABLES:
        op.execute(f"CREATE INDEX ix_{table}_tenant_id ON {table}(tenant_id)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "notifications",
        "timeline_events",
        "approval_steps",
        "workflow_requests",
        "license_assignments",
        "license_plans",
        "saas_services",
        "general_assets",
        "software_licenses",
        "pc_assets",
        "monthly_mileage",
        "maintenance_records",
        "vehicles",
        "vendors",
        "announcement_reads",
        "announcements",
        "leave_requests",
        "leave_balances",
        "attendance_records",
        "audit_trail",
        "user_sessions",
        "users",
        "org_units",
        "tenants",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
