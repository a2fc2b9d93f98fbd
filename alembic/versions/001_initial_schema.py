"""001 – Initial schema: users, leave requests, audit trail, enums.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-16 10:00:00.000000+00:00
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
    ("user_role", ["employee", "manager", "hr"]),
    ("leave_type", ["annual", "sick", "unpaid"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("leave_audit_action", ["created", "edited", "approved", "rejected", "cancelled"]),
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

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name            VARCHAR(200) NOT NULL,
            email           VARCHAR(255) NOT NULL UNIQUE,
            role            user_role NOT NULL,
            manager_id      UUID REFERENCES users(id),
            annual_balance  INTEGER NOT NULL DEFAULT 0,
            sick_balance    INTEGER NOT NULL DEFAULT 0,
            version         INTEGER NOT NULL DEFAULT 1,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_users_annual_balance_bounds
                CHECK (annual_balance BETWEEN 0 AND 50),
            CONSTRAINT ck_users_sick_balance_bounds
                CHECK (sick_balance BETWEEN 0 AND 30)
        )
    """)
    op.execute("CREATE INDEX ix_users_manager_id ON users(manager_id)")

    # ── 2. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id           UUID NOT NULL REFERENCES users(id),
            leave_type        leave_type NOT NULL,
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            reason            TEXT NOT NULL,
            emergency_contact VARCHAR(255) DEFAULT '',
            work_handover     TEXT DEFAULT '',
            status            leave_status NOT NULL DEFAULT 'pending',
            reserved_days     INTEGER NOT NULL DEFAULT 0,
            hr_override       BOOLEAN NOT NULL DEFAULT FALSE,
            comments          TEXT DEFAULT '',
            reviewed_by       UUID REFERENCES users(id),
            version           INTEGER NOT NULL DEFAULT 1,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_requests_range CHECK (start_date <= end_date),
            CONSTRAINT ck_leave_requests_reserved CHECK (reserved_days >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX ix_leave_requests_user_dates
            ON leave_requests(user_id, start_date, end_date)
    """)
    op.execute("""
        CREATE INDEX ix_leave_requests_user_status
            ON leave_requests(user_id, status)
    """)

    # ── 3. leave_audit_entries (append-only) ──────────────────────────────
    op.execute("""
        CREATE TABLE leave_audit_entries (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            request_id  UUID NOT NULL REFERENCES leave_requests(id),
            position    INTEGER NOT NULL,
            action      leave_audit_action NOT NULL,
            actor_id    UUID NOT NULL REFERENCES users(id),
            at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            meta        JSONB,
            CONSTRAINT uq_leave_audit_position UNIQUE (request_id, position)
        )
    """)
    op.execute("""
        CREATE FUNCTION leave_audit_entries_immutable() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'leave_audit_entries is append-only (% blocked)', TG_OP;
        END;
        $$ LANGUAGE plpgsql
    """)
    op.execute("""
        CREATE TRIGGER trg_leave_audit_entries_immutable
            BEFORE UPDATE OR DELETE ON leave_audit_entries
            FOR EACH ROW EXECUTE FUNCTION leave_audit_entries_immutable()
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_leave_audit_entries_immutable ON leave_audit_entries")
    op.execute("DROP FUNCTION IF EXISTS leave_audit_entries_immutable()")

    # Drop tables in reverse dependency order
    for table in ("leave_audit_entries", "leave_requests", "users"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
