"""003: create stations and station_assignments tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE stations (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(100)    NOT NULL,
            number          VARCHAR(16)     NOT NULL,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            capacity_a      INTEGER         NOT NULL DEFAULT 0,
            capacity_b      INTEGER         NOT NULL DEFAULT 0,
            capacity_c      INTEGER         NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_stations_number   UNIQUE (number),
            CONSTRAINT ck_stations_capacity CHECK (
                capacity_a >= 0 AND capacity_b >= 0 AND capacity_c >= 0
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_stations_updated_at
            BEFORE UPDATE ON stations
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    # Occupancy rows; session_id FK is added in 004 once bid_sessions exists.
    op.execute("""
        CREATE TABLE station_assignments (
            id              BIGSERIAL       PRIMARY KEY,
            station_id      VARCHAR(64)     NOT NULL REFERENCES stations (id),
            shift           CHAR(1)         NOT NULL,
            user_id         UUID            NOT NULL REFERENCES users (id),
            position        VARCHAR(32)     NOT NULL,
            session_id      VARCHAR(64)     NOT NULL,
            assigned_at     TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_station_assignments_shift CHECK (shift IN ('A', 'B', 'C')),
            CONSTRAINT uq_station_assignments_user_session UNIQUE (session_id, user_id)
        );
    """)
    op.execute(
        "CREATE INDEX idx_station_assignments_station_shift "
        "ON station_assignments (station_id, shift);"
    )
    op.execute("""
        CREATE TRIGGER trg_station_assignments_capacity
            BEFORE INSERT ON station_assignments
            FOR EACH ROW EXECUTE FUNCTION fn_guard_station_capacity();
    """)
    # Latest placement per user, written with each assignment.
    op.execute("""
        ALTER TABLE users
            ADD COLUMN current_station_id VARCHAR(64) REFERENCES stations (id),
            ADD COLUMN current_shift      CHAR(1),
            ADD CONSTRAINT ck_users_current_shift CHECK (current_shift IN ('A', 'B', 'C'));
    """)
    op.execute("COMMENT ON TABLE stations IS 'Fire stations with per-shift capacity';")


def downgrade() -> None:
    op.execute("""
        ALTER TABLE users
            DROP CONSTRAINT IF EXISTS ck_users_current_shift,
            DROP COLUMN IF EXISTS current_shift,
            DROP COLUMN IF EXISTS current_station_id;
    """)
    op.execute("DROP TABLE IF EXISTS station_assignments CASCADE;")
    op.execute("DROP TABLE IF EXISTS stations CASCADE;")
