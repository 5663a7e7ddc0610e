"""004: create bid_sessions table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bid_sessions (
            id                          VARCHAR(64)     PRIMARY KEY,
            name                        VARCHAR(200)    NOT NULL,
            year                        INTEGER         NOT NULL,
            description                 TEXT,
            status                      VARCHAR(16)     NOT NULL DEFAULT 'draft',
            bid_window_minutes          INTEGER         NOT NULL DEFAULT 5,
            scheduled_start             TIMESTAMPTZ,
            scheduled_end               TIMESTAMPTZ,
            current_participant_index   INTEGER         NOT NULL DEFAULT 0,
            current_bid_start           TIMESTAMPTZ,
            current_bid_end             TIMESTAMPTZ,
            actual_start                TIMESTAMPTZ,
            actual_end                  TIMESTAMPTZ,
            total_participants          INTEGER         NOT NULL DEFAULT 0,
            completed_bids              INTEGER         NOT NULL DEFAULT 0,
            skipped_bids                INTEGER         NOT NULL DEFAULT 0,
            auto_assignments            INTEGER         NOT NULL DEFAULT 0,
            created_by                  UUID            REFERENCES users (id),
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bid_sessions_status CHECK (
                status IN ('draft', 'scheduled', 'active', 'paused', 'completed')
            ),
            CONSTRAINT ck_bid_sessions_window CHECK (bid_window_minutes BETWEEN 1 AND 60),
            CONSTRAINT ck_bid_sessions_cursor CHECK (
                current_participant_index >= 0
                AND current_participant_index <= total_participants
            )
        );
    """)
    op.execute("CREATE INDEX idx_bid_sessions_status ON bid_sessions (status);")
    op.execute("CREATE INDEX idx_bid_sessions_year ON bid_sessions (year);")
    op.execute("""
        CREATE TRIGGER trg_bid_sessions_updated_at
            BEFORE UPDATE ON bid_sessions
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        ALTER TABLE station_assignments
            ADD CONSTRAINT fk_station_assignments_session
            FOREIGN KEY (session_id) REFERENCES bid_sessions (id) ON DELETE CASCADE;
    """)


def downgrade() -> None:
    op.execute(
        "ALTER TABLE station_assignments "
        "DROP CONSTRAINT IF EXISTS fk_station_assignments_session;"
    )
    op.execute("DROP TABLE IF EXISTS bid_sessions CASCADE;")
