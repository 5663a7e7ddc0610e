"""005: create bid_participants and bid_attempts tables

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # position is dense per session but not UNIQUE: re-densifying after a
    # removal rewrites positions row by row.
    op.execute("""
        CREATE TABLE bid_participants (
            session_id          VARCHAR(64)     NOT NULL
                                REFERENCES bid_sessions (id) ON DELETE CASCADE,
            user_id             UUID            NOT NULL REFERENCES users (id),
            position            INTEGER         NOT NULL,
            bid_priority        INTEGER         NOT NULL DEFAULT 0,
            has_bid             BOOLEAN         NOT NULL DEFAULT FALSE,
            skipped             BOOLEAN         NOT NULL DEFAULT FALSE,
            auto_assigned       BOOLEAN         NOT NULL DEFAULT FALSE,
            assigned_station_id VARCHAR(64)     REFERENCES stations (id),
            assigned_shift      CHAR(1),
            assigned_position   VARCHAR(32),
            window_start        TIMESTAMPTZ,
            window_end          TIMESTAMPTZ,
            PRIMARY KEY (session_id, user_id),
            CONSTRAINT ck_bid_participants_position CHECK (position >= 0),
            CONSTRAINT ck_bid_participants_settled CHECK (NOT (has_bid AND skipped))
        );
    """)
    op.execute(
        "CREATE INDEX idx_bid_participants_session_position "
        "ON bid_participants (session_id, position);"
    )
    op.execute("""
        CREATE TABLE bid_attempts (
            id              BIGSERIAL       PRIMARY KEY,
            session_id      VARCHAR(64)     NOT NULL
                            REFERENCES bid_sessions (id) ON DELETE CASCADE,
            user_id         UUID            NOT NULL REFERENCES users (id),
            station_id      VARCHAR(64)     NOT NULL REFERENCES stations (id),
            shift           CHAR(1)         NOT NULL,
            position        VARCHAR(32)     NOT NULL,
            auto_assigned   BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX idx_bid_attempts_session_user ON bid_attempts (session_id, user_id);"
    )
    op.execute(
        "CREATE INDEX idx_bid_attempts_created_at ON bid_attempts (created_at DESC, id DESC);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bid_attempts CASCADE;")
    op.execute("DROP TABLE IF EXISTS bid_participants CASCADE;")
