"""001: create shared trigger functions

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # An assignment may never push a (station, shift) past its configured capacity.
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_guard_station_capacity()
        RETURNS TRIGGER AS $$
        DECLARE
            cap     INTEGER;
            taken   INTEGER;
        BEGIN
            SELECT CASE NEW.shift
                       WHEN 'A' THEN capacity_a
                       WHEN 'B' THEN capacity_b
                       ELSE capacity_c
                   END
              INTO cap
              FROM stations
             WHERE id = NEW.station_id;

            SELECT COUNT(*) INTO taken
              FROM station_assignments
             WHERE station_id = NEW.station_id AND shift = NEW.shift;

            IF taken >= COALESCE(cap, 0) THEN
                RAISE EXCEPTION 'station % shift % is at capacity (%)',
                    NEW.station_id, NEW.shift, COALESCE(cap, 0)
                    USING ERRCODE = 'check_violation';
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_guard_station_capacity();")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
