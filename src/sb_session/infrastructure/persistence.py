"""SessionRepository — raw SQL persistence for bid sessions.

A session is stored across three tables: bid_sessions (header, cursor and
denormalized counters), bid_participants (one row per roster entry) and
bid_attempts (append-only bid history). save() writes the full aggregate;
counters on the header are recomputed from the participant list each time.
"""

from collections import defaultdict
from collections.abc import Collection
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.enums import SessionStatus
from src.sb_session.domain.models import (
    BidAttempt,
    BidHistoryRecord,
    BidSession,
    Participant,
    TimeWindow,
)

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SESSION_COLUMNS = """
    id, name, year, description, status, bid_window_minutes,
    scheduled_start, scheduled_end, current_participant_index,
    current_bid_start, current_bid_end, actual_start, actual_end,
    CAST(created_by AS TEXT) AS created_by, created_at, updated_at
"""

_INSERT_SESSION_SQL = text("""
    INSERT INTO bid_sessions (id, name, year, description, status, bid_window_minutes,
        scheduled_start, scheduled_end, created_by)
    VALUES (:id, :name, :year, :description, :status, :bid_window_minutes,
        :scheduled_start, :scheduled_end, CAST(:created_by AS UUID))
    RETURNING created_at, updated_at
""")

_GET_SESSION_SQL = text(f"""
    SELECT {_SESSION_COLUMNS}
    FROM bid_sessions WHERE id = :id
""")

_GET_SESSION_FOR_UPDATE_SQL = text(f"""
    SELECT {_SESSION_COLUMNS}
    FROM bid_sessions WHERE id = :id
    FOR UPDATE
""")

_UPDATE_SESSION_SQL = text("""
    UPDATE bid_sessions
    SET name = :name, year = :year, description = :description, status = :status,
        bid_window_minutes = :bid_window_minutes,
        scheduled_start = :scheduled_start, scheduled_end = :scheduled_end,
        current_participant_index = :current_participant_index,
        current_bid_start = :current_bid_start, current_bid_end = :current_bid_end,
        actual_start = :actual_start, actual_end = :actual_end,
        total_participants = :total_participants, completed_bids = :completed_bids,
        skipped_bids = :skipped_bids, auto_assignments = :auto_assignments
    WHERE id = :id
    RETURNING updated_at
""")

_DELETE_SESSION_SQL = text("DELETE FROM bid_sessions WHERE id = :id")

_LIST_SESSIONS_SQL = text(f"""
    SELECT {_SESSION_COLUMNS}
    FROM bid_sessions
    WHERE (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:year AS INTEGER) IS NULL OR year = :year)
    ORDER BY created_at DESC
""")

# Running sessions first, then the next scheduled one.
_GET_CURRENT_SESSION_SQL = text(f"""
    SELECT {_SESSION_COLUMNS}
    FROM bid_sessions
    WHERE status IN ('active', 'paused', 'scheduled')
    ORDER BY CASE status WHEN 'active' THEN 0 WHEN 'paused' THEN 1 ELSE 2 END,
             scheduled_start ASC NULLS LAST, created_at ASC
    LIMIT 1
""")

_LIST_IDS_BY_STATUS_SQL = text("""
    SELECT id FROM bid_sessions WHERE status = :status ORDER BY id
""")

_PARTICIPANT_COLUMNS = """
    session_id, CAST(user_id AS TEXT) AS user_id, position, bid_priority,
    has_bid, skipped, auto_assigned,
    assigned_station_id, assigned_shift, assigned_position,
    window_start, window_end
"""

_GET_PARTICIPANTS_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM bid_participants
    WHERE session_id = ANY(string_to_array(CAST(:session_ids_csv AS TEXT), ','))
    ORDER BY session_id, position
""")

_UPSERT_PARTICIPANT_SQL = text("""
    INSERT INTO bid_participants (session_id, user_id, position, bid_priority,
        has_bid, skipped, auto_assigned,
        assigned_station_id, assigned_shift, assigned_position,
        window_start, window_end)
    VALUES (:session_id, CAST(:user_id AS UUID), :position, :bid_priority,
        :has_bid, :skipped, :auto_assigned,
        :assigned_station_id, :assigned_shift, :assigned_position,
        :window_start, :window_end)
    ON CONFLICT (session_id, user_id) DO UPDATE
    SET position = EXCLUDED.position, bid_priority = EXCLUDED.bid_priority,
        has_bid = EXCLUDED.has_bid, skipped = EXCLUDED.skipped,
        auto_assigned = EXCLUDED.auto_assigned,
        assigned_station_id = EXCLUDED.assigned_station_id,
        assigned_shift = EXCLUDED.assigned_shift,
        assigned_position = EXCLUDED.assigned_position,
        window_start = EXCLUDED.window_start, window_end = EXCLUDED.window_end
""")

_DELETE_REMOVED_PARTICIPANTS_SQL = text("""
    DELETE FROM bid_participants
    WHERE session_id = :session_id
      AND NOT (CAST(user_id AS TEXT) = ANY(string_to_array(CAST(:user_ids_csv AS TEXT), ',')))
""")

_GET_ATTEMPTS_SQL = text("""
    SELECT id, session_id, CAST(user_id AS TEXT) AS user_id,
           station_id, shift, position, auto_assigned, created_at
    FROM bid_attempts
    WHERE session_id = ANY(string_to_array(CAST(:session_ids_csv AS TEXT), ','))
    ORDER BY id
""")

_INSERT_ATTEMPT_SQL = text("""
    INSERT INTO bid_attempts (session_id, user_id, station_id, shift, position,
        auto_assigned, created_at)
    VALUES (:session_id, CAST(:user_id AS UUID), :station_id, :shift, :position,
        :auto_assigned, :created_at)
    RETURNING id
""")

# Newest first. A NULL session_id or statuses_csv disables that filter.
_LIST_BID_HISTORY_SQL = text("""
    SELECT a.session_id, s.name AS session_name, s.status AS session_status,
           CAST(a.user_id AS TEXT) AS user_id, p.position AS queue_position,
           a.station_id, st.name AS station_name,
           a.shift, a.position, a.auto_assigned, a.created_at
    FROM bid_attempts a
    JOIN bid_sessions s ON s.id = a.session_id
    JOIN bid_participants p ON p.session_id = a.session_id AND p.user_id = a.user_id
    JOIN stations st ON st.id = a.station_id
    WHERE (CAST(:session_id AS TEXT) IS NULL OR a.session_id = :session_id)
      AND (CAST(:statuses_csv AS TEXT) IS NULL
           OR s.status = ANY(string_to_array(CAST(:statuses_csv AS TEXT), ',')))
    ORDER BY a.created_at DESC, a.id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_attempt(row: Any) -> BidAttempt:
    return BidAttempt(
        id=row.id,
        station_id=row.station_id,
        shift=row.shift,
        position=row.position,
        timestamp=row.created_at,
        auto_assigned=row.auto_assigned,
    )


def _row_to_history(row: Any) -> BidHistoryRecord:
    return BidHistoryRecord(
        session_id=row.session_id,
        session_name=row.session_name,
        session_status=SessionStatus(row.session_status),
        user_id=row.user_id,
        queue_position=row.queue_position,
        station_id=row.station_id,
        station_name=row.station_name,
        shift=row.shift,
        position=row.position,
        auto_assigned=row.auto_assigned,
        timestamp=row.created_at,
    )


def _row_to_participant(row: Any, history: list[BidAttempt]) -> Participant:
    window = None
    if row.window_start is not None and row.window_end is not None:
        window = TimeWindow(start=row.window_start, end=row.window_end)
    return Participant(
        user_id=row.user_id,
        position=row.position,
        bid_priority=row.bid_priority,
        has_bid=row.has_bid,
        skipped=row.skipped,
        auto_assigned=row.auto_assigned,
        assigned_station_id=row.assigned_station_id,
        assigned_shift=row.assigned_shift,
        assigned_position=row.assigned_position,
        bid_history=history,
        time_window=window,
    )


def _row_to_session(row: Any, participants: list[Participant]) -> BidSession:
    return BidSession(
        id=row.id,
        name=row.name,
        year=row.year,
        description=row.description,
        status=SessionStatus(row.status),
        bid_window_minutes=row.bid_window_minutes,
        scheduled_start=row.scheduled_start,
        scheduled_end=row.scheduled_end,
        participants=participants,
        current_participant_index=row.current_participant_index,
        current_bid_start=row.current_bid_start,
        current_bid_end=row.current_bid_end,
        actual_start=row.actual_start,
        actual_end=row.actual_end,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _participant_params(session_id: str, p: Participant) -> dict[str, Any]:
    window = p.time_window
    return {
        "session_id": session_id,
        "user_id": p.user_id,
        "position": p.position,
        "bid_priority": p.bid_priority,
        "has_bid": p.has_bid,
        "skipped": p.skipped,
        "auto_assigned": p.auto_assigned,
        "assigned_station_id": p.assigned_station_id,
        "assigned_shift": p.assigned_shift,
        "assigned_position": p.assigned_position,
        "window_start": window.start if window else None,
        "window_end": window.end if window else None,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionRepository:
    """Concrete implementation of SessionRepositoryProtocol using raw SQL."""

    async def _hydrate(self, db: AsyncSession, rows: list[Any]) -> list[BidSession]:
        if not rows:
            return []
        ids_csv = ",".join(row.id for row in rows)

        history: dict[tuple[str, str], list[BidAttempt]] = defaultdict(list)
        attempts = await db.execute(_GET_ATTEMPTS_SQL, {"session_ids_csv": ids_csv})
        for a in attempts.fetchall():
            history[(a.session_id, a.user_id)].append(_row_to_attempt(a))

        roster: dict[str, list[Participant]] = defaultdict(list)
        participants = await db.execute(_GET_PARTICIPANTS_SQL, {"session_ids_csv": ids_csv})
        for p in participants.fetchall():
            roster[p.session_id].append(
                _row_to_participant(p, history[(p.session_id, p.user_id)])
            )

        return [_row_to_session(row, roster[row.id]) for row in rows]

    async def _get(self, db: AsyncSession, sql: Any, session_id: str) -> BidSession | None:
        row = (await db.execute(sql, {"id": session_id})).fetchone()
        if row is None:
            return None
        return (await self._hydrate(db, [row]))[0]

    async def create(self, db: AsyncSession, session: BidSession) -> None:
        result = await db.execute(
            _INSERT_SESSION_SQL,
            {
                "id": session.id,
                "name": session.name,
                "year": session.year,
                "description": session.description,
                "status": session.status.value,
                "bid_window_minutes": session.bid_window_minutes,
                "scheduled_start": session.scheduled_start,
                "scheduled_end": session.scheduled_end,
                "created_by": session.created_by,
            },
        )
        row = result.fetchone()
        session.created_at = row.created_at
        session.updated_at = row.updated_at

    async def get(self, db: AsyncSession, session_id: str) -> BidSession | None:
        return await self._get(db, _GET_SESSION_SQL, session_id)

    async def get_for_update(self, db: AsyncSession, session_id: str) -> BidSession | None:
        return await self._get(db, _GET_SESSION_FOR_UPDATE_SQL, session_id)

    async def save(self, db: AsyncSession, session: BidSession) -> None:
        result = await db.execute(
            _UPDATE_SESSION_SQL,
            {
                "id": session.id,
                "name": session.name,
                "year": session.year,
                "description": session.description,
                "status": session.status.value,
                "bid_window_minutes": session.bid_window_minutes,
                "scheduled_start": session.scheduled_start,
                "scheduled_end": session.scheduled_end,
                "current_participant_index": session.current_participant_index,
                "current_bid_start": session.current_bid_start,
                "current_bid_end": session.current_bid_end,
                "actual_start": session.actual_start,
                "actual_end": session.actual_end,
                "total_participants": session.total_participants,
                "completed_bids": session.completed_bids,
                "skipped_bids": session.skipped_bids,
                "auto_assignments": session.auto_assignments,
            },
        )
        row = result.fetchone()
        if row is not None:
            session.updated_at = row.updated_at

        await db.execute(
            _DELETE_REMOVED_PARTICIPANTS_SQL,
            {
                "session_id": session.id,
                "user_ids_csv": ",".join(p.user_id for p in session.participants),
            },
        )
        if session.participants:
            await db.execute(
                _UPSERT_PARTICIPANT_SQL,
                [_participant_params(session.id, p) for p in session.participants],
            )

        for p in session.participants:
            for attempt in p.bid_history:
                if attempt.id is not None:
                    continue
                inserted = await db.execute(
                    _INSERT_ATTEMPT_SQL,
                    {
                        "session_id": session.id,
                        "user_id": p.user_id,
                        "station_id": attempt.station_id,
                        "shift": attempt.shift,
                        "position": attempt.position,
                        "auto_assigned": attempt.auto_assigned,
                        "created_at": attempt.timestamp,
                    },
                )
                attempt.id = inserted.scalar_one()

    async def delete(self, db: AsyncSession, session_id: str) -> None:
        await db.execute(_DELETE_SESSION_SQL, {"id": session_id})

    async def list_sessions(
        self,
        db: AsyncSession,
        status: SessionStatus | None = None,
        year: int | None = None,
    ) -> list[BidSession]:
        result = await db.execute(
            _LIST_SESSIONS_SQL,
            {"status": status.value if status else None, "year": year},
        )
        return await self._hydrate(db, result.fetchall())

    async def get_current(self, db: AsyncSession) -> BidSession | None:
        row = (await db.execute(_GET_CURRENT_SESSION_SQL)).fetchone()
        if row is None:
            return None
        return (await self._hydrate(db, [row]))[0]

    async def list_ids_by_status(self, db: AsyncSession, status: SessionStatus) -> list[str]:
        result = await db.execute(_LIST_IDS_BY_STATUS_SQL, {"status": status.value})
        return [row.id for row in result.fetchall()]

    async def list_bid_history(
        self,
        db: AsyncSession,
        limit: int,
        session_id: str | None = None,
        statuses: Collection[SessionStatus] | None = None,
    ) -> list[BidHistoryRecord]:
        statuses_csv = ",".join(sorted(s.value for s in statuses)) if statuses else None
        result = await db.execute(
            _LIST_BID_HISTORY_SQL,
            {"session_id": session_id, "statuses_csv": statuses_csv, "limit": limit},
        )
        return [_row_to_history(row) for row in result.fetchall()]
