"""Unit tests for SessionRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.sb_common.enums import SessionStatus
from src.sb_session.domain.models import BidAttempt, BidSession, Participant, TimeWindow
from src.sb_session.infrastructure.persistence import SessionRepository

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _result(rows: list[Any] | None = None, one: Any = None, scalar: Any = None) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows or []
    result.fetchone.return_value = one
    result.scalar_one.return_value = scalar
    return result


def _session_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "BS-1")
    row.name = kwargs.get("name", "Spring")
    row.year = kwargs.get("year", 2026)
    row.description = None
    row.status = kwargs.get("status", "active")
    row.bid_window_minutes = 5
    row.scheduled_start = None
    row.scheduled_end = None
    row.current_participant_index = kwargs.get("current_participant_index", 0)
    row.current_bid_start = NOW
    row.current_bid_end = NOW
    row.actual_start = NOW
    row.actual_end = None
    row.created_by = None
    row.created_at = NOW
    row.updated_at = NOW
    return row


def _participant_row(user_id: str, position: int, **kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.session_id = "BS-1"
    row.user_id = user_id
    row.position = position
    row.bid_priority = position + 1
    row.has_bid = kwargs.get("has_bid", False)
    row.skipped = False
    row.auto_assigned = False
    row.assigned_station_id = kwargs.get("assigned_station_id")
    row.assigned_shift = kwargs.get("assigned_shift")
    row.assigned_position = kwargs.get("assigned_position")
    row.window_start = kwargs.get("window_start")
    row.window_end = kwargs.get("window_end")
    return row


def _attempt_row(user_id: str) -> MagicMock:
    row = MagicMock()
    row.id = 11
    row.session_id = "BS-1"
    row.user_id = user_id
    row.station_id = "ST-1"
    row.shift = "A"
    row.position = "Driver"
    row.auto_assigned = False
    row.created_at = NOW
    return row


class TestSessionRepositoryReads:
    async def test_get_hydrates_roster_and_history(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(one=_session_row()),
            _result(rows=[_attempt_row("u1")]),
            _result(
                rows=[
                    _participant_row(
                        "u1", 0, has_bid=True, assigned_station_id="ST-1",
                        assigned_shift="A", assigned_position="Driver",
                        window_start=NOW, window_end=NOW,
                    ),
                    _participant_row("u2", 1),
                ]
            ),
        ]
        session = await SessionRepository().get(db, "BS-1")
        assert session is not None
        assert session.status == SessionStatus.ACTIVE
        u1, u2 = session.participants
        assert u1.bid_history[0].id == 11
        assert u1.time_window == TimeWindow(NOW, NOW)
        assert u2.bid_history == []
        assert u2.time_window is None

    async def test_get_missing_returns_none(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=None)
        assert await SessionRepository().get(db, "BS-404") is None
        db.execute.assert_awaited_once()

    async def test_list_ids_by_status(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rows=[_session_row(id="BS-1"), _session_row(id="BS-2")])
        ids = await SessionRepository().list_ids_by_status(db, SessionStatus.ACTIVE)
        assert ids == ["BS-1", "BS-2"]
        assert db.execute.call_args[0][1] == {"status": "active"}

    async def test_list_sessions_empty_skips_hydration(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rows=[])
        assert await SessionRepository().list_sessions(db, status=SessionStatus.DRAFT) == []
        db.execute.assert_awaited_once()

    async def test_list_bid_history_maps_joined_rows(self) -> None:
        row = _attempt_row("u1")
        row.session_name = "Spring"
        row.session_status = "completed"
        row.queue_position = 0
        row.station_name = "Station 01"
        row.auto_assigned = True
        db = AsyncMock()
        db.execute.return_value = _result(rows=[row])

        [record] = await SessionRepository().list_bid_history(
            db, 25, statuses=[SessionStatus.COMPLETED, SessionStatus.ACTIVE]
        )
        assert record.session_status == SessionStatus.COMPLETED
        assert (record.station_name, record.shift, record.timestamp) == ("Station 01", "A", NOW)
        assert record.auto_assigned is True
        assert db.execute.call_args[0][1] == {
            "session_id": None,
            "statuses_csv": "active,completed",
            "limit": 25,
        }

    async def test_list_bid_history_for_one_session(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rows=[])
        assert await SessionRepository().list_bid_history(db, 10, session_id="BS-1") == []
        params = db.execute.call_args[0][1]
        assert params["session_id"] == "BS-1"
        assert params["statuses_csv"] is None


class TestSessionRepositoryWrites:
    async def test_create_sets_timestamps(self) -> None:
        db = AsyncMock()
        stamped = MagicMock(created_at=NOW, updated_at=NOW)
        db.execute.return_value = _result(one=stamped)
        session = BidSession(id="BS-1", name="Spring", year=2026, bid_window_minutes=5)
        await SessionRepository().create(db, session)
        assert session.created_at == NOW
        params = db.execute.call_args[0][1]
        assert params["status"] == "draft"

    async def test_save_writes_counters_and_new_attempts_only(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(one=MagicMock(updated_at=NOW)),  # update header
            _result(),  # delete removed participants
            _result(),  # upsert roster
            _result(scalar=42),  # insert new attempt
        ]
        old = BidAttempt("ST-1", "A", "Driver", NOW, id=7)
        new = BidAttempt("ST-2", "B", "EMT", NOW)
        session = BidSession(
            id="BS-1",
            name="Spring",
            year=2026,
            bid_window_minutes=5,
            status=SessionStatus.ACTIVE,
            participants=[
                Participant("u1", 0, 1, has_bid=True, bid_history=[old]),
                Participant("u2", 1, 2, has_bid=True, bid_history=[new]),
            ],
        )
        await SessionRepository().save(db, session)

        assert db.execute.await_count == 4
        header = db.execute.await_args_list[0][0][1]
        assert header["completed_bids"] == 2
        assert header["total_participants"] == 2
        removed = db.execute.await_args_list[1][0][1]
        assert removed["user_ids_csv"] == "u1,u2"
        roster = db.execute.await_args_list[2][0][1]
        assert [r["user_id"] for r in roster] == ["u1", "u2"]
        assert new.id == 42
        assert old.id == 7

    async def test_save_empty_roster_skips_upsert(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(one=MagicMock(updated_at=NOW)), _result()]
        session = BidSession(id="BS-1", name="Spring", year=2026, bid_window_minutes=5)
        await SessionRepository().save(db, session)
        assert db.execute.await_count == 2
