"""Unit tests for AdminService diagnostics."""

from src.sb_admin.application.service import AdminService
from src.sb_scheduler.turn_sweeper import TurnSweeper


async def _bid_session(engine, new_db, clock) -> str:
    session = await engine.create_session(new_db(), name="Bid", year=2026, bid_window_minutes=5)
    await engine.add_participants(new_db(), session.id, ["u1", "u2", "u3"])
    await engine.start(new_db(), session.id)
    clock.advance(seconds=90)
    await engine.submit_bid(new_db(), session.id, "u1", "ST-1", "B")
    await engine.skip_turn(new_db(), session.id, "u2")
    return session.id


def _admin(engine, station_repo, new_db) -> AdminService:
    sweeper = TurnSweeper(engine=engine, session_factory=new_db)
    return AdminService(engine=engine, station_repo=station_repo, sweeper=sweeper)


class TestVerifyAllInvariants:
    async def test_clean_state(self, engine, new_db, clock, station_repo) -> None:
        await _bid_session(engine, new_db, clock)
        result = await _admin(engine, station_repo, new_db).verify_all_invariants(new_db())
        assert result["ok"] is True
        assert result["checked_sessions"] == 1
        assert result["checked_stations"] == 2
        assert result["violations"] == []

    async def test_detects_missing_roster_entry(self, engine, new_db, clock, station_repo) -> None:
        await _bid_session(engine, new_db, clock)
        station_repo.stations["ST-1"].current_assignments["B"] = []
        result = await _admin(engine, station_repo, new_db).verify_all_invariants(new_db())
        assert result["ok"] is False
        assert "Bid not reflected in station roster" in result["violations"][0]

    async def test_detects_overfilled_station(self, engine, new_db, station_repo) -> None:
        station_repo.stations["ST-2"].current_assignments["A"] = ["x", "y"]
        result = await _admin(engine, station_repo, new_db).verify_all_invariants(new_db())
        assert result["ok"] is False
        assert "over capacity" in result["violations"][0]


class TestSessionStats:
    async def test_counts_and_average(self, engine, new_db, clock, station_repo) -> None:
        session_id = await _bid_session(engine, new_db, clock)
        stats = await _admin(engine, station_repo, new_db).get_session_stats(session_id, new_db())
        assert stats["completed_bids"] == 1
        assert stats["skipped_bids"] == 1
        assert stats["progress_percentage"] == 67
        assert stats["assignments_by_station"] == {"ST-1": 1}
        assert stats["assignments_by_shift"] == {"B": 1}
        assert stats["average_bid_seconds"] == 90.0
        assert stats["remaining_seconds"] == 300


class TestRunSweep:
    async def test_returns_report_dict(self, engine, new_db, clock, station_repo) -> None:
        await _bid_session(engine, new_db, clock)
        clock.advance(minutes=10)
        report = await _admin(engine, station_repo, new_db).run_sweep()
        assert report == {"checked": 1, "timed_out": 1, "warned": 0, "failed": 0}
