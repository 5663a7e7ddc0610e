"""Admin application service: cross-session invariant checks, stats, manual sweep."""

from collections import Counter
from dataclasses import asdict
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_scheduler.turn_sweeper import TurnSweeper, get_turn_sweeper
from src.sb_session.application.service import get_session_engine
from src.sb_session.domain.clock import remaining_seconds
from src.sb_session.domain.invariants import (
    verify_session_invariants,
    verify_station_capacity,
)
from src.sb_session.engine.engine import BidSessionEngine
from src.sb_station.domain.repository import StationRepositoryProtocol
from src.sb_station.infrastructure.persistence import StationRepository


class AdminService:
    def __init__(
        self,
        engine: BidSessionEngine | None = None,
        station_repo: StationRepositoryProtocol | None = None,
        sweeper: TurnSweeper | None = None,
    ) -> None:
        self._engine = engine
        self._stations: StationRepositoryProtocol = station_repo or StationRepository()
        self._sweeper = sweeper

    @property
    def engine(self) -> BidSessionEngine:
        return self._engine or get_session_engine()

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, Any]:
        """Per-session roster checks, per-station capacity, and bid/assignment agreement."""
        violations: list[str] = []
        sessions = await self.engine.list_sessions(db)
        stations = {s.id: s for s in await self._stations.list_active_stations(db)}

        for session in sessions:
            try:
                verify_session_invariants(session)
            except AssertionError as e:
                violations.append(str(e))
            for p in session.participants:
                if not p.has_bid or p.assigned_station_id not in stations:
                    continue
                occupants = stations[p.assigned_station_id].current_assignments.get(
                    p.assigned_shift or "", []
                )
                if p.user_id not in occupants:
                    violations.append(
                        f"Bid not reflected in station roster: session={session.id} "
                        f"user={p.user_id} station={p.assigned_station_id} "
                        f"shift={p.assigned_shift}"
                    )

        for station in stations.values():
            try:
                verify_station_capacity(station)
            except AssertionError as e:
                violations.append(str(e))

        return {
            "ok": len(violations) == 0,
            "checked_sessions": len(sessions),
            "checked_stations": len(stations),
            "violations": violations,
        }

    async def get_session_stats(self, session_id: str, db: AsyncSession) -> dict[str, Any]:
        session = await self.engine.get_session(db, session_id)
        by_station = Counter(
            p.assigned_station_id for p in session.participants if p.has_bid
        )
        by_shift = Counter(p.assigned_shift for p in session.participants if p.has_bid)

        bid_seconds = [
            (p.bid_history[-1].timestamp - p.time_window.start).total_seconds()
            for p in session.participants
            if p.has_bid and not p.auto_assigned and p.time_window and p.bid_history
        ]
        return {
            "session_id": session.id,
            "status": session.status.value,
            "total_participants": session.total_participants,
            "completed_bids": session.completed_bids,
            "skipped_bids": session.skipped_bids,
            "auto_assignments": session.auto_assignments,
            "progress_percentage": session.progress_percentage,
            "remaining_seconds": remaining_seconds(session, self.engine.now()),
            "assignments_by_station": dict(by_station),
            "assignments_by_shift": dict(by_shift),
            "average_bid_seconds": (
                round(sum(bid_seconds) / len(bid_seconds), 1) if bid_seconds else None
            ),
        }

    async def run_sweep(self) -> dict[str, int]:
        sweeper = self._sweeper or get_turn_sweeper()
        return asdict(await sweeper.run_once())
