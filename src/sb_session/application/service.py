"""BidSessionApplicationService: maps API requests onto the engine and back.

The engine returns domain objects; this layer adds display names and turns
them into response schemas. It owns no state of its own.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.enums import SessionStatus
from src.sb_gateway.user.directory import UserDirectory, UserDirectoryProtocol
from src.sb_session.application.schemas import (
    BidAttemptOut,
    BidHistoryEntry,
    CreateSessionRequest,
    MyParticipation,
    ParticipantsChanged,
    ParticipantsRequest,
    RecentHistory,
    RemainingTime,
    RemoveParticipantsRequest,
    SessionDetail,
    SessionHistory,
    SessionList,
    SessionSummary,
    SubmitBidRequest,
    SubmitBidResult,
    TurnResult,
    UpdateSessionRequest,
)
from src.sb_session.domain.clock import remaining_seconds
from src.sb_session.domain.models import BidHistoryRecord, BidSession
from src.sb_session.engine import engine as engine_mod
from src.sb_session.engine.engine import BidSessionEngine

_engine: BidSessionEngine | None = None


def get_session_engine() -> BidSessionEngine:
    """Process-wide engine; its in-memory locks only work if everyone shares it."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = BidSessionEngine()
    return _engine


def _turn_result(result: engine_mod.TurnResult) -> TurnResult:
    acted = result.outcome.participant
    nxt = result.outcome.next_participant
    return TurnResult(
        session_id=result.session.id,
        user_id=acted.user_id,
        skipped=acted.skipped,
        auto_assigned=acted.auto_assigned,
        assigned_station_id=acted.assigned_station_id,
        assigned_shift=acted.assigned_shift,
        assigned_position=acted.assigned_position,
        next_user_id=nxt.user_id if nxt else None,
        completed=result.outcome.completed,
    )


class BidSessionApplicationService:
    def __init__(
        self,
        engine: BidSessionEngine | None = None,
        users: UserDirectoryProtocol | None = None,
    ) -> None:
        self._engine_override = engine
        self._users: UserDirectoryProtocol = users or UserDirectory()

    @property
    def engine(self) -> BidSessionEngine:
        return self._engine_override or get_session_engine()

    async def _detail(self, db: AsyncSession, session: BidSession) -> SessionDetail:
        ids = [p.user_id for p in session.participants]
        profiles = await self._users.get_profiles(db, ids)
        names = {uid: profile.display_name for uid, profile in profiles.items()}
        return SessionDetail.from_domain_with_names(session, names)

    # --- admin ---

    async def create_session(
        self, req: CreateSessionRequest, created_by: str, db: AsyncSession
    ) -> SessionSummary:
        session = await self.engine.create_session(
            db,
            name=req.name,
            year=req.year,
            bid_window_minutes=req.bid_window_minutes,
            description=req.description,
            scheduled_start=req.scheduled_start,
            scheduled_end=req.scheduled_end,
            created_by=created_by,
        )
        return SessionSummary.from_domain(session)

    async def update_session(
        self, session_id: str, req: UpdateSessionRequest, db: AsyncSession
    ) -> SessionSummary:
        session = await self.engine.update_session(db, session_id, req.changes())
        return SessionSummary.from_domain(session)

    async def delete_session(self, session_id: str, db: AsyncSession) -> None:
        await self.engine.delete_session(db, session_id)

    async def add_participants(
        self, session_id: str, req: ParticipantsRequest, db: AsyncSession
    ) -> ParticipantsChanged:
        session, added = await self.engine.add_participants(
            db, session_id, req.user_ids, sort_by_priority=req.sort_by_priority
        )
        return ParticipantsChanged(
            session_id=session.id, changed=added, total_participants=session.total_participants
        )

    async def remove_participants(
        self, session_id: str, req: RemoveParticipantsRequest, db: AsyncSession
    ) -> ParticipantsChanged:
        session, removed = await self.engine.remove_participants(db, session_id, req.user_ids)
        return ParticipantsChanged(
            session_id=session.id, changed=removed, total_participants=session.total_participants
        )

    async def transition(self, session_id: str, action: str, db: AsyncSession) -> SessionSummary:
        """schedule / start / pause / resume / complete."""
        handler = {
            "schedule": self.engine.schedule,
            "start": self.engine.start,
            "pause": self.engine.pause,
            "resume": self.engine.resume,
            "complete": self.engine.complete,
        }[action]
        session = await handler(db, session_id)
        return SessionSummary.from_domain(session)

    async def admin_skip(self, session_id: str, db: AsyncSession) -> TurnResult:
        result = await self.engine.skip_or_timeout(db, session_id, force=True)
        return _turn_result(result)

    # --- participant ---

    async def submit_bid(
        self, session_id: str, user_id: str, req: SubmitBidRequest, db: AsyncSession
    ) -> SubmitBidResult:
        result = await self.engine.submit_bid(
            db, session_id, user_id, req.station_id, req.shift, req.position
        )
        acted = result.outcome.participant
        nxt = result.outcome.next_participant
        assert result.station is not None
        return SubmitBidResult(
            session_id=result.session.id,
            user_id=acted.user_id,
            station_id=result.station.id,
            station_name=result.station.name,
            shift=acted.assigned_shift or req.shift,
            position=acted.assigned_position or "",
            timestamp=acted.bid_history[-1].timestamp,
            next_user_id=nxt.user_id if nxt else None,
            completed=result.outcome.completed,
        )

    async def skip_turn(self, session_id: str, user_id: str, db: AsyncSession) -> TurnResult:
        return _turn_result(await self.engine.skip_turn(db, session_id, user_id))

    # --- reads ---

    async def list_sessions(
        self, db: AsyncSession, status: SessionStatus | None = None, year: int | None = None
    ) -> SessionList:
        sessions = await self.engine.list_sessions(db, status=status, year=year)
        return SessionList(
            items=[SessionSummary.from_domain(s) for s in sessions], total=len(sessions)
        )

    async def get_session(self, session_id: str, db: AsyncSession) -> SessionDetail:
        return await self._detail(db, await self.engine.get_session(db, session_id))

    async def get_current_session(self, db: AsyncSession) -> SessionDetail | None:
        session = await self.engine.get_current_session(db)
        return await self._detail(db, session) if session is not None else None

    async def get_remaining(self, session_id: str, db: AsyncSession) -> RemainingTime:
        session = await self.engine.get_session(db, session_id)
        current = session.current_participant
        return RemainingTime(
            session_id=session.id,
            current_user_id=current.user_id if current else None,
            remaining_seconds=remaining_seconds(session, self.engine.now()),
        )

    async def get_my_participation(
        self, session_id: str, user_id: str, db: AsyncSession
    ) -> MyParticipation:
        session, me = await self.engine.get_my_participation(db, session_id, user_id)
        if me is None:
            return MyParticipation(
                session_id=session.id, session_status=session.status.value, is_participant=False
            )
        is_current = session.current_participant is me
        return MyParticipation(
            session_id=session.id,
            session_status=session.status.value,
            is_participant=True,
            position=me.position,
            turns_ahead=max(0, me.position - session.current_participant_index)
            if not me.is_settled
            else 0,
            is_current_turn=is_current,
            remaining_seconds=remaining_seconds(session, self.engine.now()) if is_current else 0,
            has_bid=me.has_bid,
            skipped=me.skipped,
            auto_assigned=me.auto_assigned,
            assigned_station_id=me.assigned_station_id,
            assigned_shift=me.assigned_shift,
            assigned_position=me.assigned_position,
            bid_history=[BidAttemptOut.from_domain(a) for a in me.bid_history],
        )

    async def _history_entries(
        self, db: AsyncSession, records: list[BidHistoryRecord]
    ) -> list[BidHistoryEntry]:
        profiles = await self._users.get_profiles(db, list({r.user_id for r in records}))
        return [
            BidHistoryEntry.from_domain(
                r, profiles[r.user_id].display_name if r.user_id in profiles else None
            )
            for r in records
        ]

    async def get_session_history(
        self, session_id: str, limit: int, db: AsyncSession
    ) -> SessionHistory:
        session, records = await self.engine.get_bid_history(db, session_id, limit)
        return SessionHistory(
            session_id=session.id,
            session_name=session.name,
            status=session.status.value,
            total_bids=sum(len(p.bid_history) for p in session.participants),
            history=await self._history_entries(db, records),
        )

    async def get_recent_history(self, limit: int, db: AsyncSession) -> RecentHistory:
        records = await self.engine.get_recent_history(db, limit)
        return RecentHistory(history=await self._history_entries(db, records))
