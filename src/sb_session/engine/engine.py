"""BidSessionEngine: stateful orchestrator for per-session turn handling.

Every mutating operation follows the same shape:

    session lock -> db.begin() -> SELECT ... FOR UPDATE -> state machine
    -> invariant checks -> save -> commit -> publish events

Per-station locks are taken after the session lock (never the other way
round) and are held until the transaction commits, together with the
`stations` row lock, so a capacity check and its commit are atomic with
respect to every other session bidding on the same station.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sb_common.enums import (
    DEFAULT_POSITION,
    POSITIONS,
    RECENT_HISTORY_STATUSES,
    EventType,
    SessionStatus,
    TimeoutPolicy,
)
from src.sb_common.errors import SessionNotFoundError, UnknownUserError
from src.sb_common.id_generator import generate_id
from src.sb_gateway.user.directory import UserDirectory, UserDirectoryProtocol
from src.sb_notify.domain import events
from src.sb_notify.domain.events import SessionEvent
from src.sb_notify.domain.publisher import EventPublisherProtocol
from src.sb_notify.infrastructure.redis_publisher import RedisEventPublisher
from src.sb_rules.rules.session_state import check_schedule
from src.sb_session.domain import queue, state_machine
from src.sb_session.domain.clock import remaining_seconds, utc_now
from src.sb_session.domain.invariants import (
    verify_session_invariants,
    verify_station_capacity,
)
from src.sb_session.domain.models import (
    BidHistoryRecord,
    BidSession,
    Participant,
    TurnOutcome,
)
from src.sb_session.domain.repository import SessionRepositoryProtocol
from src.sb_session.infrastructure.persistence import SessionRepository
from src.sb_station.domain import ledger
from src.sb_station.domain.models import Station
from src.sb_station.domain.repository import StationRepositoryProtocol
from src.sb_station.infrastructure.persistence import StationRepository

logger = logging.getLogger(__name__)

# Fields an admin may change while the session is still editable.
_UPDATABLE_FIELDS = frozenset(
    {"name", "year", "description", "bid_window_minutes", "scheduled_start", "scheduled_end"}
)


@dataclass
class TurnResult:
    """What a turn-consuming operation did.

    `station` is set when the turn ended in an assignment (bid or auto-assign).
    """

    session: BidSession
    outcome: TurnOutcome
    station: Station | None = None

    @property
    def auto_assigned(self) -> bool:
        return self.outcome.participant.auto_assigned


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedLocks:
    """One asyncio.Lock per key, dropped as soon as nobody holds or waits on it.

    Keys come straight from request paths, so entries must not outlive their
    last user.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.setdefault(key, _LockEntry())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]


@dataclass
class _Mutation:
    db: AsyncSession
    held: AsyncExitStack
    session: BidSession
    now: datetime
    events: list[SessionEvent] = field(default_factory=list)


class BidSessionEngine:
    def __init__(
        self,
        session_repo: SessionRepositoryProtocol | None = None,
        station_repo: StationRepositoryProtocol | None = None,
        users: UserDirectoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
        timeout_policy: TimeoutPolicy | str | None = None,
    ) -> None:
        self._sessions = session_repo or SessionRepository()
        self._stations = station_repo or StationRepository()
        self._users = users or UserDirectory()
        self._publisher = publisher or RedisEventPublisher()
        self._clock = clock
        self._timeout_policy = TimeoutPolicy(timeout_policy or settings.TIMEOUT_POLICY)
        self._session_locks = KeyedLocks()
        self._station_locks = KeyedLocks()

    @property
    def timeout_policy(self) -> TimeoutPolicy:
        return self._timeout_policy

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _load(self, db: AsyncSession, session_id: str, for_update: bool = False) -> BidSession:
        if for_update:
            session = await self._sessions.get_for_update(db, session_id)
        else:
            session = await self._sessions.get(db, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @asynccontextmanager
    async def _mutation(self, db: AsyncSession, session_id: str) -> AsyncIterator[_Mutation]:
        """Serialize, load FOR UPDATE, then verify + save + commit + publish on exit."""
        async with AsyncExitStack() as held:
            await held.enter_async_context(self._session_locks.hold(session_id))
            async with db.begin():
                session = await self._load(db, session_id, for_update=True)
                m = _Mutation(db=db, held=held, session=session, now=self._clock())
                yield m
                verify_session_invariants(m.session, m.now)
                await self._sessions.save(db, m.session)
            await self._publish(m.events)

    async def _lock_station(self, m: _Mutation, station_id: str) -> Station | None:
        """Take the per-station lock (released after commit) and load the row FOR UPDATE."""
        await m.held.enter_async_context(self._station_locks.hold(station_id))
        return await self._stations.get_station_for_update(m.db, station_id)

    async def _publish(self, batch: Iterable[SessionEvent]) -> None:
        for event in batch:
            await self._publisher.publish(event)

    async def _names(self, db: AsyncSession, user_ids: list[str]) -> dict[str, str]:
        profiles = await self._users.get_profiles(db, user_ids)
        return {uid: profiles[uid].display_name if uid in profiles else uid for uid in user_ids}

    async def _default_position(self, db: AsyncSession, user_id: str) -> str:
        profile = (await self._users.get_profiles(db, [user_id])).get(user_id)
        if profile is not None and profile.position in POSITIONS:
            return profile.position
        return DEFAULT_POSITION

    async def _after_turn(self, m: _Mutation, outcome: TurnOutcome) -> None:
        """Follow-up event for a consumed turn: next turn-started or session-completed."""
        if outcome.completed:
            m.events.append(events.session_completed(m.session, m.now))
            return
        nxt = outcome.next_participant
        assert nxt is not None
        names = await self._names(m.db, [nxt.user_id])
        m.events.append(events.turn_started(m.session, nxt, names[nxt.user_id], m.now))

    async def _record_assignment(self, m: _Mutation, station: Station, participant: Participant) -> None:
        verify_station_capacity(station)
        await self._stations.add_assignment(
            m.db,
            station.id,
            participant.assigned_shift or "",
            participant.user_id,
            participant.assigned_position or DEFAULT_POSITION,
            m.session.id,
        )
        await self._users.set_current_assignment(
            m.db, participant.user_id, station.id, participant.assigned_shift or ""
        )

    # ------------------------------------------------------------------
    # Session administration
    # ------------------------------------------------------------------

    async def create_session(
        self,
        db: AsyncSession,
        name: str,
        year: int,
        bid_window_minutes: int | None = None,
        description: str | None = None,
        scheduled_start: datetime | None = None,
        scheduled_end: datetime | None = None,
        created_by: str | None = None,
    ) -> BidSession:
        session = BidSession(
            id=generate_id("BS-"),
            name=name,
            year=year,
            bid_window_minutes=bid_window_minutes or settings.DEFAULT_BID_WINDOW_MINUTES,
            description=description,
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
            created_by=created_by,
        )
        async with db.begin():
            await self._sessions.create(db, session)
        logger.info("Bid session created: id=%s name=%s year=%d", session.id, name, year)
        return session

    async def update_session(
        self, db: AsyncSession, session_id: str, changes: dict[str, Any]
    ) -> BidSession:
        async with self._mutation(db, session_id) as m:
            state_machine.ensure_editable(m.session)
            for key, value in changes.items():
                if key in _UPDATABLE_FIELDS:
                    setattr(m.session, key, value)
            check_schedule(m.session)
        logger.info("Bid session updated: id=%s fields=%s", session_id, sorted(changes))
        return m.session

    async def delete_session(self, db: AsyncSession, session_id: str) -> None:
        async with self._session_locks.hold(session_id):
            async with db.begin():
                session = await self._load(db, session_id, for_update=True)
                state_machine.ensure_deletable(session)
                await self._sessions.delete(db, session_id)
        logger.info("Bid session deleted: id=%s", session_id)

    async def add_participants(
        self,
        db: AsyncSession,
        session_id: str,
        user_ids: list[str],
        sort_by_priority: bool = False,
    ) -> tuple[BidSession, int]:
        """Seat users at the end of the queue; optionally re-rank the whole roster."""
        async with self._mutation(db, session_id) as m:
            state_machine.ensure_editable(m.session)
            profiles = await self._users.get_profiles(db, list(dict.fromkeys(user_ids)))
            unknown = [
                uid for uid in dict.fromkeys(user_ids)
                if uid not in profiles or not profiles[uid].is_active
            ]
            if unknown:
                raise UnknownUserError(unknown)
            added = queue.add_participants(
                m.session, [(uid, profiles[uid].bid_priority) for uid in user_ids]
            )
            if sort_by_priority:
                queue.sort_by_priority(m.session)
            m.events.append(events.participants_added(m.session, len(added), m.now))
        logger.info(
            "Participants added: session=%s added=%d total=%d",
            session_id, len(added), m.session.total_participants,
        )
        return m.session, len(added)

    async def remove_participants(
        self, db: AsyncSession, session_id: str, user_ids: list[str]
    ) -> tuple[BidSession, int]:
        async with self._mutation(db, session_id) as m:
            removed = queue.remove_participants(m.session, user_ids)
            m.events.append(events.participants_removed(m.session, removed, m.now))
        logger.info("Participants removed: session=%s removed=%d", session_id, removed)
        return m.session, removed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def schedule(self, db: AsyncSession, session_id: str) -> BidSession:
        async with self._mutation(db, session_id) as m:
            state_machine.schedule(m.session)
            m.events.append(
                events.session_status_changed(EventType.SESSION_SCHEDULED, m.session, m.now)
            )
        logger.info("Bid session scheduled: id=%s", session_id)
        return m.session

    async def start(self, db: AsyncSession, session_id: str) -> BidSession:
        async with self._mutation(db, session_id) as m:
            first = state_machine.start(m.session, m.now)
            names = await self._names(db, [first.user_id])
            m.events.append(
                events.session_status_changed(EventType.SESSION_STARTED, m.session, m.now)
            )
            m.events.append(events.turn_started(m.session, first, names[first.user_id], m.now))
        logger.info(
            "Bid session started: id=%s participants=%d",
            session_id, m.session.total_participants,
        )
        return m.session

    async def pause(self, db: AsyncSession, session_id: str) -> BidSession:
        async with self._mutation(db, session_id) as m:
            state_machine.pause(m.session)
            m.events.append(
                events.session_status_changed(EventType.SESSION_PAUSED, m.session, m.now)
            )
        logger.info("Bid session paused: id=%s", session_id)
        return m.session

    async def resume(self, db: AsyncSession, session_id: str) -> BidSession:
        async with self._mutation(db, session_id) as m:
            current = state_machine.resume(m.session, m.now)
            m.events.append(
                events.session_status_changed(EventType.SESSION_RESUMED, m.session, m.now)
            )
            if current is not None:
                names = await self._names(db, [current.user_id])
                m.events.append(
                    events.turn_started(m.session, current, names[current.user_id], m.now)
                )
        logger.info("Bid session resumed: id=%s", session_id)
        return m.session

    async def complete(self, db: AsyncSession, session_id: str) -> BidSession:
        async with self._mutation(db, session_id) as m:
            forfeited = state_machine.complete(m.session, m.now)
            m.events.append(events.session_completed(m.session, m.now))
        logger.info(
            "Bid session force-completed: id=%s forfeited=%d", session_id, len(forfeited)
        )
        return m.session

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def submit_bid(
        self,
        db: AsyncSession,
        session_id: str,
        user_id: str,
        station_id: str,
        shift: str,
        position: str | None = None,
    ) -> TurnResult:
        async with self._mutation(db, session_id) as m:
            # Turn ownership is settled before any station row is locked.
            state_machine.validate_turn(m.session, user_id, m.now)
            if position is None:
                position = await self._default_position(db, user_id)

            station = await self._lock_station(m, station_id)
            outcome = state_machine.submit_bid(
                m.session, station, station_id, user_id, shift, position, m.now
            )
            assert station is not None
            await self._record_assignment(m, station, outcome.participant)

            names = await self._names(db, [user_id])
            m.events.append(
                events.bid_submitted(m.session, outcome.participant, names[user_id], station.name, m.now)
            )
            await self._after_turn(m, outcome)
        return TurnResult(session=m.session, outcome=outcome, station=station)

    async def skip_turn(self, db: AsyncSession, session_id: str, user_id: str) -> TurnResult:
        """The current participant passes voluntarily."""
        async with self._mutation(db, session_id) as m:
            outcome = state_machine.skip_turn(m.session, user_id, m.now)
            names = await self._names(db, [user_id])
            m.events.append(
                events.turn_skipped(m.session, outcome.participant, names[user_id], "passed", m.now)
            )
            await self._after_turn(m, outcome)
        return TurnResult(session=m.session, outcome=outcome)

    async def skip_or_timeout(
        self, db: AsyncSession, session_id: str, force: bool = False
    ) -> TurnResult:
        """Resolve the current turn without a bid.

        With `force` (admin skip) the turn is skipped immediately. Otherwise the
        window must have lapsed, and the configured timeout policy decides
        between skipping and auto-assigning the first free slot.
        """
        async with self._mutation(db, session_id) as m:
            result: TurnResult | None = None
            reason = "admin"
            if not force:
                current = state_machine.check_timed_out(m.session, m.now)
                reason = "timeout"
                if self._timeout_policy == TimeoutPolicy.AUTO_ASSIGN:
                    result = await self._auto_assign(m, current)
                    reason = "no-capacity"

            if result is None:
                outcome = state_machine.skip_or_timeout(m.session, m.now, force=force)
                user_id = outcome.participant.user_id
                names = await self._names(db, [user_id])
                m.events.append(
                    events.turn_skipped(m.session, outcome.participant, names[user_id], reason, m.now)
                )
                result = TurnResult(session=m.session, outcome=outcome)
            await self._after_turn(m, result.outcome)
        logger.info(
            "Turn resolved without bid: session=%s user=%s auto_assigned=%s",
            session_id,
            result.outcome.participant.user_id,
            result.auto_assigned,
        )
        return result

    async def _auto_assign(self, m: _Mutation, current: Participant) -> TurnResult | None:
        """Place `current` in the first free (station, shift); None if everything is full.

        Candidates are read without locks, then each pick is re-checked under the
        station lock; a station that filled up in between is passed over.
        """
        position = await self._default_position(m.db, current.user_id)
        candidates = sorted(await self._stations.list_active_stations(m.db), key=lambda s: s.number)
        for candidate in candidates:
            if ledger.first_available_slot([candidate]) is None:
                continue
            station = await self._lock_station(m, candidate.id)
            if station is None:
                continue
            slot = ledger.first_available_slot([station])
            if slot is None:
                logger.debug("Auto-assign candidate filled meanwhile: station=%s", station.id)
                continue
            _, shift = slot
            outcome = state_machine.auto_assign_current(m.session, station, shift, position, m.now)
            await self._record_assignment(m, station, outcome.participant)
            names = await self._names(m.db, [current.user_id])
            m.events.append(
                events.bid_submitted(
                    m.session,
                    outcome.participant,
                    names[current.user_id],
                    station.name,
                    m.now,
                    auto_assigned=True,
                )
            )
            return TurnResult(session=m.session, outcome=outcome, station=station)
        logger.warning(
            "Auto-assign found no capacity: session=%s user=%s", m.session.id, current.user_id
        )
        return None

    async def publish_timeout_warning(
        self, session: BidSession, participant: Participant, remaining: int
    ) -> None:
        await self._publish(
            [events.turn_timeout_warning(session, participant, remaining, self._clock())]
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_session(self, db: AsyncSession, session_id: str) -> BidSession:
        return await self._load(db, session_id)

    async def list_sessions(
        self,
        db: AsyncSession,
        status: SessionStatus | None = None,
        year: int | None = None,
    ) -> list[BidSession]:
        return await self._sessions.list_sessions(db, status=status, year=year)

    async def get_current_session(self, db: AsyncSession) -> BidSession | None:
        return await self._sessions.get_current(db)

    async def list_active_session_ids(self, db: AsyncSession) -> list[str]:
        return await self._sessions.list_ids_by_status(db, SessionStatus.ACTIVE)

    async def get_remaining_seconds(self, db: AsyncSession, session_id: str) -> int:
        session = await self._load(db, session_id)
        return remaining_seconds(session, self._clock())

    async def get_my_participation(
        self, db: AsyncSession, session_id: str, user_id: str
    ) -> tuple[BidSession, Participant | None]:
        session = await self._load(db, session_id)
        return session, session.find_participant(user_id)

    async def get_bid_history(
        self, db: AsyncSession, session_id: str, limit: int
    ) -> tuple[BidSession, list[BidHistoryRecord]]:
        """Every participant's bids in one session, newest first."""
        session = await self._load(db, session_id)
        records = await self._sessions.list_bid_history(db, limit, session_id=session_id)
        return session, records

    async def get_recent_history(self, db: AsyncSession, limit: int) -> list[BidHistoryRecord]:
        """Newest bids across active and completed sessions."""
        return await self._sessions.list_bid_history(
            db, limit, statuses=RECENT_HISTORY_STATUSES
        )

    def now(self) -> datetime:
        return self._clock()
