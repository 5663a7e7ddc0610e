"""In-memory fakes for the bid-session engine.

The fakes hand out deep copies (like rows loaded from the database) and
yield to the event loop on every load, so interleavings between concurrent
engine calls happen the way they would against a real connection pool.
FakeDb keeps an undo log so a failed `db.begin()` block really rolls back.
"""

import asyncio
import copy
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.sb_common.enums import SessionStatus
from src.sb_gateway.user.directory import UserProfile
from src.sb_notify.domain.events import SessionEvent
from src.sb_session.domain.models import BidHistoryRecord, BidSession
from src.sb_session.engine.engine import BidSessionEngine
from src.sb_station.domain.models import Station

_MISSING = object()

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeDb:
    def __init__(self) -> None:
        self.in_transaction = False
        self.commits = 0
        self.rollbacks = 0
        self._undo: list[tuple[dict[str, Any], str, Any]] = []

    def record(self, store: dict[str, Any], key: str) -> None:
        if self.in_transaction:
            self._undo.append((store, key, copy.deepcopy(store.get(key, _MISSING))))

    @asynccontextmanager
    async def begin(self) -> AsyncIterator["FakeDb"]:
        if self.in_transaction:
            raise RuntimeError("A transaction is already begun on this Session")
        self.in_transaction = True
        self._undo = []
        try:
            yield self
        except BaseException:
            for store, key, old in reversed(self._undo):
                if old is _MISSING:
                    store.pop(key, None)
                else:
                    store[key] = old
            self.rollbacks += 1
            raise
        else:
            self.commits += 1
        finally:
            self.in_transaction = False
            self._undo = []

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> "FakeDb":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


class FakeSessionRepo:
    def __init__(self, stations: dict[str, Station] | None = None) -> None:
        self.sessions: dict[str, BidSession] = {}
        # Shared with FakeStationRepo, standing in for the join on stations.
        self.stations: dict[str, Station] = stations if stations is not None else {}

    async def create(self, db: FakeDb, session: BidSession) -> None:
        db.record(self.sessions, session.id)
        session.created_at = session.updated_at = T0
        self.sessions[session.id] = copy.deepcopy(session)

    async def get(self, db: FakeDb, session_id: str) -> BidSession | None:
        await asyncio.sleep(0)
        found = self.sessions.get(session_id)
        return copy.deepcopy(found) if found else None

    async def get_for_update(self, db: FakeDb, session_id: str) -> BidSession | None:
        return await self.get(db, session_id)

    async def save(self, db: FakeDb, session: BidSession) -> None:
        await asyncio.sleep(0)
        db.record(self.sessions, session.id)
        self.sessions[session.id] = copy.deepcopy(session)

    async def delete(self, db: FakeDb, session_id: str) -> None:
        db.record(self.sessions, session_id)
        self.sessions.pop(session_id, None)

    async def list_sessions(
        self,
        db: FakeDb,
        status: SessionStatus | None = None,
        year: int | None = None,
    ) -> list[BidSession]:
        return [
            copy.deepcopy(s)
            for s in self.sessions.values()
            if (status is None or s.status == status) and (year is None or s.year == year)
        ]

    async def get_current(self, db: FakeDb) -> BidSession | None:
        rank = {SessionStatus.ACTIVE: 0, SessionStatus.PAUSED: 1, SessionStatus.SCHEDULED: 2}
        candidates = sorted(
            (s for s in self.sessions.values() if s.status in rank),
            key=lambda s: rank[s.status],
        )
        return copy.deepcopy(candidates[0]) if candidates else None

    async def list_ids_by_status(self, db: FakeDb, status: SessionStatus) -> list[str]:
        return sorted(sid for sid, s in self.sessions.items() if s.status == status)

    async def list_bid_history(
        self,
        db: FakeDb,
        limit: int,
        session_id: str | None = None,
        statuses: Collection[SessionStatus] | None = None,
    ) -> list[BidHistoryRecord]:
        records = [
            BidHistoryRecord(
                session_id=s.id,
                session_name=s.name,
                session_status=s.status,
                user_id=p.user_id,
                queue_position=p.position,
                station_id=a.station_id,
                station_name=self.stations[a.station_id].name,
                shift=a.shift,
                position=a.position,
                auto_assigned=a.auto_assigned,
                timestamp=a.timestamp,
            )
            for s in self.sessions.values()
            if (session_id is None or s.id == session_id)
            and (statuses is None or s.status in statuses)
            for p in s.participants
            for a in p.bid_history
        ]
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:limit]


class FakeStationRepo:
    def __init__(self, stations: list[Station] | None = None) -> None:
        self.stations: dict[str, Station] = {s.id: s for s in stations or []}
        self.assignments: list[dict[str, str]] = []

    async def get_station(self, db: FakeDb, station_id: str) -> Station | None:
        await asyncio.sleep(0)
        found = self.stations.get(station_id)
        return copy.deepcopy(found) if found else None

    async def get_station_for_update(self, db: FakeDb, station_id: str) -> Station | None:
        return await self.get_station(db, station_id)

    async def list_active_stations(self, db: FakeDb) -> list[Station]:
        await asyncio.sleep(0)
        return [
            copy.deepcopy(s)
            for s in sorted(self.stations.values(), key=lambda s: s.number)
            if s.is_active
        ]

    async def add_assignment(
        self,
        db: FakeDb,
        station_id: str,
        shift: str,
        user_id: str,
        position: str,
        session_id: str,
    ) -> None:
        db.record(self.stations, station_id)
        self.stations[station_id].current_assignments.setdefault(shift, []).append(user_id)
        self.assignments.append(
            {"station_id": station_id, "shift": shift, "user_id": user_id, "session_id": session_id}
        )


class FakeUserDirectory:
    def __init__(self, profiles: list[UserProfile]) -> None:
        self.profiles = {p.id: p for p in profiles}
        self.current: dict[str, tuple[str, str]] = {}

    async def get_profiles(self, db: FakeDb, user_ids: list[str]) -> dict[str, UserProfile]:
        return {uid: self.profiles[uid] for uid in user_ids if uid in self.profiles}

    async def set_current_assignment(
        self, db: FakeDb, user_id: str, station_id: str, shift: str
    ) -> None:
        db.record(self.current, user_id)
        self.current[user_id] = (station_id, shift)


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[SessionEvent] = []

    async def publish(self, event: SessionEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.type.value for e in self.events]

    def clear(self) -> None:
        self.events.clear()


def make_station(
    station_id: str = "ST-1",
    number: str = "01",
    capacity: int = 1,
    is_active: bool = True,
) -> Station:
    return Station(
        id=station_id,
        name=f"Station {number}",
        number=number,
        is_active=is_active,
        shift_capacity={"A": capacity, "B": capacity, "C": capacity},
    )


USERS = [
    UserProfile(id="u1", display_name="Ada Alvarez", position="Paramedic", bid_priority=1),
    UserProfile(id="u2", display_name="Ben Brooks", position="Driver", bid_priority=2),
    UserProfile(id="u3", display_name="Cal Chen", position=None, bid_priority=3),
    UserProfile(id="u4", display_name="Dee Diaz", position="Officer", bid_priority=4),
    UserProfile(id="retired", display_name="Old Timer", position=None, bid_priority=9, is_active=False),
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db() -> FakeDb:
    return FakeDb()


@pytest.fixture
def session_repo(station_repo: FakeStationRepo) -> FakeSessionRepo:
    return FakeSessionRepo(station_repo.stations)


@pytest.fixture
def station_repo() -> FakeStationRepo:
    return FakeStationRepo(
        [make_station("ST-1", "01"), make_station("ST-2", "02"), make_station("ST-9", "09", is_active=False)]
    )


@pytest.fixture
def users() -> FakeUserDirectory:
    return FakeUserDirectory(USERS)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def engine(
    session_repo: FakeSessionRepo,
    station_repo: FakeStationRepo,
    users: FakeUserDirectory,
    publisher: RecordingPublisher,
    clock: FakeClock,
) -> BidSessionEngine:
    return BidSessionEngine(
        session_repo=session_repo,
        station_repo=station_repo,
        users=users,
        publisher=publisher,
        clock=clock,
        timeout_policy="skip",
    )


@pytest.fixture
def new_db() -> type[FakeDb]:
    """One FakeDb per simulated request (concurrent callers never share one)."""
    return FakeDb
