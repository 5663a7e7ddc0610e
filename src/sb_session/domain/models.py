"""Bid session domain models — pure dataclasses, no SQLAlchemy dependency.

Counters (completed bids, skipped turns, auto-assignments, total
participants) are derived from the participant list rather than stored, so
they cannot drift out of sync with the roster.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.sb_common.enums import SessionStatus


@dataclass
class TimeWindow:
    start: datetime
    end: datetime


@dataclass
class BidAttempt:
    station_id: str
    shift: str
    position: str
    timestamp: datetime
    auto_assigned: bool = False
    id: int | None = None  # None until persisted


@dataclass
class Participant:
    user_id: str
    position: int  # dense rank 0..N-1 within the session
    bid_priority: int
    has_bid: bool = False
    skipped: bool = False
    auto_assigned: bool = False
    assigned_station_id: str | None = None
    assigned_shift: str | None = None
    assigned_position: str | None = None
    bid_history: list[BidAttempt] = field(default_factory=list)
    time_window: TimeWindow | None = None

    @property
    def is_settled(self) -> bool:
        """True once the turn is used up, by bid, auto-assignment or skip."""
        return self.has_bid or self.skipped


@dataclass
class BidSession:
    id: str
    name: str
    year: int
    bid_window_minutes: int
    status: SessionStatus = SessionStatus.DRAFT
    description: str | None = None
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    participants: list[Participant] = field(default_factory=list)
    current_participant_index: int = 0
    current_bid_start: datetime | None = None
    current_bid_end: datetime | None = None
    actual_start: datetime | None = None
    actual_end: datetime | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_participants(self) -> int:
        return len(self.participants)

    @property
    def completed_bids(self) -> int:
        return sum(1 for p in self.participants if p.has_bid)

    @property
    def skipped_bids(self) -> int:
        return sum(1 for p in self.participants if p.skipped)

    @property
    def auto_assignments(self) -> int:
        return sum(1 for p in self.participants if p.auto_assigned)

    @property
    def progress_percentage(self) -> int:
        if not self.participants:
            return 0
        settled = sum(1 for p in self.participants if p.is_settled)
        return round(settled * 100 / len(self.participants))

    @property
    def is_exhausted(self) -> bool:
        return self.current_participant_index >= len(self.participants)

    @property
    def current_participant(self) -> Participant | None:
        if self.is_exhausted:
            return None
        return self.participants[self.current_participant_index]

    def find_participant(self, user_id: str) -> Participant | None:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None


@dataclass
class TurnOutcome:
    """Result of any action that consumes the current turn."""

    participant: Participant
    next_participant: Participant | None
    completed: bool


@dataclass
class BidHistoryRecord:
    """One bid attempt joined with its session, participant and station."""

    session_id: str
    session_name: str
    session_status: SessionStatus
    user_id: str
    queue_position: int
    station_id: str
    station_name: str
    shift: str
    position: str
    auto_assigned: bool
    timestamp: datetime
