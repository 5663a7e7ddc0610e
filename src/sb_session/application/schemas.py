"""Pydantic schemas for the bid-session API."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from src.sb_session.domain.models import BidAttempt, BidHistoryRecord, BidSession, Participant

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    year: int = Field(..., ge=2000, le=2100)
    description: str | None = Field(None, max_length=2000)
    bid_window_minutes: int | None = Field(None, ge=1, le=60)
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None

    @model_validator(mode="after")
    def end_after_start(self) -> "CreateSessionRequest":
        if self.scheduled_start and self.scheduled_end and self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self


class UpdateSessionRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    year: int | None = Field(None, ge=2000, le=2100)
    description: str | None = Field(None, max_length=2000)
    bid_window_minutes: int | None = Field(None, ge=1, le=60)
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None

    @model_validator(mode="after")
    def end_after_start(self) -> "UpdateSessionRequest":
        # Only catches a bad pair sent together; the engine re-checks against stored values.
        if self.scheduled_start and self.scheduled_end and self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self

    def changes(self) -> dict[str, object]:
        """Only the fields the caller actually sent; explicit nulls on required columns are dropped."""
        sent = self.model_dump(exclude_unset=True)
        for required in ("name", "year", "bid_window_minutes"):
            if sent.get(required, ...) is None:
                sent.pop(required)
        return sent


class ParticipantsRequest(BaseModel):
    user_ids: list[str] = Field(..., min_length=1)
    sort_by_priority: bool = False


class RemoveParticipantsRequest(BaseModel):
    user_ids: list[str] = Field(..., min_length=1)


class SubmitBidRequest(BaseModel):
    station_id: str = Field(..., min_length=1)
    shift: str
    position: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class BidAttemptOut(BaseModel):
    station_id: str
    shift: str
    position: str
    auto_assigned: bool
    timestamp: datetime

    @classmethod
    def from_domain(cls, attempt: BidAttempt) -> "BidAttemptOut":
        return cls(
            station_id=attempt.station_id,
            shift=attempt.shift,
            position=attempt.position,
            auto_assigned=attempt.auto_assigned,
            timestamp=attempt.timestamp,
        )


class ParticipantOut(BaseModel):
    user_id: str
    user_name: str | None = None
    position: int
    bid_priority: int
    has_bid: bool
    skipped: bool
    auto_assigned: bool
    assigned_station_id: str | None = None
    assigned_shift: str | None = None
    assigned_position: str | None = None
    window_start: datetime | None = None
    window_end: datetime | None = None

    @classmethod
    def from_domain(cls, p: Participant, user_name: str | None = None) -> "ParticipantOut":
        window = p.time_window
        return cls(
            user_id=p.user_id,
            user_name=user_name,
            position=p.position,
            bid_priority=p.bid_priority,
            has_bid=p.has_bid,
            skipped=p.skipped,
            auto_assigned=p.auto_assigned,
            assigned_station_id=p.assigned_station_id,
            assigned_shift=p.assigned_shift,
            assigned_position=p.assigned_position,
            window_start=window.start if window else None,
            window_end=window.end if window else None,
        )


class SessionSummary(BaseModel):
    id: str
    name: str
    year: int
    description: str | None = None
    status: str
    bid_window_minutes: int
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    actual_start: datetime | None = None
    actual_end: datetime | None = None
    current_participant_index: int
    current_participant_id: str | None = None
    current_bid_start: datetime | None = None
    current_bid_end: datetime | None = None
    total_participants: int
    completed_bids: int
    skipped_bids: int
    auto_assignments: int
    progress_percentage: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def _fields_from(cls, s: BidSession) -> dict[str, object]:
        current = s.current_participant
        return {
            "id": s.id,
            "name": s.name,
            "year": s.year,
            "description": s.description,
            "status": s.status.value,
            "bid_window_minutes": s.bid_window_minutes,
            "scheduled_start": s.scheduled_start,
            "scheduled_end": s.scheduled_end,
            "actual_start": s.actual_start,
            "actual_end": s.actual_end,
            "current_participant_index": s.current_participant_index,
            "current_participant_id": current.user_id if current else None,
            "current_bid_start": s.current_bid_start,
            "current_bid_end": s.current_bid_end,
            "total_participants": s.total_participants,
            "completed_bids": s.completed_bids,
            "skipped_bids": s.skipped_bids,
            "auto_assignments": s.auto_assignments,
            "progress_percentage": s.progress_percentage,
            "created_at": s.created_at,
            "updated_at": s.updated_at,
        }

    @classmethod
    def from_domain(cls, s: BidSession) -> "SessionSummary":
        return cls(**cls._fields_from(s))


class SessionDetail(SessionSummary):
    participants: list[ParticipantOut]

    @classmethod
    def from_domain_with_names(cls, s: BidSession, names: dict[str, str]) -> "SessionDetail":
        return cls(
            **cls._fields_from(s),
            participants=[
                ParticipantOut.from_domain(p, names.get(p.user_id)) for p in s.participants
            ],
        )


class SessionList(BaseModel):
    items: list[SessionSummary]
    total: int


class ParticipantsChanged(BaseModel):
    session_id: str
    changed: int
    total_participants: int


class SubmitBidResult(BaseModel):
    session_id: str
    user_id: str
    station_id: str
    station_name: str
    shift: str
    position: str
    timestamp: datetime
    next_user_id: str | None = None
    completed: bool


class TurnResult(BaseModel):
    session_id: str
    user_id: str
    skipped: bool
    auto_assigned: bool
    assigned_station_id: str | None = None
    assigned_shift: str | None = None
    assigned_position: str | None = None
    next_user_id: str | None = None
    completed: bool


class RemainingTime(BaseModel):
    session_id: str
    current_user_id: str | None = None
    remaining_seconds: int


class MyParticipation(BaseModel):
    session_id: str
    session_status: str
    is_participant: bool
    position: int | None = None
    turns_ahead: int | None = None
    is_current_turn: bool = False
    remaining_seconds: int = 0
    has_bid: bool = False
    skipped: bool = False
    auto_assigned: bool = False
    assigned_station_id: str | None = None
    assigned_shift: str | None = None
    assigned_position: str | None = None
    bid_history: list[BidAttemptOut] = Field(default_factory=list)


class BidHistoryEntry(BaseModel):
    session_id: str
    session_name: str
    session_status: str
    user_id: str
    user_name: str | None = None
    queue_position: int
    station_id: str
    station_name: str
    shift: str
    position: str
    auto_assigned: bool
    timestamp: datetime

    @classmethod
    def from_domain(cls, r: BidHistoryRecord, user_name: str | None = None) -> "BidHistoryEntry":
        return cls(
            session_id=r.session_id,
            session_name=r.session_name,
            session_status=r.session_status.value,
            user_id=r.user_id,
            user_name=user_name,
            queue_position=r.queue_position,
            station_id=r.station_id,
            station_name=r.station_name,
            shift=r.shift,
            position=r.position,
            auto_assigned=r.auto_assigned,
            timestamp=r.timestamp,
        )


class SessionHistory(BaseModel):
    session_id: str
    session_name: str
    status: str
    total_bids: int
    history: list[BidHistoryEntry]


class RecentHistory(BaseModel):
    history: list[BidHistoryEntry]
