"""Turn clock: opens and evaluates per-participant bidding windows.

Expiry is evaluated lazily by whoever next touches the session; there is
no timer in here. Pausing freezes nothing; resuming opens a fresh,
full-length window (partially elapsed time is not carried over).
"""

from datetime import datetime, timedelta, timezone

from src.sb_common.enums import SessionStatus
from src.sb_session.domain.models import BidSession, Participant, TimeWindow


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def window_duration(session: BidSession) -> timedelta:
    return timedelta(minutes=session.bid_window_minutes)


def open_window(session: BidSession, participant: Participant, now: datetime) -> TimeWindow:
    window = TimeWindow(start=now, end=now + window_duration(session))
    participant.time_window = window
    if session.current_participant is participant:
        session.current_bid_start = window.start
        session.current_bid_end = window.end
    return window


def is_expired(participant: Participant, now: datetime) -> bool:
    window = participant.time_window
    return window is not None and window.end < now


def remaining_seconds(session: BidSession, now: datetime) -> int:
    """Whole seconds left in the current window; 0 when nothing is running."""
    if session.status != SessionStatus.ACTIVE or session.current_bid_end is None:
        return 0
    if session.is_exhausted:
        return 0
    return max(0, int((session.current_bid_end - now).total_seconds()))
