from collections.abc import Collection

from src.sb_common.enums import SessionStatus
from src.sb_common.errors import (
    InvalidScheduleError,
    InvalidSessionStateError,
    NoParticipantsError,
    SessionExhaustedError,
    SessionNotActiveError,
)
from src.sb_session.domain.models import BidSession


def check_status_in(
    session: BidSession, allowed: Collection[SessionStatus], action: str
) -> None:
    """Raise InvalidSessionStateError(2002) unless session.status is in `allowed`."""
    if session.status not in allowed:
        raise InvalidSessionStateError(session.id, session.status.value, action)


def check_session_active(session: BidSession) -> None:
    if session.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError(session.id)


def check_not_exhausted(session: BidSession) -> None:
    if session.is_exhausted:
        raise SessionExhaustedError(session.id)


def check_has_participants(session: BidSession) -> None:
    if not session.participants:
        raise NoParticipantsError(session.id)


def check_schedule(session: BidSession) -> None:
    if (
        session.scheduled_start is not None
        and session.scheduled_end is not None
        and session.scheduled_end <= session.scheduled_start
    ):
        raise InvalidScheduleError()
