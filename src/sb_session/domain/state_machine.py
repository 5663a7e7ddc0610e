"""Bid session state machine.

    draft ──> scheduled ──> active <──> paused ──> completed
      └──────────────────────^   └──────────────────^

Every function here is synchronous and mutates the dataclasses it is given.
All checks run before the first mutation, so a raised AppError leaves the
session (and station) exactly as it was.
"""

import logging
from datetime import datetime

from src.sb_common.enums import (
    EDITABLE_STATUSES,
    UNDELETABLE_STATUSES,
    SessionStatus,
)
from src.sb_common.errors import (
    AlreadyBidError,
    InvalidSessionStateError,
    SessionExhaustedError,
    TurnNotExpiredError,
)
from src.sb_rules.rules.bid_target import check_position, check_shift, check_station
from src.sb_rules.rules.session_state import (
    check_has_participants,
    check_not_exhausted,
    check_session_active,
    check_status_in,
)
from src.sb_rules.rules.turn import (
    check_not_already_bid,
    check_turn_owner,
    check_window_open,
)
from src.sb_session.domain import queue
from src.sb_session.domain.clock import is_expired, open_window, remaining_seconds
from src.sb_session.domain.models import BidAttempt, BidSession, Participant, TurnOutcome
from src.sb_station.domain import ledger
from src.sb_station.domain.models import Station

logger = logging.getLogger(__name__)

_STARTABLE = frozenset({SessionStatus.DRAFT, SessionStatus.SCHEDULED})
_COMPLETABLE = frozenset({SessionStatus.ACTIVE, SessionStatus.PAUSED})


def ensure_editable(session: BidSession) -> None:
    check_status_in(session, EDITABLE_STATUSES, "edit")


def ensure_deletable(session: BidSession) -> None:
    if session.status in UNDELETABLE_STATUSES:
        raise InvalidSessionStateError(session.id, session.status.value, "delete")


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------

def schedule(session: BidSession) -> None:
    check_status_in(session, {SessionStatus.DRAFT}, "schedule")
    session.status = SessionStatus.SCHEDULED


def start(session: BidSession, now: datetime) -> Participant:
    """Activate the session and open the first participant's window."""
    check_status_in(session, _STARTABLE, "start")
    check_has_participants(session)

    session.status = SessionStatus.ACTIVE
    session.actual_start = now
    session.current_participant_index = 0
    first = session.participants[0]
    open_window(session, first, now)
    return first


def pause(session: BidSession) -> None:
    check_status_in(session, {SessionStatus.ACTIVE}, "pause")
    session.status = SessionStatus.PAUSED


def resume(session: BidSession, now: datetime) -> Participant | None:
    """Reactivate; the current participant gets a fresh full-length window."""
    check_status_in(session, {SessionStatus.PAUSED}, "resume")
    session.status = SessionStatus.ACTIVE
    current = session.current_participant
    if current is not None:
        open_window(session, current, now)
    return current


def complete(session: BidSession, now: datetime) -> list[Participant]:
    """Close the session early. Returns the participants marked skipped."""
    check_status_in(session, _COMPLETABLE, "complete")
    forfeited = [p for p in session.participants if not p.is_settled]
    for participant in forfeited:
        participant.skipped = True
    _finish(session, now)
    return forfeited


def _finish(session: BidSession, now: datetime) -> None:
    session.status = SessionStatus.COMPLETED
    session.current_participant_index = len(session.participants)
    session.current_bid_start = None
    session.current_bid_end = None
    session.actual_end = now
    logger.info("Bid session completed: id=%s", session.id)


def _advance_or_finish(session: BidSession, acted: Participant, now: datetime) -> TurnOutcome:
    nxt = queue.advance(session, now)
    if nxt is None:
        _finish(session, now)
        return TurnOutcome(participant=acted, next_participant=None, completed=True)
    return TurnOutcome(participant=acted, next_participant=nxt, completed=False)


# ---------------------------------------------------------------------------
# Turn actions
# ---------------------------------------------------------------------------

def validate_turn(session: BidSession, user_id: str, now: datetime) -> Participant:
    """Session active, turns left, caller owns the turn, no bid yet, window open."""
    check_session_active(session)
    check_not_exhausted(session)
    current = session.current_participant
    assert current is not None
    check_turn_owner(current, user_id)
    check_not_already_bid(current)
    check_window_open(current, now)
    return current


def _record_assignment(
    participant: Participant,
    station: Station,
    shift: str,
    position: str,
    now: datetime,
    auto_assigned: bool,
) -> None:
    participant.bid_history.append(
        BidAttempt(
            station_id=station.id,
            shift=shift,
            position=position,
            timestamp=now,
            auto_assigned=auto_assigned,
        )
    )
    participant.assigned_station_id = station.id
    participant.assigned_shift = shift
    participant.assigned_position = position
    participant.has_bid = True
    participant.auto_assigned = auto_assigned
    ledger.commit(station, shift, participant.user_id)


def submit_bid(
    session: BidSession,
    station: Station | None,
    station_id: str,
    user_id: str,
    shift: str,
    position: str,
    now: datetime,
) -> TurnOutcome:
    """Accept the current participant's bid and move on to the next turn.

    `station` is the already-locked station row, or None if it does not exist.
    """
    current = validate_turn(session, user_id, now)
    target = check_station(station, station_id)
    check_shift(shift)
    check_position(position)
    ledger.check_capacity(target, shift)

    _record_assignment(current, target, shift, position, now, auto_assigned=False)
    logger.info(
        "Bid accepted: session=%s user=%s station=%s shift=%s position=%s",
        session.id, user_id, target.id, shift, position,
    )
    return _advance_or_finish(session, current, now)


def _check_turn_pending(session: BidSession) -> Participant:
    check_session_active(session)
    current = session.current_participant
    if current is None:
        raise SessionExhaustedError(session.id)
    if current.has_bid:
        raise AlreadyBidError()
    return current


def skip_or_timeout(session: BidSession, now: datetime, force: bool = False) -> TurnOutcome:
    """Mark the current participant skipped and advance.

    Without `force` the current window must already have lapsed.
    """
    current = _check_turn_pending(session)
    if not force and not is_expired(current, now):
        raise TurnNotExpiredError(remaining_seconds(session, now))

    current.skipped = True
    logger.info(
        "Turn skipped: session=%s user=%s forced=%s", session.id, current.user_id, force
    )
    return _advance_or_finish(session, current, now)


def skip_turn(session: BidSession, user_id: str, now: datetime) -> TurnOutcome:
    """The current participant voluntarily passes on their turn."""
    current = validate_turn(session, user_id, now)
    current.skipped = True
    logger.info("Turn passed: session=%s user=%s", session.id, user_id)
    return _advance_or_finish(session, current, now)


def check_timed_out(session: BidSession, now: datetime) -> Participant:
    """Preconditions shared by both timeout policies."""
    current = _check_turn_pending(session)
    if not is_expired(current, now):
        raise TurnNotExpiredError(remaining_seconds(session, now))
    return current


def auto_assign_current(
    session: BidSession,
    station: Station,
    shift: str,
    position: str,
    now: datetime,
) -> TurnOutcome:
    """Assign the current participant to (station, shift) on their behalf."""
    current = _check_turn_pending(session)
    ledger.check_capacity(station, shift)
    check_position(position)

    _record_assignment(current, station, shift, position, now, auto_assigned=True)
    logger.info(
        "Auto-assigned: session=%s user=%s station=%s shift=%s",
        session.id, current.user_id, station.id, shift,
    )
    return _advance_or_finish(session, current, now)
