"""Bid session invariant verification after each mutation."""

import logging
from datetime import datetime

from src.sb_common.enums import SHIFTS, SessionStatus
from src.sb_session.domain.models import BidSession
from src.sb_station.domain.models import Station

logger = logging.getLogger(__name__)


def verify_session_invariants(session: BidSession, now: datetime | None = None) -> None:
    """Verify roster and cursor consistency. Raises AssertionError if violated.

    - positions are dense 0..N-1 in list order
    - 0 <= cursor <= N; an active session has a current participant whose
      window is mirrored on the session
    - everyone before the cursor is settled and nobody after it carries a
      window, so the current participant holds the only open turn
    - has_bid and skipped are exclusive; has_bid implies a full assignment
      backed by at least one history entry
    - a completed session has settled every participant
    """
    n = len(session.participants)
    cursor = session.current_participant_index

    positions = [p.position for p in session.participants]
    assert positions == list(range(n)), (
        f"Positions not dense: session={session.id} positions={positions}"
    )
    assert 0 <= cursor <= n, f"Cursor out of range: session={session.id} cursor={cursor} n={n}"

    if session.status == SessionStatus.ACTIVE:
        assert cursor < n, f"Active session has no current turn: session={session.id}"
        window = session.participants[cursor].time_window
        assert window is not None, f"Current participant has no window: session={session.id}"
        assert (session.current_bid_start, session.current_bid_end) == (
            window.start,
            window.end,
        ), f"Session window not mirrored from participant: session={session.id}"

    if session.status in (SessionStatus.DRAFT, SessionStatus.SCHEDULED):
        assert cursor == 0, f"Cursor moved before start: session={session.id} cursor={cursor}"

    unsettled_behind = [p.user_id for p in session.participants[:cursor] if not p.is_settled]
    assert not unsettled_behind, (
        f"Cursor passed unsettled participants: session={session.id} users={unsettled_behind}"
    )

    waiting_with_window = [
        p.user_id for p in session.participants[cursor + 1:] if p.time_window is not None
    ]
    assert not waiting_with_window, (
        f"Waiting participants carry windows: session={session.id} users={waiting_with_window}"
    )

    for p in session.participants:
        assert not (p.has_bid and p.skipped), (
            f"Participant both bid and skipped: session={session.id} user={p.user_id}"
        )
        if p.has_bid:
            assert p.assigned_station_id and p.assigned_shift and p.assigned_position, (
                f"Bid without assignment: session={session.id} user={p.user_id}"
            )
            assert p.bid_history, f"Bid without history: session={session.id} user={p.user_id}"
        if p.auto_assigned:
            assert p.has_bid, (
                f"Auto-assigned participant without bid: session={session.id} user={p.user_id}"
            )

    if session.status == SessionStatus.COMPLETED:
        unsettled = [p.user_id for p in session.participants if not p.is_settled]
        assert not unsettled, (
            f"Completed session has unsettled participants: session={session.id} users={unsettled}"
        )
        assert cursor == n, f"Completed session cursor not at end: session={session.id}"

    logger.debug(
        "Session invariants OK: session=%s status=%s cursor=%d/%d",
        session.id,
        session.status.value,
        cursor,
        n,
    )


def verify_station_capacity(station: Station) -> None:
    """Raises AssertionError if any shift is over capacity."""
    for shift in SHIFTS:
        occupancy = station.occupancy(shift)
        capacity = station.shift_capacity.get(shift, 0)
        assert occupancy <= capacity, (
            f"Station over capacity: station={station.id} shift={shift} "
            f"occupancy={occupancy} capacity={capacity}"
        )
    logger.debug("Station capacity OK: station=%s", station.id)
