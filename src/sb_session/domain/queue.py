"""Participant queue: roster ordering and the turn cursor.

Positions are dense (0..N-1) at all times. Roster edits are only allowed
before the session starts; once active, `advance()` is the only thing that
moves `current_participant_index`, and only forward.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from src.sb_common.enums import EDITABLE_STATUSES
from src.sb_common.errors import DuplicateParticipantError
from src.sb_rules.rules.session_state import check_status_in
from src.sb_session.domain.clock import open_window
from src.sb_session.domain.models import BidSession, Participant

logger = logging.getLogger(__name__)


def _redensify(session: BidSession) -> None:
    for index, participant in enumerate(session.participants):
        participant.position = index


def add_participants(
    session: BidSession, candidates: Iterable[tuple[str, int]]
) -> list[Participant]:
    """Append (user_id, bid_priority) pairs to the end of the roster.

    All-or-nothing: if any candidate is already seated, or appears twice in
    the request, DuplicateParticipantError is raised and nothing is added.
    """
    check_status_in(session, EDITABLE_STATUSES, "add participants to")
    candidates = list(candidates)

    existing = {p.user_id for p in session.participants}
    seen: set[str] = set()
    duplicates: list[str] = []
    for user_id, _ in candidates:
        if user_id in existing or user_id in seen:
            duplicates.append(user_id)
        seen.add(user_id)
    if duplicates:
        raise DuplicateParticipantError(duplicates)

    base = len(session.participants)
    added = [
        Participant(user_id=user_id, position=base + offset, bid_priority=priority)
        for offset, (user_id, priority) in enumerate(candidates)
    ]
    session.participants.extend(added)
    return added


def sort_by_priority(session: BidSession) -> None:
    """Stable-sort the roster by bid_priority ascending (rank 1 first)."""
    check_status_in(session, EDITABLE_STATUSES, "reorder participants of")
    session.participants.sort(key=lambda p: (p.bid_priority, p.position))
    _redensify(session)


def remove_participants(session: BidSession, user_ids: Iterable[str]) -> int:
    """Drop matching participants and close the gaps. Unknown ids are ignored."""
    check_status_in(session, EDITABLE_STATUSES, "remove participants from")
    doomed = set(user_ids)
    kept = sorted(
        (p for p in session.participants if p.user_id not in doomed),
        key=lambda p: p.position,
    )
    removed = len(session.participants) - len(kept)
    session.participants = kept
    _redensify(session)
    return removed


def advance(session: BidSession, now: datetime) -> Participant | None:
    """Move the cursor one step; open the next window or report exhaustion (None)."""
    session.current_participant_index += 1
    nxt = session.current_participant
    if nxt is None:
        session.current_bid_start = None
        session.current_bid_end = None
        logger.debug("Queue exhausted: session=%s", session.id)
        return None
    open_window(session, nxt, now)
    return nxt
