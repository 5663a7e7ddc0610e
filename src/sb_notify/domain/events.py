"""Bid-session events: what the engine announces after each committed change.

Payload keys are camelCase; they are consumed verbatim by the WebSocket
relay. Builders take domain objects plus the display names the engine has
already looked up, so nothing here touches the database.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.sb_common.enums import EventType
from src.sb_session.domain.clock import utc_now
from src.sb_session.domain.models import BidSession, Participant


@dataclass
class SessionEvent:
    type: EventType
    session_id: str
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=utc_now)

    def to_message(self) -> str:
        return json.dumps(
            {
                "type": self.type.value,
                "sessionId": self.session_id,
                "timestamp": self.timestamp.isoformat(),
                "data": self.payload,
            }
        )


def _event(event_type: EventType, session: BidSession, now: datetime, **payload: Any) -> SessionEvent:
    return SessionEvent(
        type=event_type,
        session_id=session.id,
        payload={"sessionId": session.id, **payload},
        timestamp=now,
    )


def session_status_changed(event_type: EventType, session: BidSession, now: datetime) -> SessionEvent:
    """session-scheduled / -started / -paused / -resumed."""
    return _event(event_type, session, now, sessionName=session.name, status=session.status.value)


def session_completed(session: BidSession, now: datetime) -> SessionEvent:
    return _event(
        EventType.SESSION_COMPLETED,
        session,
        now,
        sessionName=session.name,
        timestamp=now.isoformat(),
    )


def participants_added(session: BidSession, added: int, now: datetime) -> SessionEvent:
    return _event(
        EventType.PARTICIPANTS_ADDED,
        session,
        now,
        addedCount=added,
        totalParticipants=session.total_participants,
    )


def participants_removed(session: BidSession, removed: int, now: datetime) -> SessionEvent:
    return _event(
        EventType.PARTICIPANTS_REMOVED,
        session,
        now,
        removedCount=removed,
        totalParticipants=session.total_participants,
    )


def turn_started(
    session: BidSession, participant: Participant, user_name: str, now: datetime
) -> SessionEvent:
    return _event(
        EventType.TURN_STARTED,
        session,
        now,
        userId=participant.user_id,
        userName=user_name,
        durationSeconds=session.bid_window_minutes * 60,
    )


def turn_skipped(
    session: BidSession, participant: Participant, user_name: str, reason: str, now: datetime
) -> SessionEvent:
    return _event(
        EventType.TURN_SKIPPED,
        session,
        now,
        userId=participant.user_id,
        userName=user_name,
        reason=reason,
    )


def turn_timeout_warning(
    session: BidSession, participant: Participant, remaining: int, now: datetime
) -> SessionEvent:
    return _event(
        EventType.TURN_TIMEOUT_WARNING,
        session,
        now,
        userId=participant.user_id,
        remainingSeconds=remaining,
    )


def bid_submitted(
    session: BidSession,
    participant: Participant,
    user_name: str,
    station_name: str,
    now: datetime,
    auto_assigned: bool = False,
) -> SessionEvent:
    """bid-submitted, or auto-assignment when the engine bid on the user's behalf."""
    return _event(
        EventType.AUTO_ASSIGNMENT if auto_assigned else EventType.BID_SUBMITTED,
        session,
        now,
        userId=participant.user_id,
        userName=user_name,
        stationName=station_name,
        shift=participant.assigned_shift,
        position=participant.assigned_position,
        timestamp=now.isoformat(),
    )
