"""Global enums — values must match the DB CHECK constraints exactly."""

from enum import Enum


class SessionStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


# Roster edits (add/remove participants, settings) are only legal before start.
EDITABLE_STATUSES = frozenset({SessionStatus.DRAFT, SessionStatus.SCHEDULED})
# Deleting a running or finished session would orphan station assignments.
UNDELETABLE_STATUSES = frozenset({SessionStatus.ACTIVE, SessionStatus.COMPLETED})
# Sessions whose bids show up in the department-wide recent history.
RECENT_HISTORY_STATUSES = frozenset({SessionStatus.ACTIVE, SessionStatus.COMPLETED})


class Shift(str, Enum):
    A = "A"
    B = "B"
    C = "C"


SHIFTS: tuple[str, ...] = tuple(s.value for s in Shift)


class Position(str, Enum):
    FIREFIGHTER = "Firefighter"
    PARAMEDIC = "Paramedic"
    EMT = "EMT"
    DRIVER = "Driver"
    OPERATOR = "Operator"
    OFFICER = "Officer"


POSITIONS: tuple[str, ...] = tuple(p.value for p in Position)
DEFAULT_POSITION = Position.FIREFIGHTER.value


class TimeoutPolicy(str, Enum):
    """What happens to a participant whose turn window lapsed without a bid."""
    SKIP = "skip"
    AUTO_ASSIGN = "auto_assign"


class EventType(str, Enum):
    SESSION_SCHEDULED = "session-scheduled"
    SESSION_STARTED = "session-started"
    SESSION_PAUSED = "session-paused"
    SESSION_RESUMED = "session-resumed"
    SESSION_COMPLETED = "session-completed"
    PARTICIPANTS_ADDED = "participants-added"
    PARTICIPANTS_REMOVED = "participants-removed"
    TURN_STARTED = "turn-started"
    TURN_SKIPPED = "turn-skipped"
    TURN_TIMEOUT_WARNING = "turn-timeout-warning"
    BID_SUBMITTED = "bid-submitted"
    AUTO_ASSIGNMENT = "auto-assignment"
