from datetime import datetime

from src.sb_common.errors import AlreadyBidError, NotYourTurnError, TurnExpiredError
from src.sb_session.domain.clock import is_expired
from src.sb_session.domain.models import Participant


def check_turn_owner(current: Participant, user_id: str) -> None:
    if current.user_id != user_id:
        raise NotYourTurnError()


def check_not_already_bid(current: Participant) -> None:
    if current.has_bid:
        raise AlreadyBidError()


def check_window_open(current: Participant, now: datetime) -> None:
    """Late bids are rejected even if no sweep has advanced the turn yet."""
    if is_expired(current, now):
        raise TurnExpiredError()
