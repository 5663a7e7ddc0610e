"""Unit tests for sb_rules precondition checks."""

from datetime import UTC, datetime, timedelta

import pytest

from src.sb_common.enums import SessionStatus
from src.sb_common.errors import (
    AlreadyBidError,
    InvalidPositionError,
    InvalidScheduleError,
    InvalidSessionStateError,
    InvalidShiftError,
    InvalidStationError,
    NoParticipantsError,
    NotYourTurnError,
    SessionExhaustedError,
    SessionNotActiveError,
    StationInactiveError,
    TurnExpiredError,
)
from src.sb_rules.rules.bid_target import check_position, check_shift, check_station
from src.sb_rules.rules.session_state import (
    check_has_participants,
    check_not_exhausted,
    check_schedule,
    check_session_active,
    check_status_in,
)
from src.sb_rules.rules.turn import check_not_already_bid, check_turn_owner, check_window_open
from src.sb_session.domain.models import BidSession, Participant, TimeWindow
from src.sb_station.domain.models import Station

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _session(status: SessionStatus, participants: int = 1) -> BidSession:
    return BidSession(
        id="BS-1",
        name="Bid",
        year=2026,
        bid_window_minutes=5,
        status=status,
        participants=[Participant(f"u{i}", i, i + 1) for i in range(participants)],
    )


class TestSessionState:
    def test_status_in_message_names_action(self) -> None:
        with pytest.raises(InvalidSessionStateError) as exc:
            check_status_in(_session(SessionStatus.COMPLETED), {SessionStatus.DRAFT}, "start")
        assert exc.value.message == "Cannot start bid session BS-1 in status completed"
        assert exc.value.http_status == 409

    def test_active(self) -> None:
        check_session_active(_session(SessionStatus.ACTIVE))
        with pytest.raises(SessionNotActiveError):
            check_session_active(_session(SessionStatus.PAUSED))

    def test_exhausted(self) -> None:
        s = _session(SessionStatus.ACTIVE)
        check_not_exhausted(s)
        s.current_participant_index = 1
        with pytest.raises(SessionExhaustedError):
            check_not_exhausted(s)

    def test_has_participants(self) -> None:
        with pytest.raises(NoParticipantsError):
            check_has_participants(_session(SessionStatus.DRAFT, participants=0))

    def test_schedule_end_must_follow_start(self) -> None:
        s = _session(SessionStatus.DRAFT)
        check_schedule(s)
        s.scheduled_start = NOW
        s.scheduled_end = NOW + timedelta(hours=8)
        check_schedule(s)
        s.scheduled_end = NOW
        with pytest.raises(InvalidScheduleError) as exc:
            check_schedule(s)
        assert exc.value.code == 2007


class TestTurn:
    def test_owner(self) -> None:
        p = Participant("u1", 0, 1)
        check_turn_owner(p, "u1")
        with pytest.raises(NotYourTurnError):
            check_turn_owner(p, "u2")

    def test_already_bid(self) -> None:
        with pytest.raises(AlreadyBidError):
            check_not_already_bid(Participant("u1", 0, 1, has_bid=True))

    def test_window(self) -> None:
        p = Participant("u1", 0, 1, time_window=TimeWindow(NOW, NOW + timedelta(minutes=5)))
        check_window_open(p, NOW + timedelta(minutes=5))
        with pytest.raises(TurnExpiredError):
            check_window_open(p, NOW + timedelta(minutes=6))


class TestBidTarget:
    def test_station_missing(self) -> None:
        with pytest.raises(InvalidStationError):
            check_station(None, "ST-404")

    def test_station_inactive(self) -> None:
        st = Station(id="ST-1", name="One", number="01", is_active=False)
        with pytest.raises(StationInactiveError):
            check_station(st, "ST-1")

    def test_station_ok_returns_it(self) -> None:
        st = Station(id="ST-1", name="One", number="01")
        assert check_station(st, "ST-1") is st

    @pytest.mark.parametrize("shift", ["A", "B", "C"])
    def test_valid_shifts(self, shift: str) -> None:
        check_shift(shift)

    def test_invalid_shift_and_position(self) -> None:
        with pytest.raises(InvalidShiftError):
            check_shift("a")
        with pytest.raises(InvalidPositionError):
            check_position("firefighter")
        check_position("EMT")
