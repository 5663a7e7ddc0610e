"""Unit tests for the participant queue (roster + cursor)."""

from datetime import UTC, datetime, timedelta

import pytest

from src.sb_common.enums import SessionStatus
from src.sb_common.errors import DuplicateParticipantError, InvalidSessionStateError
from src.sb_session.domain.models import BidSession
from src.sb_session.domain.queue import (
    add_participants,
    advance,
    remove_participants,
    sort_by_priority,
)

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _session(status: SessionStatus = SessionStatus.DRAFT) -> BidSession:
    return BidSession(id="BS-1", name="Bid", year=2026, bid_window_minutes=5, status=status)


class TestAddParticipants:
    def test_appends_with_dense_positions(self) -> None:
        s = _session()
        add_participants(s, [("a", 3), ("b", 1)])
        added = add_participants(s, [("c", 2)])
        assert [p.user_id for p in s.participants] == ["a", "b", "c"]
        assert [p.position for p in s.participants] == [0, 1, 2]
        assert added[0].position == 2
        assert added[0].bid_priority == 2

    def test_duplicate_existing_rejects_all(self) -> None:
        s = _session()
        add_participants(s, [("a", 1)])
        with pytest.raises(DuplicateParticipantError) as exc:
            add_participants(s, [("b", 2), ("a", 1)])
        assert exc.value.code == 2004
        assert [p.user_id for p in s.participants] == ["a"]

    def test_duplicate_within_request(self) -> None:
        s = _session()
        with pytest.raises(DuplicateParticipantError):
            add_participants(s, [("b", 2), ("b", 2)])
        assert s.participants == []

    def test_allowed_when_scheduled(self) -> None:
        s = _session(SessionStatus.SCHEDULED)
        add_participants(s, [("a", 1)])
        assert s.total_participants == 1

    @pytest.mark.parametrize(
        "status", [SessionStatus.ACTIVE, SessionStatus.PAUSED, SessionStatus.COMPLETED]
    )
    def test_rejected_once_started(self, status: SessionStatus) -> None:
        with pytest.raises(InvalidSessionStateError):
            add_participants(_session(status), [("a", 1)])


class TestSortByPriority:
    def test_rank_one_first_and_stable(self) -> None:
        s = _session()
        add_participants(s, [("a", 3), ("b", 1), ("c", 3), ("d", 2)])
        sort_by_priority(s)
        assert [p.user_id for p in s.participants] == ["b", "d", "a", "c"]
        assert [p.position for p in s.participants] == [0, 1, 2, 3]


class TestRemoveParticipants:
    def test_redensifies_keeping_order(self) -> None:
        s = _session()
        add_participants(s, [("a", 1), ("b", 2), ("c", 3), ("d", 4)])
        removed = remove_participants(s, ["b", "d", "nobody"])
        assert removed == 2
        assert [(p.user_id, p.position) for p in s.participants] == [("a", 0), ("c", 1)]

    def test_rejected_once_active(self) -> None:
        with pytest.raises(InvalidSessionStateError):
            remove_participants(_session(SessionStatus.ACTIVE), ["a"])


class TestAdvance:
    def test_opens_next_window(self) -> None:
        s = _session()
        add_participants(s, [("a", 1), ("b", 2)])
        s.status = SessionStatus.ACTIVE
        nxt = advance(s, NOW)
        assert nxt is not None and nxt.user_id == "b"
        assert s.current_participant_index == 1
        assert s.current_bid_start == NOW
        assert s.current_bid_end == NOW + timedelta(minutes=5)
        assert nxt.time_window is not None

    def test_exhaustion_returns_none_and_clears_window(self) -> None:
        s = _session()
        add_participants(s, [("a", 1)])
        s.current_bid_start = NOW
        s.current_bid_end = NOW + timedelta(minutes=5)
        assert advance(s, NOW) is None
        assert s.is_exhausted
        assert s.current_bid_start is None
        assert s.current_bid_end is None
