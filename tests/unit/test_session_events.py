"""Unit tests for session event builders and the Redis publisher."""

import json
import logging
from datetime import UTC, datetime
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from src.sb_common.enums import EventType, SessionStatus
from src.sb_notify.domain import events
from src.sb_notify.infrastructure.redis_publisher import RedisEventPublisher, channel_for
from src.sb_session.domain.models import BidSession, Participant

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _session() -> BidSession:
    return BidSession(
        id="BS-1",
        name="Spring Bid",
        year=2026,
        bid_window_minutes=5,
        status=SessionStatus.ACTIVE,
        participants=[Participant("u1", 0, 1), Participant("u2", 1, 2)],
    )


class TestEventBuilders:
    def test_status_change(self) -> None:
        ev = events.session_status_changed(EventType.SESSION_STARTED, _session(), NOW)
        assert ev.type == EventType.SESSION_STARTED
        assert ev.payload == {"sessionId": "BS-1", "sessionName": "Spring Bid", "status": "active"}

    def test_turn_started_duration_in_seconds(self) -> None:
        s = _session()
        ev = events.turn_started(s, s.participants[0], "Ada Alvarez", NOW)
        assert ev.payload["durationSeconds"] == 300
        assert ev.payload["userName"] == "Ada Alvarez"

    def test_turn_skipped_carries_reason(self) -> None:
        s = _session()
        ev = events.turn_skipped(s, s.participants[1], "Ben Brooks", "timeout", NOW)
        assert ev.payload["reason"] == "timeout"
        assert ev.payload["userId"] == "u2"

    def test_bid_submitted_vs_auto_assignment(self) -> None:
        s = _session()
        p = s.participants[0]
        p.assigned_shift, p.assigned_position = "B", "EMT"
        manual = events.bid_submitted(s, p, "Ada", "Station 01", NOW)
        auto = events.bid_submitted(s, p, "Ada", "Station 01", NOW, auto_assigned=True)
        assert manual.type == EventType.BID_SUBMITTED
        assert auto.type == EventType.AUTO_ASSIGNMENT
        assert manual.payload["shift"] == "B"
        assert manual.payload["position"] == "EMT"
        assert manual.payload["stationName"] == "Station 01"

    def test_participants_counts(self) -> None:
        ev = events.participants_added(_session(), 2, NOW)
        assert ev.payload["addedCount"] == 2
        assert ev.payload["totalParticipants"] == 2

    def test_to_message_envelope(self) -> None:
        s = _session()
        msg = json.loads(events.turn_timeout_warning(s, s.participants[0], 42, NOW).to_message())
        assert msg["type"] == "turn-timeout-warning"
        assert msg["sessionId"] == "BS-1"
        assert msg["timestamp"] == NOW.isoformat()
        assert msg["data"]["remainingSeconds"] == 42


class TestRedisEventPublisher:
    async def test_publishes_on_session_channel(self) -> None:
        client = AsyncMock()
        client.publish.return_value = 1
        ev = events.session_completed(_session(), NOW)
        await RedisEventPublisher(client).publish(ev)
        client.publish.assert_awaited_once_with("bid-session:BS-1", ev.to_message())

    def test_channel_naming(self) -> None:
        assert channel_for("BS-9") == "bid-session:BS-9"

    async def test_redis_failure_is_logged_not_raised(self, caplog) -> None:
        client = AsyncMock()
        client.publish.side_effect = RedisConnectionError("down")
        ev = events.session_completed(_session(), NOW)
        with caplog.at_level(logging.WARNING):
            await RedisEventPublisher(client).publish(ev)
        assert "Event publish failed" in caplog.text
