"""TurnSweeper: periodic driver for turn timeouts.

The engine only notices an expired window when somebody touches the
session. This job touches every active session on an interval: lapsed turns
go through `skip_or_timeout` (which applies the configured timeout policy),
and turns about to lapse get a single `turn-timeout-warning` event.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sb_common.database import async_session_factory
from src.sb_common.enums import SessionStatus
from src.sb_common.errors import AppError
from src.sb_session.application.service import get_session_engine
from src.sb_session.domain.clock import is_expired, remaining_seconds
from src.sb_session.engine.engine import BidSessionEngine

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    checked: int = 0
    timed_out: int = 0
    warned: int = 0
    failed: int = 0


class TurnSweeper:
    def __init__(
        self,
        engine: BidSessionEngine | None = None,
        session_factory: Callable[[], AsyncSession] | None = None,
        warning_seconds: int | None = None,
        interval_seconds: int | None = None,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory or async_session_factory
        self._warning_seconds = (
            settings.TURN_WARNING_SECONDS if warning_seconds is None else warning_seconds
        )
        self._interval_seconds = interval_seconds or settings.TURN_SWEEP_INTERVAL_SECONDS
        # (session_id, user_id, window start) already warned about
        self._warned: set[tuple[str, str, datetime]] = set()
        self.scheduler = AsyncIOScheduler()

    @property
    def engine(self) -> BidSessionEngine:
        return self._engine or get_session_engine()

    async def start(self) -> None:
        logger.info("Starting turn sweeper (every %ds)...", self._interval_seconds)
        self.scheduler.add_job(
            self.run_once,
            IntervalTrigger(seconds=self._interval_seconds),
            id="turn_sweep",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Turn sweeper started")

    async def stop(self) -> None:
        self.scheduler.shutdown(wait=False)
        logger.info("Turn sweeper stopped")

    async def run_once(self) -> SweepReport:
        """One sweep over all active sessions."""
        report = SweepReport()
        async with self._session_factory() as db:
            session_ids = await self.engine.list_active_session_ids(db)
        for session_id in session_ids:
            report.checked += 1
            try:
                await self._sweep_session(session_id, report)
            except (SQLAlchemyError, AssertionError):
                report.failed += 1
                logger.exception("Turn sweep failed: session=%s", session_id)

        active = set(session_ids)
        self._warned = {key for key in self._warned if key[0] in active}
        if report.timed_out or report.warned or report.failed:
            logger.info(
                "Turn sweep: checked=%d timed_out=%d warned=%d failed=%d",
                report.checked, report.timed_out, report.warned, report.failed,
            )
        return report

    async def _sweep_session(self, session_id: str, report: SweepReport) -> None:
        async with self._session_factory() as db:
            session = await self.engine.get_session(db, session_id)
        now = self.engine.now()
        current = session.current_participant
        if session.status != SessionStatus.ACTIVE or current is None or current.time_window is None:
            return

        if is_expired(current, now):
            async with self._session_factory() as db:
                try:
                    await self.engine.skip_or_timeout(db, session_id)
                except AppError as exc:
                    # Someone else moved the turn on between our read and the lock.
                    logger.info("Turn sweep no-op: session=%s reason=%s", session_id, exc.message)
                    return
            report.timed_out += 1
            return

        remaining = remaining_seconds(session, now)
        key = (session_id, current.user_id, current.time_window.start)
        if remaining <= self._warning_seconds and key not in self._warned:
            await self.engine.publish_timeout_warning(session, current, remaining)
            self._warned.add(key)
            report.warned += 1


_sweeper: TurnSweeper | None = None


def get_turn_sweeper() -> TurnSweeper:
    global _sweeper  # noqa: PLW0603
    if _sweeper is None:
        _sweeper = TurnSweeper()
    return _sweeper
