"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from collections.abc import Collection
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.enums import SessionStatus
from src.sb_session.domain.models import BidHistoryRecord, BidSession


class SessionRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, session: BidSession) -> None: ...

    async def get(self, db: AsyncSession, session_id: str) -> BidSession | None: ...

    async def get_for_update(self, db: AsyncSession, session_id: str) -> BidSession | None: ...

    async def save(self, db: AsyncSession, session: BidSession) -> None: ...

    async def delete(self, db: AsyncSession, session_id: str) -> None: ...

    async def list_sessions(
        self,
        db: AsyncSession,
        status: SessionStatus | None = None,
        year: int | None = None,
    ) -> list[BidSession]: ...

    async def get_current(self, db: AsyncSession) -> BidSession | None: ...

    async def list_ids_by_status(
        self, db: AsyncSession, status: SessionStatus
    ) -> list[str]: ...

    async def list_bid_history(
        self,
        db: AsyncSession,
        limit: int,
        session_id: str | None = None,
        statuses: Collection[SessionStatus] | None = None,
    ) -> list[BidHistoryRecord]: ...
