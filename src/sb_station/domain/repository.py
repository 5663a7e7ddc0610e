# src/sb_station/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_station.domain.models import Station


class StationRepositoryProtocol(Protocol):
    async def get_station(self, db: AsyncSession, station_id: str) -> Station | None: ...

    async def get_station_for_update(
        self, db: AsyncSession, station_id: str
    ) -> Station | None: ...

    async def list_active_stations(self, db: AsyncSession) -> list[Station]: ...

    async def add_assignment(
        self,
        db: AsyncSession,
        station_id: str,
        shift: str,
        user_id: str,
        position: str,
        session_id: str,
    ) -> None: ...
