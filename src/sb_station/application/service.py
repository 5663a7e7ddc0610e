"""StationApplicationService: read-only availability view for bidders."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_station.application.schemas import StationAvailability, StationAvailabilityList
from src.sb_station.domain.repository import StationRepositoryProtocol
from src.sb_station.infrastructure.persistence import StationRepository


class StationApplicationService:
    def __init__(self, repo: StationRepositoryProtocol | None = None) -> None:
        self._repo: StationRepositoryProtocol = repo or StationRepository()

    async def list_available(
        self, db: AsyncSession, shift: str | None = None
    ) -> StationAvailabilityList:
        stations = await self._repo.list_active_stations(db)
        if shift is not None:
            stations = [s for s in stations if s.available(shift) > 0]
        return StationAvailabilityList(
            stations=[StationAvailability.from_domain(s) for s in stations]
        )
