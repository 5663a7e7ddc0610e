"""sb_station REST endpoints.

GET /stations/available: active stations with per-shift capacity left
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.database import get_db_session
from src.sb_common.response import ApiResponse, success_response, with_request_id
from src.sb_gateway.auth.dependencies import get_current_user
from src.sb_gateway.user.db_models import UserModel
from src.sb_station.application.service import StationApplicationService

router = APIRouter(prefix="/stations", tags=["stations"])

_service = StationApplicationService()


def get_station_service() -> StationApplicationService:
    return _service


@router.get("/available")
async def list_available_stations(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[StationApplicationService, Depends(get_station_service)],
    shift: Literal["A", "B", "C"] | None = Query(
        None, description="Only stations with room on this shift"
    ),
) -> ApiResponse:
    result = await service.list_available(db, shift)
    return with_request_id(success_response(result.model_dump()), request)
