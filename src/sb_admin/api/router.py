"""Admin diagnostics REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_admin.application.service import AdminService
from src.sb_common.database import get_db_session
from src.sb_common.response import ApiResponse, success_response, with_request_id
from src.sb_gateway.auth.dependencies import require_admin
from src.sb_gateway.user.db_models import UserModel

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


def get_admin_service() -> AdminService:
    return _service


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.verify_all_invariants(db)
    return with_request_id(success_response(result), request)


@router.get("/bid-sessions/{session_id}/stats")
async def session_stats(
    session_id: str,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.get_session_stats(session_id, db)
    return with_request_id(success_response(result), request)


@router.post("/sweep")
async def run_sweep(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.run_sweep()
    return with_request_id(success_response(result, "Sweep complete"), request)
