"""Bid session REST endpoints.

Participants:
    GET  /bid-sessions                          list (status / year filters)
    GET  /bid-sessions/current                  running or next scheduled session
    GET  /bid-sessions/history                  newest bids across active and completed sessions
    GET  /bid-sessions/{id}                     detail with roster
    GET  /bid-sessions/{id}/my-participation    caller's place in the queue
    GET  /bid-sessions/{id}/remaining           seconds left in the current turn
    GET  /bid-sessions/{id}/history             every bid in the session, newest first
    POST /bid-sessions/{id}/bids                submit a bid for the current turn
    POST /bid-sessions/{id}/skip-turn           pass on the current turn

Admins:
    POST   /bid-sessions                        create (draft)
    PATCH  /bid-sessions/{id}                   edit while draft / scheduled
    DELETE /bid-sessions/{id}
    POST   /bid-sessions/{id}/participants      add users to the end of the queue
    POST   /bid-sessions/{id}/participants/remove
    POST   /bid-sessions/{id}/{schedule|start|pause|resume|complete}
    POST   /bid-sessions/{id}/skip              skip the current turn now
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.database import get_db_session
from src.sb_common.enums import SessionStatus
from src.sb_common.response import ApiResponse, success_response, with_request_id
from src.sb_gateway.auth.dependencies import get_current_user, require_admin
from src.sb_gateway.user.db_models import UserModel
from src.sb_session.application.schemas import (
    CreateSessionRequest,
    ParticipantsRequest,
    RemoveParticipantsRequest,
    SubmitBidRequest,
    UpdateSessionRequest,
)
from src.sb_session.application.service import BidSessionApplicationService

router = APIRouter(prefix="/bid-sessions", tags=["bid-sessions"])

_service = BidSessionApplicationService()


def get_session_service() -> BidSessionApplicationService:
    return _service


Service = Annotated[BidSessionApplicationService, Depends(get_session_service)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[UserModel, Depends(get_current_user)]
Admin = Annotated[UserModel, Depends(require_admin)]


def _ok(request: Request, data: object = None, message: str = "success") -> ApiResponse:
    return with_request_id(success_response(data, message), request)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("", response_model=ApiResponse)
async def list_sessions(
    request: Request,
    current_user: CurrentUser,
    db: Db,
    service: Service,
    status_filter: SessionStatus | None = Query(None, alias="status"),
    year: int | None = Query(None, ge=2000, le=2100),
) -> ApiResponse:
    result = await service.list_sessions(db, status=status_filter, year=year)
    return _ok(request, result.model_dump(mode="json"))


@router.get("/current", response_model=ApiResponse)
async def get_current_session(
    request: Request, current_user: CurrentUser, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_current_session(db)
    return _ok(request, result.model_dump(mode="json") if result else None)


@router.get("/history", response_model=ApiResponse)
async def get_recent_history(
    request: Request,
    current_user: CurrentUser,
    db: Db,
    service: Service,
    limit: int = Query(50, ge=1, le=500),
) -> ApiResponse:
    result = await service.get_recent_history(limit, db)
    return _ok(request, result.model_dump(mode="json"))


@router.get("/{session_id}", response_model=ApiResponse)
async def get_session(
    session_id: str, request: Request, current_user: CurrentUser, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_session(session_id, db)
    return _ok(request, result.model_dump(mode="json"))


@router.get("/{session_id}/my-participation", response_model=ApiResponse)
async def get_my_participation(
    session_id: str, request: Request, current_user: CurrentUser, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_my_participation(session_id, str(current_user.id), db)
    return _ok(request, result.model_dump(mode="json"))


@router.get("/{session_id}/remaining", response_model=ApiResponse)
async def get_remaining(
    session_id: str, request: Request, current_user: CurrentUser, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_remaining(session_id, db)
    return _ok(request, result.model_dump(mode="json"))


@router.get("/{session_id}/history", response_model=ApiResponse)
async def get_session_history(
    session_id: str,
    request: Request,
    current_user: CurrentUser,
    db: Db,
    service: Service,
    limit: int = Query(50, ge=1, le=500),
) -> ApiResponse:
    result = await service.get_session_history(session_id, limit, db)
    return _ok(request, result.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Participant actions
# ---------------------------------------------------------------------------


@router.post("/{session_id}/bids", response_model=ApiResponse)
async def submit_bid(
    session_id: str,
    body: SubmitBidRequest,
    request: Request,
    current_user: CurrentUser,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.submit_bid(session_id, str(current_user.id), body, db)
    return _ok(request, result.model_dump(mode="json"), "Bid submitted")


@router.post("/{session_id}/skip-turn", response_model=ApiResponse)
async def skip_turn(
    session_id: str, request: Request, current_user: CurrentUser, db: Db, service: Service
) -> ApiResponse:
    result = await service.skip_turn(session_id, str(current_user.id), db)
    return _ok(request, result.model_dump(mode="json"), "Turn skipped")


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    result = await service.create_session(body, str(admin.id), db)
    return _ok(request, result.model_dump(mode="json"), "Bid session created")


@router.patch("/{session_id}", response_model=ApiResponse)
async def update_session(
    session_id: str,
    body: UpdateSessionRequest,
    request: Request,
    admin: Admin,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.update_session(session_id, body, db)
    return _ok(request, result.model_dump(mode="json"), "Bid session updated")


@router.delete("/{session_id}", response_model=ApiResponse)
async def delete_session(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    await service.delete_session(session_id, db)
    return _ok(request, {"session_id": session_id}, "Bid session deleted")


@router.post("/{session_id}/participants", response_model=ApiResponse)
async def add_participants(
    session_id: str,
    body: ParticipantsRequest,
    request: Request,
    admin: Admin,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.add_participants(session_id, body, db)
    return _ok(request, result.model_dump(mode="json"), "Participants added")


@router.post("/{session_id}/participants/remove", response_model=ApiResponse)
async def remove_participants(
    session_id: str,
    body: RemoveParticipantsRequest,
    request: Request,
    admin: Admin,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.remove_participants(session_id, body, db)
    return _ok(request, result.model_dump(mode="json"), "Participants removed")


async def _transition(
    action: str, session_id: str, request: Request, db: AsyncSession, service: BidSessionApplicationService
) -> ApiResponse:
    result = await service.transition(session_id, action, db)
    return _ok(request, result.model_dump(mode="json"), f"Bid session {result.status}")


@router.post("/{session_id}/schedule", response_model=ApiResponse)
async def schedule_session(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    return await _transition("schedule", session_id, request, db, service)


@router.post("/{session_id}/start", response_model=ApiResponse)
async def start_session(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    return await _transition("start", session_id, request, db, service)


@router.post("/{session_id}/pause", response_model=ApiResponse)
async def pause_session(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    return await _transition("pause", session_id, request, db, service)


@router.post("/{session_id}/resume", response_model=ApiResponse)
async def resume_session(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    return await _transition("resume", session_id, request, db, service)


@router.post("/{session_id}/complete", response_model=ApiResponse)
async def complete_session(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    return await _transition("complete", session_id, request, db, service)


@router.post("/{session_id}/skip", response_model=ApiResponse)
async def skip_current_turn(
    session_id: str, request: Request, admin: Admin, db: Db, service: Service
) -> ApiResponse:
    result = await service.admin_skip(session_id, db)
    return _ok(request, result.model_dump(mode="json"), "Turn skipped")
