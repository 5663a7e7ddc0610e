"""Auth API router: login, refresh, and the caller's own profile.

GET /auth/me returns the caller's profile, including bid priority rank and
default position.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sb_common.database import get_db_session
from src.sb_common.response import ApiResponse, success_response, with_request_id
from src.sb_gateway.auth.dependencies import get_current_user
from src.sb_gateway.user.db_models import UserModel
from src.sb_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    UserInfo,
)
from src.sb_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


def _user_info(user: UserModel) -> UserInfo:
    return UserInfo(
        user_id=str(user.id),
        username=user.username,
        display_name=user.display_name,
        position=user.position,
        bid_priority=user.bid_priority,
        current_station_id=user.current_station_id,
        current_shift=user.current_shift,
        is_admin=user.is_admin,
    )


@router.post("/login", status_code=status.HTTP_200_OK, response_model=ApiResponse)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.username, body.password, db)
    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=_user_info(user),
    )
    return with_request_id(success_response(data.model_dump(), "Login successful"), request)


@router.post("/refresh", status_code=status.HTTP_200_OK, response_model=ApiResponse)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token, db)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    return with_request_id(success_response(data.model_dump(), "Token refreshed"), request)


@router.get("/me", response_model=ApiResponse)
async def me(
    request: Request,
    current_user: UserModel = Depends(get_current_user),
) -> ApiResponse:
    return with_request_id(success_response(_user_info(current_user).model_dump()), request)
