"""FastAPI dependencies: get_current_user / require_admin.

Usage in any protected router:
    from src.sb_gateway.auth.dependencies import get_current_user, require_admin

    @router.post("/bid-sessions/{session_id}/start")
    async def start(admin: UserModel = Depends(require_admin)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.database import get_db_session
from src.sb_common.errors import (
    AccountDisabledError,
    AdminRequiredError,
    InvalidCredentialsError,
)
from src.sb_gateway.auth.jwt_handler import decode_token
from src.sb_gateway.user.db_models import UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired, and
    AccountDisabledError (403) if the user account is disabled.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    # Detach, then close the implicit read transaction so the bid-session
    # engine can open its own `db.begin()` on the same request session.
    db.expunge(user)
    await db.rollback()
    return user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Session lifecycle operations are restricted to administrators."""
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
