"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.sb_admin.api.router import router as admin_router
from src.sb_common.database import engine, ping_database
from src.sb_common.errors import AppError, InternalError
from src.sb_common.redis_client import close_redis, ping_redis
from src.sb_common.response import error_response
from src.sb_gateway.api.router import router as auth_router
from src.sb_gateway.middleware.request_log import RequestLogMiddleware
from src.sb_scheduler.turn_sweeper import get_turn_sweeper
from src.sb_session.api.router import router as session_router
from src.sb_station.api.router import router as station_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the turn sweeper. Shutdown: reverse."""
    # Startup
    await ping_database()
    await ping_redis()
    sweeper = get_turn_sweeper() if settings.TURN_SWEEP_ENABLED else None
    if sweeper is not None:
        await sweeper.start()
    logger.info("%s started (timeout policy: %s)", settings.APP_NAME, settings.TIMEOUT_POLICY)
    yield
    # Shutdown
    if sweeper is not None:
        await sweeper.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _error_json(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_json(request, exc)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_json(request, InternalError("Storage failure"))


app.include_router(auth_router, prefix="/api/v1")
app.include_router(session_router, prefix="/api/v1")
app.include_router(station_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
