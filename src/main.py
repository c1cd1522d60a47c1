"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.mk_auction.api.router import router as bids_router
from src.mk_catalog.api.router import router as listings_router
from src.mk_common.database import async_session_factory, engine
from src.mk_common.errors import AppError
from src.mk_common.redis_client import close_redis, get_redis
from src.mk_common.response import error_response
from src.mk_confirmation.api.router import router as confirmation_router
from src.mk_confirmation.application.service import ConfirmationService
from src.mk_gateway.api.router import router as auth_router
from src.mk_gateway.middleware.request_log import RequestLogMiddleware
from src.mk_ledger.api.router import router as account_router
from src.mk_notification.dispatcher import get_dispatcher
from src.mk_order.api.router import router as order_router
from src.mk_review.api.router import router as reviews_router
from src.mk_stats.api.router import router as stats_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


async def _sweep_confirmation_codes(interval: int) -> None:
    service = ConfirmationService()
    while True:
        await asyncio.sleep(interval)
        try:
            async with async_session_factory() as db:
                await service.purge_expired(db)
        except Exception:
            logger.exception("Confirmation code sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the code sweep. Shutdown: drain and dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    sweeper: asyncio.Task[None] | None = None
    if settings.CONFIRMATION_CODE_SWEEP_SECONDS > 0:
        sweeper = asyncio.create_task(
            _sweep_confirmation_codes(settings.CONFIRMATION_CODE_SWEEP_SECONDS)
        )
    yield
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await get_dispatcher().drain()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(account_router, prefix="/api/v1")
app.include_router(listings_router, prefix="/api/v1")
app.include_router(bids_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(confirmation_router, prefix="/api/v1")
app.include_router(stats_router, prefix="/api/v1")
app.include_router(reviews_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
