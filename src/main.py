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

from config.settings import settings
from src.mt_common.database import engine, ping
from src.mt_common.errors import AppError
from src.mt_common.response import error_response
from src.mt_gateway.api.router import persons_router
from src.mt_gateway.api.router import router as auth_router
from src.mt_gateway.auth.revocation import (
    InMemoryRevocationRegistry,
    build_revocation_registry,
    run_sweeper,
)
from src.mt_gateway.middleware.request_log import RequestLogMiddleware
from src.mt_ledger.api.router import router as ledger_router

logger = logging.getLogger("mt.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging, DB check, revocation backend + sweeper. Shutdown: dispose."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    await ping()

    registry = await build_revocation_registry(settings)
    app.state.revocation_registry = registry
    sweeper = asyncio.create_task(run_sweeper(registry, settings.REVOCATION_SWEEP_SECONDS))
    logger.info("%s started (revocation backend: %s)", settings.APP_NAME, settings.REVOCATION_BACKEND)
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await engine.dispose()
    await registry.close()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Replaced in lifespan by the configured backend; set here so the app also
# works when driven without lifespan events (e.g. ASGITransport in tests).
app.state.revocation_registry = InMemoryRevocationRegistry()

app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(persons_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
