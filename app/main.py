from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import router
from app.auth import router as auth_router
from app.realtime import router as realtime_router
from app.web import router as web_router
from datastore.bins import build_default_bin_store
from datastore.users import build_default_user_store
from logging_config import configure_logging
from services.auth import build_default_auth_service
from services.bins import build_default_bin_service
from services.simulator import build_default_simulator
from services.sync_hub import build_default_hub
from settings import get_settings

logger = logging.getLogger(__name__)

_DEFAULT_FACTORIES = (
    build_default_simulator,
    build_default_bin_service,
    build_default_auth_service,
    build_default_hub,
    build_default_bin_store,
    build_default_user_store,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if settings.seed_default_data:
        seeded = build_default_bin_store().seed_defaults()
        if seeded:
            logger.info("Seeded default bins", extra={"reason": f"{seeded} bins"})
        if build_default_auth_service().seed_default_admin():
            logger.info("Seeded default admin user", extra={"username": "admin"})

    simulator = build_default_simulator()
    if settings.simulator_enabled:
        simulator.start()
    try:
        yield
    finally:
        await simulator.stop()
        for factory in _DEFAULT_FACTORIES:
            factory.cache_clear()


def _format_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages) or "Invalid request."


async def _validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _format_validation_error(exc)},
    )


async def _http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    detail = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and detail == "Not Found":
        detail = "Endpoint not found."
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"method": request.method, "path": request.url.path},
    )
    settings = get_settings()
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.is_development else "Something went wrong",
        },
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Smart Bin Monitor",
        description="Realtime fill-level monitoring for a fleet of smart waste bins.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.started_at = time.monotonic()
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.include_router(router)
    app.include_router(auth_router)
    app.include_router(realtime_router)
    app.include_router(web_router)
    return app

app = create_app()
