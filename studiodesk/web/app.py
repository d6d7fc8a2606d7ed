"""FastAPI application factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studiodesk.config.logging import setup_logging
from studiodesk.config.settings import get_settings
from studiodesk.exceptions import StudioDeskError
from studiodesk.web.middleware import RequestIDMiddleware
from studiodesk.web.routes.invite import router as invite_router

if TYPE_CHECKING:
    from fastapi import Request

logger = structlog.get_logger(__name__)

CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    app = FastAPI(
        title="StudioDesk",
        description="Multi-tenant studio management backend",
        version="0.1.0",
    )

    # Every failure leaves as {"error": message} with its status code
    @app.exception_handler(StudioDeskError)
    async def studiodesk_error_handler(request: Request, exc: StudioDeskError) -> JSONResponse:
        status_code = exc.status_code or 500
        if status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=status_code, content={"error": exc.message})

    # Middleware (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=CORS_ALLOWED_HEADERS,
    )
    app.add_middleware(RequestIDMiddleware)

    app.include_router(invite_router)

    @app.get("/health")
    async def health_check() -> dict[str, object]:
        from studiodesk.web.health import check_health

        return await check_health()

    logger.info("app_created")
    return app
