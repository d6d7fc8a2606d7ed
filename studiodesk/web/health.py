"""Health check endpoint logic."""

from __future__ import annotations

import structlog

from studiodesk.config.settings import get_settings

logger = structlog.get_logger(__name__)

VERSION = "0.1.0"


async def check_health() -> dict[str, object]:
    """Return service health; probes the database only when the store uses it."""
    settings = get_settings()
    result: dict[str, object] = {
        "status": "healthy",
        "version": VERSION,
        "store": "database" if settings.use_database else "memory",
        "mailer": "email" if settings.supabase_service_role_key else "log",
    }
    if not settings.use_database:
        return result

    try:
        from sqlalchemy import text

        from studiodesk.storage.database import get_engine

        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        result["database"] = "connected"
    except Exception as exc:
        logger.warning("health_check_db_failed", error=str(exc))
        result["database"] = "unavailable"
        result["status"] = "degraded"

    return result
