"""FastAPI dependency injection and shared state."""

from __future__ import annotations

from functools import lru_cache

import structlog
from fastapi import Depends, Header

from studiodesk.auth.verify import bearer_token, verify_access_token
from studiodesk.config.settings import get_settings
from studiodesk.invitations.mailer import InvitationMailer, LogInvitationMailer, SupabaseInvitationMailer
from studiodesk.invitations.service import InvitationService
from studiodesk.models.domain import CallerClaims
from studiodesk.storage.repositories.invitations import InMemoryInvitationStore, InvitationStore

logger = structlog.get_logger(__name__)


@lru_cache
def get_invitation_store() -> InvitationStore:
    """Create the appropriate invitation store based on settings."""
    settings = get_settings()
    if settings.use_database:
        from studiodesk.storage.database import get_engine
        from studiodesk.storage.repositories.db_invitations import DatabaseInvitationStore

        return DatabaseInvitationStore(get_engine())

    logger.warning("invitation_store_in_memory")
    return InMemoryInvitationStore()


@lru_cache
def get_invitation_mailer() -> InvitationMailer:
    """Send real emails when a service role key is configured, otherwise log the links."""
    settings = get_settings()
    if settings.supabase_service_role_key:
        return SupabaseInvitationMailer(settings)
    logger.warning("invitation_mailer_logging_only")
    return LogInvitationMailer()


def get_invitation_service(
    store: InvitationStore = Depends(get_invitation_store),
    mailer: InvitationMailer = Depends(get_invitation_mailer),
) -> InvitationService:
    return InvitationService(store, mailer, ttl_days=get_settings().invitation_ttl_days)


async def get_caller(authorization: str | None = Header(default=None)) -> CallerClaims:
    """Verified claims of the bearer token; UnauthorizedError otherwise."""
    return verify_access_token(bearer_token(authorization))
