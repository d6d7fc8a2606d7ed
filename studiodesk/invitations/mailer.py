"""Delivery of magic-link invitation emails."""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog

from studiodesk.backend.auth import GoTrueAdmin
from studiodesk.config.settings import Settings
from studiodesk.exceptions import BackendError, UpstreamError

logger = structlog.get_logger(__name__)


class InvitationMailer(Protocol):
    async def send_invitation(self, email: str, redirect_to: str) -> None:
        """Send the invitation; raise UpstreamError with the raw message on failure."""
        ...


class SupabaseInvitationMailer:
    """Uses the auth service's invite email, which also creates the auth user.

    Opens a short-lived HTTP client per invitation so nothing outlives the request.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if not settings.supabase_service_role_key:
            msg = "SUPABASE_SERVICE_ROLE_KEY is required to send invitation emails"
            raise ValueError(msg)
        self._base_url = settings.supabase_url
        self._timeout = httpx.Timeout(settings.http_timeout_seconds)
        self._service_key = settings.supabase_service_role_key
        self._transport = transport

    async def send_invitation(self, email: str, redirect_to: str) -> None:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as http:
                await GoTrueAdmin(http, self._service_key).invite_user_by_email(email, redirect_to=redirect_to)
        except BackendError as exc:
            logger.warning("invitation_email_failed", email=email, status=exc.status_code, error=exc.message)
            raise UpstreamError(exc.message) from exc
        logger.info("invitation_email_sent", email=email)


class LogInvitationMailer:
    """Development mailer: logs the accept link instead of sending it."""

    async def send_invitation(self, email: str, redirect_to: str) -> None:
        logger.info("invitation_email_logged", email=email, redirect_to=redirect_to)
