"""Invitation issuance: add existing users directly, email a magic link to new ones."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from studiodesk.exceptions import ConflictError, ForbiddenError, ValidationError
from studiodesk.invitations.origin import accept_invite_url
from studiodesk.models.database import _utc_now
from studiodesk.models.domain import InviteResult
from studiodesk.storage.repositories.invitations import ALREADY_MEMBER_MESSAGE
from studiodesk.types import InviteMethod, TenantRole

if TYPE_CHECKING:
    from studiodesk.invitations.mailer import InvitationMailer
    from studiodesk.models.domain import CallerClaims
    from studiodesk.storage.repositories.invitations import InvitationStore

logger = structlog.get_logger(__name__)

FORBIDDEN_MESSAGE = "Forbidden: solo los admins pueden invitar empleados"
MISSING_FIELDS_MESSAGE = "Se requiere email y roleId"


def require_inviter(caller: CallerClaims) -> str:
    """Return the caller's tenant id; only admins of an active tenant may invite."""
    if not caller.tenant_id or caller.role != TenantRole.ADMIN:
        raise ForbiddenError(FORBIDDEN_MESSAGE)
    return caller.tenant_id


class InvitationService:
    def __init__(self, store: InvitationStore, mailer: InvitationMailer, ttl_days: int = 7) -> None:
        self._store = store
        self._mailer = mailer
        self._ttl = timedelta(days=ttl_days)

    async def issue(self, caller: CallerClaims, email: str | None, role_id: str | None, origin: str) -> InviteResult:
        """Invite ``email`` with ``role_id`` into the caller's active tenant.

        Exactly one of two transitions happens: an existing profile becomes a
        member immediately (``direct``), otherwise a pending invitation is
        written and its magic link emailed (``email``).
        """
        tenant_id = require_inviter(caller)
        email = (email or "").strip().lower()
        role_id = (role_id or "").strip()
        if not email or not role_id:
            raise ValidationError(MISSING_FIELDS_MESSAGE)

        expires_at = _utc_now() + self._ttl
        profile_id = await self._store.find_profile_id(email)

        if profile_id is not None:
            if await self._store.is_member(profile_id, tenant_id):
                raise ConflictError(ALREADY_MEMBER_MESSAGE)
            await self._store.add_member_directly(
                user_id=profile_id,
                tenant_id=tenant_id,
                role_id=role_id,
                email=email,
                invited_by=caller.user_id,
                expires_at=expires_at,
            )
            logger.info("invitation_issued", method="direct", tenant_id=tenant_id, email=email)
            return InviteResult(method=InviteMethod.DIRECT)

        token = await self._store.upsert_pending_invitation(
            tenant_id=tenant_id,
            email=email,
            role_id=role_id,
            invited_by=caller.user_id,
            expires_at=expires_at,
        )
        await self._mailer.send_invitation(email, accept_invite_url(origin, token))
        logger.info("invitation_issued", method="email", tenant_id=tenant_id, email=email)
        return InviteResult(method=InviteMethod.EMAIL)
