"""Invitation store contract and in-memory implementation (database-backed version in production)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Protocol

import structlog

from studiodesk.exceptions import ConflictError
from studiodesk.models.database import Profile, TenantInvitation, TenantMember, _utc_now

logger = structlog.get_logger(__name__)

ALREADY_MEMBER_MESSAGE = "Este usuario ya es miembro del estudio"


class InvitationStore(Protocol):
    """Storage operations behind the invite endpoint.

    Emails are expected lowercased by the caller.
    """

    async def find_profile_id(self, email: str) -> str | None: ...

    async def is_member(self, user_id: str, tenant_id: str) -> bool: ...

    async def add_member_directly(
        self,
        *,
        user_id: str,
        tenant_id: str,
        role_id: str,
        email: str,
        invited_by: str,
        expires_at: datetime,
    ) -> None:
        """Insert the membership and record an already-accepted invitation, atomically.

        Raises ConflictError when the membership exists.
        """
        ...

    async def upsert_pending_invitation(
        self,
        *,
        tenant_id: str,
        email: str,
        role_id: str,
        invited_by: str,
        expires_at: datetime,
    ) -> str:
        """Insert or replace the (tenant_id, email) invitation and return its fresh token."""
        ...

    async def get_invitation(self, tenant_id: str, email: str) -> TenantInvitation | None: ...


class InMemoryInvitationStore:
    """In-memory invitation store. Replaced by SQLModel + PostgreSQL in production."""

    def __init__(self) -> None:
        self._profiles: dict[str, Profile] = {}  # email -> profile
        self._members: dict[tuple[str, str], TenantMember] = {}  # (user_id, tenant_id)
        self._invitations: dict[tuple[str, str], TenantInvitation] = {}  # (tenant_id, email)

    def add_profile(self, email: str, profile_id: str | None = None) -> Profile:
        profile = Profile(id=profile_id or str(uuid.uuid4()), email=email.lower())
        self._profiles[profile.email] = profile
        return profile

    def add_member(self, user_id: str, tenant_id: str, role_id: str) -> TenantMember:
        member = TenantMember(user_id=user_id, tenant_id=tenant_id, role_id=role_id)
        self._members[(user_id, tenant_id)] = member
        return member

    def members_of(self, tenant_id: str) -> list[TenantMember]:
        return [m for (_, tid), m in self._members.items() if tid == tenant_id]

    def invitations_of(self, tenant_id: str) -> list[TenantInvitation]:
        return [i for (tid, _), i in self._invitations.items() if tid == tenant_id]

    async def find_profile_id(self, email: str) -> str | None:
        profile = self._profiles.get(email)
        return profile.id if profile else None

    async def is_member(self, user_id: str, tenant_id: str) -> bool:
        return (user_id, tenant_id) in self._members

    async def add_member_directly(
        self,
        *,
        user_id: str,
        tenant_id: str,
        role_id: str,
        email: str,
        invited_by: str,
        expires_at: datetime,
    ) -> None:
        if (user_id, tenant_id) in self._members:
            raise ConflictError(ALREADY_MEMBER_MESSAGE)
        self.add_member(user_id, tenant_id, role_id)
        invitation = self._upsert(tenant_id, email, role_id, invited_by, expires_at)
        invitation.accepted_at = _utc_now()
        logger.info("member_added_directly", user_id=user_id, tenant_id=tenant_id)

    async def upsert_pending_invitation(
        self,
        *,
        tenant_id: str,
        email: str,
        role_id: str,
        invited_by: str,
        expires_at: datetime,
    ) -> str:
        invitation = self._upsert(tenant_id, email, role_id, invited_by, expires_at)
        invitation.token = str(uuid.uuid4())
        invitation.accepted_at = None
        logger.info("invitation_upserted", tenant_id=tenant_id, email=email)
        return invitation.token

    async def get_invitation(self, tenant_id: str, email: str) -> TenantInvitation | None:
        return self._invitations.get((tenant_id, email))

    def _upsert(
        self,
        tenant_id: str,
        email: str,
        role_id: str,
        invited_by: str,
        expires_at: datetime,
    ) -> TenantInvitation:
        key = (tenant_id, email)
        invitation = self._invitations.get(key)
        if invitation is None:
            invitation = TenantInvitation(
                tenant_id=tenant_id,
                email=email,
                role_id=role_id,
                invited_by=invited_by,
                expires_at=expires_at,
            )
            self._invitations[key] = invitation
        else:
            invitation.role_id = role_id
            invitation.invited_by = invited_by
            invitation.expires_at = expires_at
        return invitation
