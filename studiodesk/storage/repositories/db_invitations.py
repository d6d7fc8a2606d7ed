"""Database-backed invitation store using SQLModel + AsyncSession."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from studiodesk.exceptions import ConflictError, UpstreamError
from studiodesk.models.database import Profile, TenantInvitation, TenantMember, _utc_now
from studiodesk.storage.repositories.invitations import ALREADY_MEMBER_MESSAGE

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


class DatabaseInvitationStore:
    """PostgreSQL-backed invitation store.

    Connects with privileged credentials, so tenant scoping is enforced by the
    caller rather than by row-level security.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def find_profile_id(self, email: str) -> str | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(Profile.id).where(col(Profile.email) == email).limit(1)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def is_member(self, user_id: str, tenant_id: str) -> bool:
        async with AsyncSession(self._engine) as session:
            stmt = select(TenantMember.id).where(
                col(TenantMember.user_id) == user_id,
                col(TenantMember.tenant_id) == tenant_id,
            )
            result = await session.execute(stmt)
            return result.scalars().first() is not None

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
        async with AsyncSession(self._engine) as session:
            try:
                session.add(TenantMember(user_id=user_id, tenant_id=tenant_id, role_id=role_id))
                await session.flush()  # surface the unique violation before touching invitations

                invitation = await self._get_for_update(session, tenant_id, email)
                if invitation is None:
                    invitation = TenantInvitation(
                        tenant_id=tenant_id,
                        email=email,
                        role_id=role_id,
                        invited_by=invited_by,
                        expires_at=expires_at,
                    )
                else:
                    invitation.role_id = role_id
                    invitation.invited_by = invited_by
                    invitation.expires_at = expires_at
                invitation.accepted_at = _utc_now()
                session.add(invitation)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if not await self.is_member(user_id, tenant_id):
                    # Foreign-key failure (unknown role or tenant) or an invitation race
                    logger.warning("member_insert_failed", tenant_id=tenant_id, error=str(exc.orig))
                    raise UpstreamError(str(exc.orig)) from exc
                logger.info("member_insert_conflict", user_id=user_id, tenant_id=tenant_id)
                raise ConflictError(ALREADY_MEMBER_MESSAGE) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.warning("member_insert_failed", tenant_id=tenant_id, error=str(exc))
                raise UpstreamError(str(exc)) from exc

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
        token = str(uuid.uuid4())
        # A concurrent insert of the same (tenant_id, email) loses the unique
        # race; the second attempt finds the row and overwrites it.
        for attempt in (1, 2):
            async with AsyncSession(self._engine) as session:
                try:
                    invitation = await self._get_for_update(session, tenant_id, email)
                    if invitation is None:
                        invitation = TenantInvitation(tenant_id=tenant_id, email=email)
                    invitation.role_id = role_id
                    invitation.invited_by = invited_by
                    invitation.token = token
                    invitation.expires_at = expires_at
                    invitation.accepted_at = None
                    session.add(invitation)
                    await session.commit()
                    logger.info("invitation_upserted", tenant_id=tenant_id, email=email)
                    return token
                except IntegrityError as exc:
                    await session.rollback()
                    if attempt == 2:
                        raise UpstreamError("Error al crear la invitación") from exc
                    logger.info("invitation_upsert_retry", tenant_id=tenant_id, email=email)
                except SQLAlchemyError as exc:
                    await session.rollback()
                    logger.warning("invitation_upsert_failed", tenant_id=tenant_id, error=str(exc))
                    raise UpstreamError(str(exc)) from exc
        raise UpstreamError("Error al crear la invitación")

    async def get_invitation(self, tenant_id: str, email: str) -> TenantInvitation | None:
        async with AsyncSession(self._engine) as session:
            return await self._get_for_update(session, tenant_id, email)

    async def _get_for_update(
        self, session: AsyncSession, tenant_id: str, email: str
    ) -> TenantInvitation | None:
        stmt = select(TenantInvitation).where(
            col(TenantInvitation.tenant_id) == tenant_id,
            col(TenantInvitation.email) == email,
        )
        if self._engine.dialect.name == "postgresql":
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()
