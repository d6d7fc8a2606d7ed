"""SQLModel table models for the tables the invite endpoint writes to."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


# Every timestamp column stores an aware UTC value (TIMESTAMP WITH TIME ZONE)
TIMESTAMPTZ = DateTime(timezone=True)


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Tenant(SQLModel, table=True):
    __tablename__ = "tenants"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


class Role(SQLModel, table=True):
    __tablename__ = "roles"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    name: str = Field(unique=True)  # admin | manager | employee


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    id: str = Field(default_factory=_new_uuid, primary_key=True)  # same id as the auth user
    email: str = Field(index=True)
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


class TenantMember(SQLModel, table=True):
    __tablename__ = "tenant_members"
    __table_args__ = (UniqueConstraint("user_id", "tenant_id", name="uq_tenant_members_user_tenant"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    role_id: str = Field(foreign_key="roles.id")
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)


class TenantInvitation(SQLModel, table=True):
    __tablename__ = "tenant_invitations"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_tenant_invitations_tenant_email"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    email: str
    role_id: str = Field(foreign_key="roles.id")
    invited_by: str
    token: str = Field(default_factory=_new_uuid, unique=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=TIMESTAMPTZ)
    expires_at: datetime = Field(sa_type=TIMESTAMPTZ)
    accepted_at: datetime | None = Field(default=None, sa_type=TIMESTAMPTZ)

    @property
    def is_pending(self) -> bool:
        return self.accepted_at is None
