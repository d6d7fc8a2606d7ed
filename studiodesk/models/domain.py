"""Inter-module data contracts (not persisted directly)."""

from typing import Any

from pydantic import BaseModel, Field

from studiodesk.types import InviteMethod


class AuthUser(BaseModel):
    id: str
    email: str | None = None
    app_metadata: dict[str, Any] = {}  # tenant_id, role; written server-side only
    user_metadata: dict[str, Any] = {}


class Session(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None
    user: AuthUser

    @property
    def claims(self) -> dict[str, Any]:
        return self.user.app_metadata


class AuthResponse(BaseModel):
    """Result of sign-up and OTP verification; the session is absent until confirmed."""

    user: AuthUser | None = None
    session: Session | None = None


class CallerClaims(BaseModel):
    """Verified claims of the caller of a server endpoint."""

    user_id: str
    email: str | None = None
    tenant_id: str | None = None
    role: str | None = None


class TenantSummary(BaseModel):
    id: str
    name: str
    slug: str | None = None
    created_at: str | None = None


class InvitationInfo(BaseModel):
    email: str
    role_name: str
    tenant_name: str
    is_valid: bool


class Employee(BaseModel):
    user_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role_name: str | None = None
    joined_at: str | None = None


class PendingInvitation(BaseModel):
    id: str
    email: str
    role_name: str | None = None
    created_at: str | None = None
    expires_at: str | None = None


class RoleOption(BaseModel):
    id: str
    name: str


class InviteResult(BaseModel):
    success: bool = True
    method: InviteMethod


class AcceptInviteForm(BaseModel):
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    password: str = Field(default="", repr=False)
    confirm_password: str = Field(default="", repr=False)
