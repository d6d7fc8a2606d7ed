"""Tenant role resolution from session claims."""

from __future__ import annotations

from typing import TYPE_CHECKING

from studiodesk.types import TenantRole

if TYPE_CHECKING:
    from studiodesk.models.domain import Session

ROLE_LABELS: dict[str, str] = {
    TenantRole.ADMIN: "Administrador",
    TenantRole.MANAGER: "Manager",
    TenantRole.EMPLOYEE: "Empleado",
    "viewer": "Empleado",  # retired name still present in unrefreshed tokens
}


def resolve_role(session: Session | None) -> str:
    """Return the ``role`` claim of the active tenant, ``employee`` when absent.

    Recomputed on every call; the session object is the only cache.
    """
    if session is None:
        return TenantRole.EMPLOYEE
    role = session.user.app_metadata.get("role")
    if not isinstance(role, str) or not role:
        return TenantRole.EMPLOYEE
    return role


def role_label(role: str) -> str:
    """Human-readable Spanish label; unknown roles are shown as-is."""
    return ROLE_LABELS.get(role, role)


def is_admin(session: Session | None) -> bool:
    return resolve_role(session) == TenantRole.ADMIN


def active_tenant_id(session: Session | None) -> str | None:
    if session is None:
        return None
    tenant_id = session.user.app_metadata.get("tenant_id")
    return tenant_id if isinstance(tenant_id, str) and tenant_id else None
