"""Dashboard header data: active studio name and the user's display name."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from studiodesk.auth.roles import active_tenant_id, is_admin, resolve_role, role_label

if TYPE_CHECKING:
    from studiodesk.backend.client import BackendClient
    from studiodesk.models.domain import Session

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DashboardHeader:
    needs_onboarding: bool  # no tenant claim yet: show "create your studio"
    tenant_name: str = ""
    display_name: str = ""
    role_label: str = ""
    is_admin: bool = False


def display_name(first_name: str | None, last_name: str | None, email: str | None) -> str:
    name = " ".join(part for part in (first_name, last_name) if part)
    if name:
        return name
    if email:
        return email.split("@")[0]
    return "Admin"


async def load_header(client: BackendClient, session: Session) -> DashboardHeader:
    """Load what the layout shows above every dashboard page.

    Row-level security already scopes ``tenants`` to the active studio.
    """
    if active_tenant_id(session) is None:
        return DashboardHeader(needs_onboarding=True)

    tenants, profiles = await asyncio.gather(
        client.select("tenants", "name", limit=1),
        client.select("profiles", "first_name,last_name", filters={"id": session.user.id}, limit=1),
    )
    profile = profiles[0] if profiles else {}
    role = resolve_role(session)
    return DashboardHeader(
        needs_onboarding=False,
        tenant_name=tenants[0].get("name", "") if tenants else "",
        display_name=display_name(profile.get("first_name"), profile.get("last_name"), session.user.email),
        role_label=role_label(role),
        is_admin=is_admin(session),
    )
