"""Team management calls: invitations, onboarding and the employee roster."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from studiodesk.exceptions import BackendError, SessionError
from studiodesk.models.domain import (
    Employee,
    InvitationInfo,
    InviteResult,
    PendingInvitation,
    RoleOption,
)
from studiodesk.team.errors import translate_invitation_error
from studiodesk.types import InviteMethod

if TYPE_CHECKING:
    from studiodesk.backend.client import BackendClient

logger = structlog.get_logger(__name__)

INVITE_FUNCTION = "invite-employee"


async def invite_member(client: BackendClient, email: str, role_id: str) -> InviteResult:
    """Invite someone to the active studio through the invite endpoint.

    ``method`` is ``email`` when a magic link was sent to a new user and
    ``direct`` when an existing user was added straight away.

    Raises BackendError with a translated message on failure.
    """
    session = await client.auth.get_session()
    if session is None:
        raise SessionError("No hay sesión activa. Inicia sesión e intenta de nuevo.")

    status, body = await client.invoke(INVITE_FUNCTION, {"email": email, "roleId": role_id})
    if status >= 400 or body.get("error"):
        raw = body.get("error") or f"Error {status}"
        logger.info("invite_member_failed", status=status, error=raw)
        raise BackendError(translate_invitation_error(str(raw)), status_code=status)

    raw_method = body.get("method") or InviteMethod.EMAIL
    try:
        method = InviteMethod(raw_method)
    except ValueError:
        # The member was still invited; only the reported channel is unknown
        logger.warning("invite_member_unknown_method", method=raw_method)
        method = InviteMethod.EMAIL
    logger.info("invite_member_sent", email=email, method=method)
    return InviteResult(method=method)


async def get_invitation_by_token(client: BackendClient, token: str) -> InvitationInfo | None:
    """Fetch display data for an invitation token, or None when unknown."""
    rows = await client.rpc("get_invitation_by_token", {"p_token": token})
    if isinstance(rows, list):
        rows = rows[0] if rows else None
    return InvitationInfo.model_validate(rows) if rows else None


async def accept_invitation(
    client: BackendClient, token: str, first_name: str, last_name: str, phone: str = ""
) -> None:
    """Link the signed-in user to the invitation's studio and fill in the profile.

    The procedure also marks the invitation accepted and writes the new
    tenant and role into the user's claims, visible after a session refresh.
    """
    await client.rpc(
        "accept_invitation",
        {
            "p_token": token,
            "p_first_name": first_name,
            "p_last_name": last_name,
            "p_phone": phone,
        },
    )


async def get_pending_invitations(client: BackendClient) -> list[PendingInvitation]:
    """Invitations of the active studio that are neither accepted nor expired."""
    rows = await client.rpc("get_pending_invitations")
    return [PendingInvitation.model_validate(row) for row in rows or []]


async def get_tenant_employees(client: BackendClient) -> list[Employee]:
    rows = await client.rpc("get_tenant_employees")
    return [Employee.model_validate(row) for row in rows or []]


async def list_roles(client: BackendClient) -> list[RoleOption]:
    rows = await client.select("roles", "id,name", order="name")
    return [RoleOption.model_validate(row) for row in rows]
