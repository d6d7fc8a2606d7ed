"""Invite endpoint: admins add employees to their active studio."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from studiodesk.config.settings import get_settings
from studiodesk.exceptions import StudioDeskError, UpstreamError
from studiodesk.invitations.origin import resolve_origin
from studiodesk.invitations.service import InvitationService
from studiodesk.models.domain import CallerClaims
from studiodesk.web.dependencies import get_caller, get_invitation_service

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["invitations"])

INTERNAL_ERROR_MESSAGE = "Error interno"


async def _read_body(request: Request) -> dict[str, Any]:
    """Parse the JSON body; anything unreadable counts as missing fields."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@router.options("/invite-employee")
async def invite_employee_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok")


@router.post("/invite-employee")
async def invite_employee(
    request: Request,
    caller: CallerClaims = Depends(get_caller),
    service: InvitationService = Depends(get_invitation_service),
) -> dict[str, Any]:
    """Add an existing user directly or email a magic link to a new one.

    Body: ``{"email": str, "roleId": str}``. Answers
    ``{"success": true, "method": "direct" | "email"}`` or ``{"error": str}``.
    """
    body = await _read_body(request)
    origin = resolve_origin(
        request.headers.get("origin"),
        request.headers.get("referer"),
        get_settings().app_origin,
    )
    try:
        result = await service.issue(caller, _text(body.get("email")), _text(body.get("roleId")), origin)
    except StudioDeskError:
        raise
    except Exception as exc:
        logger.exception("invite_employee_failed", tenant_id=caller.tenant_id)
        raise UpstreamError(INTERNAL_ERROR_MESSAGE) from exc
    return result.model_dump(mode="json")
