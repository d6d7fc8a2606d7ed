"""Data for the team page: roster, pending invitations and assignable roles."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from studiodesk.exceptions import StudioDeskError
from studiodesk.team import api
from studiodesk.types import TenantRole

if TYPE_CHECKING:
    from studiodesk.backend.client import BackendClient
    from studiodesk.models.domain import Employee, PendingInvitation, RoleOption

logger = structlog.get_logger(__name__)


@dataclass
class TeamOverview:
    employees: list[Employee] = field(default_factory=list)
    pending: list[PendingInvitation] = field(default_factory=list)
    roles: list[RoleOption] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)  # sections that could not be loaded

    @property
    def default_role_id(self) -> str:
        """Role preselected in the invite dialog."""
        for role in self.roles:
            if role.name == TenantRole.EMPLOYEE:
                return role.id
        return ""


async def load_team_overview(client: BackendClient) -> TeamOverview:
    """Fetch the three sections concurrently; one failing section leaves the others intact."""
    employees, pending, roles = await asyncio.gather(
        api.get_tenant_employees(client),
        api.get_pending_invitations(client),
        api.list_roles(client),
        return_exceptions=True,
    )

    overview = TeamOverview()
    for name, result in (("employees", employees), ("pending", pending), ("roles", roles)):
        if isinstance(result, StudioDeskError):
            logger.warning("team_section_failed", section=name, error=result.message)
            overview.failed.append(name)
        elif isinstance(result, BaseException):
            raise result
        else:
            setattr(overview, name, result)
    return overview
