"""Studio switcher: list, switch and create tenants, keeping token claims in sync."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from studiodesk.auth.roles import active_tenant_id
from studiodesk.exceptions import StudioDeskError, ValidationError
from studiodesk.tenants import api

if TYPE_CHECKING:
    from studiodesk.backend.client import BackendClient
    from studiodesk.models.domain import Session, TenantSummary

logger = structlog.get_logger(__name__)


class TenantSwitcher:
    """Every server-side claim change is followed by a session refresh.

    Until that refresh completes the token still names the previous tenant,
    so callers must only issue tenant-scoped reads with the returned session.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self.tenants: list[TenantSummary] = []
        self.is_switching = False

    async def load(self) -> list[TenantSummary]:
        try:
            self.tenants = await api.get_my_tenants(self._client)
        except StudioDeskError as exc:
            # A user without any studio yet has nothing to list
            logger.warning("tenant_list_failed", error=exc.message)
            self.tenants = []
        return self.tenants

    async def switch(self, tenant_id: str) -> Session:
        """Switch the active studio and return the refreshed session."""
        self.is_switching = True
        try:
            await api.switch_active_tenant(self._client, tenant_id)
            session = await self._client.auth.refresh_session()
        finally:
            self.is_switching = False
        logger.info("tenant_switched", tenant_id=tenant_id, claims_tenant_id=active_tenant_id(session))
        return session

    async def create_studio(self, name: str, first_name: str = "", last_name: str = "") -> Session:
        """Create a studio owned by the current user and return the refreshed session."""
        name = name.strip()
        if not name:
            raise ValidationError("El nombre del estudio es obligatorio.")
        await api.create_new_tenant_with_admin(self._client, name, first_name, last_name)
        session = await self._client.auth.refresh_session()
        logger.info("studio_created", name=name, tenant_id=active_tenant_id(session))
        return session
