"""Remote procedures for the studios (tenants) a user belongs to."""

from __future__ import annotations

from typing import TYPE_CHECKING

from studiodesk.models.domain import TenantSummary

if TYPE_CHECKING:
    from studiodesk.backend.client import BackendClient


async def get_my_tenants(client: BackendClient) -> list[TenantSummary]:
    """Fetch all studios the authenticated user belongs to."""
    rows = await client.rpc("get_my_tenants")
    return [TenantSummary.model_validate(row) for row in rows or []]


async def switch_active_tenant(client: BackendClient, tenant_id: str) -> None:
    """Point the user's ``tenant_id`` claim at another studio.

    The backend rejects tenants the user does not belong to. The change only
    reaches the token after a session refresh.
    """
    await client.rpc("switch_active_tenant", {"p_tenant_id": tenant_id})


async def create_new_tenant_with_admin(
    client: BackendClient, tenant_name: str, first_name: str = "", last_name: str = ""
) -> None:
    """Create a studio with the caller as its admin and make it the active tenant."""
    await client.rpc(
        "create_new_tenant_with_admin",
        {"p_tenant_name": tenant_name, "p_first_name": first_name, "p_last_name": last_name},
    )
