"""Async client for the hosted backend: auth, remote procedures, table reads, functions."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from studiodesk.backend.auth import GoTrueClient
from studiodesk.backend.http import json_or_none, send
from studiodesk.config.settings import Settings, get_settings
from studiodesk.exceptions import BackendError

logger = structlog.get_logger(__name__)


class BackendClient:
    """One user's connection to the backend.

    Data calls carry the user's access token, so the backend's row-level
    security scopes every read to the active tenant in the token claims.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=url,
            headers={"apikey": anon_key},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self.auth = GoTrueClient(self._http, anon_key)

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _bearer(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.auth.access_token()}"}

    async def rpc(self, name: str, params: dict[str, Any] | None = None) -> Any:
        """Call a database procedure and return its decoded result."""
        response = await send(
            self._http,
            "POST",
            f"/rest/v1/rpc/{name}",
            headers=self._bearer(),
            json=params or {},
        )
        return json_or_none(response)

    async def select(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Read rows visible to the current user.

        ``filters`` maps column names to equality values.
        """
        params: dict[str, str] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        response = await send(self._http, "GET", f"/rest/v1/{table}", headers=self._bearer(), params=params)
        rows = json_or_none(response)
        return rows if isinstance(rows, list) else []

    async def invoke(self, function: str, body: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        """Call a serverless function; the status and body are returned, not raised."""
        try:
            response = await self._http.post(
                f"/functions/v1/{function}",
                headers=self._bearer(),
                json=body,
            )
        except httpx.TimeoutException as exc:
            raise BackendError("Request timed out", status_code=504) from exc
        except httpx.HTTPError as exc:
            raise BackendError(str(exc) or "Network error", status_code=503) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        logger.debug("function_invoked", function=function, status=response.status_code)
        return response.status_code, payload


def create_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BackendClient:
    """Build a client from settings."""
    settings = settings or get_settings()
    return BackendClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
