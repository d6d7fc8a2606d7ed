"""Shared request helpers for the hosted backend's HTTP APIs."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from studiodesk.exceptions import BackendError

logger = structlog.get_logger(__name__)

# Keys the auth service and the RPC gateway use for the human-readable message
_MESSAGE_KEYS = ("msg", "message", "error_description", "error")
_CODE_KEYS = ("error_code", "code")


def error_from_response(response: httpx.Response) -> BackendError:
    """Build a BackendError carrying the backend's raw message."""
    body: Any = None
    try:
        body = response.json()
    except ValueError:
        pass

    message = ""
    code: str | None = None
    if isinstance(body, dict):
        for key in _MESSAGE_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value:
                message = value
                break
        for key in _CODE_KEYS:
            value = body.get(key)
            if value is not None:
                code = str(value)
                break
    if not message:
        message = response.text.strip() or f"Error {response.status_code}"
    return BackendError(message, status_code=response.status_code, code=code)


async def send(
    http: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
    json: Any = None,
) -> httpx.Response:
    """Send one request; transport failures and non-2xx answers raise BackendError."""
    try:
        response = await http.request(method, path, headers=headers, params=params, json=json)
    except httpx.TimeoutException as exc:
        logger.warning("backend_timeout", method=method, path=path)
        raise BackendError("Request timed out", status_code=504) from exc
    except httpx.HTTPError as exc:
        logger.warning("backend_unreachable", method=method, path=path, error=str(exc))
        raise BackendError(str(exc) or "Network error", status_code=503) from exc

    if not response.is_success:
        error = error_from_response(response)
        logger.debug(
            "backend_error_response",
            method=method,
            path=path,
            status=response.status_code,
            code=error.code,
        )
        raise error
    return response


def json_or_none(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    return response.json()
