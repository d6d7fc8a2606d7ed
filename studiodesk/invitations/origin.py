"""Origin of the dashboard that requested an invitation, for the accept link."""

from __future__ import annotations

from urllib.parse import urlencode


def resolve_origin(origin: str | None, referer: str | None, default: str) -> str:
    """``Origin`` header, else scheme and host of ``Referer``, else ``default``."""
    if origin:
        return origin.rstrip("/")
    if referer:
        # "https://app.example.com/team?x=1" -> "https://app.example.com"
        return "/".join(referer.split("/")[:3])
    return default.rstrip("/")


def accept_invite_url(origin: str, token: str) -> str:
    return f"{origin}/accept-invite?{urlencode({'token': token})}"
