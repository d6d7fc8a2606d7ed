"""Client for the hosted auth service: sessions, credentials and auth-state events."""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from studiodesk.backend.http import send
from studiodesk.exceptions import BackendError, SessionError
from studiodesk.models.domain import AuthResponse, AuthUser, Session
from studiodesk.types import AuthEvent

logger = structlog.get_logger(__name__)

AuthStateCallback = Callable[[AuthEvent, Session | None], None]

# Refresh slightly before the token actually expires
_EXPIRY_MARGIN_SECONDS = 30

NO_SESSION_MESSAGE = "Auth session missing!"


@dataclass
class Subscription:
    """Handle returned by ``on_auth_state_change``; call ``unsubscribe`` on teardown."""

    id: str
    callback: AuthStateCallback
    _unsubscribe: Callable[[str], None] = field(repr=False)

    def unsubscribe(self) -> None:
        self._unsubscribe(self.id)


def _parse_session(data: dict[str, Any]) -> Session:
    if data.get("expires_at") is None and data.get("expires_in") is not None:
        data = {**data, "expires_at": int(time.time()) + int(data["expires_in"])}
    return Session.model_validate(data)


class GoTrueClient:
    """Auth API for one browser-equivalent client.

    Holds the current session and notifies subscribers of every change.
    """

    def __init__(self, http: httpx.AsyncClient, anon_key: str) -> None:
        self._http = http
        self._anon_key = anon_key
        self._session: Session | None = None
        self._listeners: dict[str, AuthStateCallback] = {}

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def current_session(self) -> Session | None:
        return self._session

    def access_token(self) -> str:
        """Bearer token for data calls: the user's token, or the anon key when signed out."""
        return self._session.access_token if self._session else self._anon_key

    async def get_session(self) -> Session | None:
        """Return the current session, refreshing it first when it is about to expire."""
        session = self._session
        if session is None:
            return None
        if session.expires_at is not None and session.expires_at - _EXPIRY_MARGIN_SECONDS <= time.time():
            return await self.refresh_session()
        return session

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        """Adopt tokens delivered out-of-band (magic link or OAuth redirect)."""
        user = await self.get_user(access_token)
        session = Session(access_token=access_token, refresh_token=refresh_token, user=user)
        self._save(session, AuthEvent.SIGNED_IN)
        return session

    def on_auth_state_change(self, callback: AuthStateCallback) -> Subscription:
        """Subscribe to auth events; the subscriber first receives INITIAL_SESSION."""
        sub_id = str(uuid.uuid4())
        self._listeners[sub_id] = callback
        subscription = Subscription(id=sub_id, callback=callback, _unsubscribe=self._remove_listener)
        self._notify(callback, AuthEvent.INITIAL_SESSION, self._session)
        return subscription

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        response = await send(
            self._http,
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = _parse_session(response.json())
        self._save(session, AuthEvent.SIGNED_IN)
        logger.info("signed_in", user_id=session.user.id)
        return session

    def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        """Return the provider authorize URL the browser must be sent to."""
        base = str(self._http.base_url).rstrip("/")
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"{base}/auth/v1/authorize?{query}"

    async def sign_up(self, email: str, password: str, redirect_to: str | None = None) -> AuthResponse:
        params = {"redirect_to": redirect_to} if redirect_to else None
        response = await send(
            self._http,
            "POST",
            "/auth/v1/signup",
            params=params,
            json={"email": email, "password": password},
        )
        data = response.json()
        if "access_token" in data:
            session = _parse_session(data)
            self._save(session, AuthEvent.SIGNED_IN)
            return AuthResponse(user=session.user, session=session)
        # Email confirmation pending: only the user comes back
        return AuthResponse(user=AuthUser.model_validate(data.get("user", data)))

    async def sign_out(self) -> None:
        session = self._session
        if session is not None:
            try:
                await send(
                    self._http,
                    "POST",
                    "/auth/v1/logout",
                    headers={"Authorization": f"Bearer {session.access_token}"},
                )
            except BackendError as exc:
                # An already-revoked session is still a successful sign out
                if exc.status_code not in (401, 403, 404):
                    raise
        self._save(None, AuthEvent.SIGNED_OUT)
        logger.info("signed_out")

    async def refresh_session(self) -> Session:
        """Exchange the refresh token for a new access token with current claims."""
        if self._session is None:
            raise SessionError(NO_SESSION_MESSAGE)
        response = await send(
            self._http,
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        session = _parse_session(response.json())
        self._save(session, AuthEvent.TOKEN_REFRESHED)
        logger.debug("session_refreshed", user_id=session.user.id)
        return session

    async def get_user(self, access_token: str | None = None) -> AuthUser:
        token = access_token or (self._session.access_token if self._session else None)
        if not token:
            raise SessionError(NO_SESSION_MESSAGE)
        response = await send(
            self._http,
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {token}"},
        )
        return AuthUser.model_validate(response.json())

    async def update_user(self, attributes: dict[str, Any]) -> AuthUser:
        """Update the signed-in user's attributes (password, email, metadata)."""
        if self._session is None:
            raise SessionError(NO_SESSION_MESSAGE)
        response = await send(
            self._http,
            "PUT",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {self._session.access_token}"},
            json=attributes,
        )
        user = AuthUser.model_validate(response.json())
        self._save(self._session.model_copy(update={"user": user}), AuthEvent.USER_UPDATED)
        return user

    async def verify_otp(self, email: str, token: str, otp_type: str) -> AuthResponse:
        response = await send(
            self._http,
            "POST",
            "/auth/v1/verify",
            json={"email": email, "token": token, "type": otp_type},
        )
        data = response.json()
        if "access_token" not in data:
            return AuthResponse(user=AuthUser.model_validate(data["user"]) if data.get("user") else None)
        session = _parse_session(data)
        event = AuthEvent.PASSWORD_RECOVERY if otp_type == "recovery" else AuthEvent.SIGNED_IN
        self._save(session, event)
        return AuthResponse(user=session.user, session=session)

    async def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await send(self._http, "POST", "/auth/v1/recover", params=params, json={"email": email})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _save(self, session: Session | None, event: AuthEvent) -> None:
        self._session = session
        for callback in list(self._listeners.values()):
            self._notify(callback, event, session)

    def _notify(self, callback: AuthStateCallback, event: AuthEvent, session: Session | None) -> None:
        try:
            callback(event, session)
        except Exception:
            # A broken subscriber must not undo a completed sign in
            logger.exception("auth_listener_failed", auth_event=event.value)

    def _remove_listener(self, sub_id: str) -> None:
        self._listeners.pop(sub_id, None)


class GoTrueAdmin:
    """Privileged auth operations, authenticated with the service role key."""

    def __init__(self, http: httpx.AsyncClient, service_role_key: str) -> None:
        self._http = http
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
        }

    async def invite_user_by_email(self, email: str, redirect_to: str | None = None) -> None:
        """Create the user if needed and send the magic-link invitation email."""
        params = {"redirect_to": redirect_to} if redirect_to else None
        await send(
            self._http,
            "POST",
            "/auth/v1/invite",
            headers=self._headers,
            params=params,
            json={"email": email},
        )
