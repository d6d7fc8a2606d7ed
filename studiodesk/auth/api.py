"""Thin wrappers over the backend auth API used by the auth pages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from studiodesk.backend.auth import AuthStateCallback, Subscription
    from studiodesk.backend.client import BackendClient
    from studiodesk.models.domain import AuthResponse, AuthUser, Session


async def sign_in(client: BackendClient, email: str, password: str) -> Session:
    """Sign in using email and password."""
    return await client.auth.sign_in_with_password(email, password)


def sign_in_with_google(client: BackendClient, redirect_to: str) -> str:
    """Return the Google OAuth URL; the redirect completes the sign in."""
    return client.auth.sign_in_with_oauth("google", redirect_to)


async def sign_up_with_email(client: BackendClient, email: str, password: str) -> AuthResponse:
    return await client.auth.sign_up(email, password)


async def sign_out(client: BackendClient) -> None:
    await client.auth.sign_out()


async def get_session(client: BackendClient) -> Session | None:
    return await client.auth.get_session()


def on_auth_state_change(client: BackendClient, callback: AuthStateCallback) -> Subscription:
    return client.auth.on_auth_state_change(callback)


async def verify_otp(client: BackendClient, email: str, token: str, otp_type: str) -> AuthResponse:
    return await client.auth.verify_otp(email, token, otp_type)


async def reset_password_for_email(client: BackendClient, email: str) -> None:
    await client.auth.reset_password_for_email(email)


async def update_user(client: BackendClient, attributes: dict[str, Any]) -> AuthUser:
    """Update the current user's attributes (e.g. ``{"password": ...}``)."""
    return await client.auth.update_user(attributes)


async def check_email_exists(client: BackendClient, email: str) -> bool:
    """Ask the backend whether an account already uses this email.

    Goes through a procedure because the auth service does not reveal it on
    sign up.
    """
    return bool(await client.rpc("check_email_exists", {"p_email": email}))
