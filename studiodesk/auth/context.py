"""Process-wide auth state: initialized once, updated from backend auth events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from studiodesk.exceptions import StudioDeskError

if TYPE_CHECKING:
    from studiodesk.backend.auth import GoTrueClient, Subscription
    from studiodesk.models.domain import AuthUser, Session
    from studiodesk.types import AuthEvent

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AuthState:
    """Immutable snapshot of the current authentication state."""

    session: Session | None = None
    user: AuthUser | None = None
    is_loading: bool = True


class AuthProvider:
    """Owns the auth state for one scope (an app process, a test).

    ``start`` loads the current session and subscribes to auth events;
    ``stop`` unsubscribes and makes any in-flight load a no-op.
    """

    def __init__(self, auth: GoTrueClient) -> None:
        self._auth = auth
        self._state = AuthState()
        self._subscription: Subscription | None = None
        self._alive = False

    @property
    def state(self) -> AuthState:
        return self._state

    async def start(self) -> AuthState:
        self._alive = True
        self._subscription = self._auth.on_auth_state_change(self._on_auth_event)
        try:
            session = await self._auth.get_session()
        except StudioDeskError as exc:
            # No usable session is a normal signed-out start
            logger.warning("initial_session_failed", error=exc.message)
            session = None
        if self._alive:
            self._state = AuthState(
                session=session,
                user=session.user if session else None,
                is_loading=False,
            )
        return self._state

    def stop(self) -> None:
        self._alive = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_auth_event(self, event: AuthEvent, session: Session | None) -> None:
        if not self._alive:
            return
        self._state = AuthState(
            session=session,
            user=session.user if session else None,
            is_loading=self._state.is_loading,
        )
        logger.debug("auth_state_changed", auth_event=event.value, signed_in=session is not None)


_provider: AuthProvider | None = None


async def init_auth(auth: GoTrueClient) -> AuthState:
    """Create and start the process-wide provider (replacing any previous one)."""
    global _provider  # noqa: PLW0603
    if _provider is not None:
        _provider.stop()
    _provider = AuthProvider(auth)
    return await _provider.start()


def use_auth() -> AuthState:
    """Read the current auth state; loading until ``init_auth`` completes."""
    if _provider is None:
        return AuthState()
    return _provider.state


def shutdown_auth() -> None:
    global _provider  # noqa: PLW0603
    if _provider is not None:
        _provider.stop()
        _provider = None
