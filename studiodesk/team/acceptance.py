"""Accept-invite onboarding: verify the magic-link session, load the invitation, complete the profile.

States::

    verifying_session -> loading_invitation -> error | form
    form -> submitting -> done | form (retry)
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

import structlog

from studiodesk.auth.errors import translate_auth_error
from studiodesk.config.settings import get_settings
from studiodesk.exceptions import StudioDeskError, ValidationError
from studiodesk.team import api
from studiodesk.types import AcceptanceState, AuthEvent

if TYPE_CHECKING:
    from studiodesk.backend.auth import Subscription
    from studiodesk.backend.client import BackendClient
    from studiodesk.models.domain import AcceptInviteForm, InvitationInfo, Session

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8

INVALID_LINK_MESSAGE = "El enlace de invitación no es válido."
SESSION_EXPIRED_MESSAGE = (
    "No se pudo verificar tu sesión. El link puede haber expirado. Pide una nueva invitación."
)
NOT_FOUND_MESSAGE = "Invitación no encontrada."
NO_LONGER_VALID_MESSAGE = "Esta invitación ha expirado o ya fue utilizada."
LOAD_FAILED_MESSAGE = "Error al cargar la invitación."
NAMES_REQUIRED_MESSAGE = "El nombre y el apellido son obligatorios."
PASSWORDS_DIFFER_MESSAGE = "Las contraseñas no coinciden."
PASSWORD_TOO_SHORT_MESSAGE = "La contraseña debe tener al menos 8 caracteres."


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError):
        return False
    return True


def validate_form(form: AcceptInviteForm) -> None:
    """Client-side checks run before any network call."""
    if not form.first_name.strip() or not form.last_name.strip():
        raise ValidationError(NAMES_REQUIRED_MESSAGE)
    if form.password != form.confirm_password:
        raise ValidationError(PASSWORDS_DIFFER_MESSAGE)
    if len(form.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(PASSWORD_TOO_SHORT_MESSAGE)


class AcceptInviteFlow:
    """One visit to the accept-invite page.

    ``close`` tears the flow down; responses arriving afterwards are
    discarded instead of being applied to a page nobody is looking at.
    """

    def __init__(
        self,
        client: BackendClient,
        token: str,
        *,
        session_wait_seconds: float | None = None,
    ) -> None:
        self._client = client
        self.token = token
        self._session_wait = (
            session_wait_seconds
            if session_wait_seconds is not None
            else get_settings().session_wait_seconds
        )
        self.state = AcceptanceState.VERIFYING_SESSION
        self.invitation: InvitationInfo | None = None
        self.error: str | None = None
        self.submit_error: str | None = None

        self._alive = True
        self._subscription: Subscription | None = None
        self._session_future: asyncio.Future[Session | None] | None = None
        # Completed submit steps; a retry resumes after the last one
        self._linked = False
        self._password_set = False

    @property
    def is_alive(self) -> bool:
        return self._alive

    async def start(self) -> AcceptanceState:
        """Resolve the session, then load the invitation."""
        if not _is_uuid(self.token):
            return self._fail(INVALID_LINK_MESSAGE)

        session = await self._wait_for_session()
        if not self._alive:
            return self.state
        if session is None:
            return self._fail(SESSION_EXPIRED_MESSAGE)

        self.state = AcceptanceState.LOADING_INVITATION
        try:
            invitation = await api.get_invitation_by_token(self._client, self.token)
        except StudioDeskError as exc:
            if self._alive:
                logger.warning("invitation_load_failed", error=exc.message)
                self._fail(LOAD_FAILED_MESSAGE)
            return self.state

        if not self._alive:
            return self.state
        if invitation is None:
            return self._fail(NOT_FOUND_MESSAGE)
        if not invitation.is_valid:
            return self._fail(NO_LONGER_VALID_MESSAGE)

        self.invitation = invitation
        self.state = AcceptanceState.FORM
        logger.info("invitation_loaded", tenant_name=invitation.tenant_name)
        return self.state

    async def submit(self, form: AcceptInviteForm) -> AcceptanceState:
        """Accept the invitation, set the password, refresh the claims."""
        if not self._alive or self.state is not AcceptanceState.FORM:
            return self.state

        self.submit_error = None
        try:
            validate_form(form)
        except ValidationError as exc:
            self.submit_error = exc.message
            return self.state

        self.state = AcceptanceState.SUBMITTING
        try:
            if not self._linked:
                await api.accept_invitation(
                    self._client, self.token, form.first_name.strip(), form.last_name.strip(), form.phone.strip()
                )
                self._linked = True
            if not self._password_set:
                await self._client.auth.update_user({"password": form.password})
                self._password_set = True
            # The token only carries the new tenant and role after a refresh
            await self._client.auth.refresh_session()
        except StudioDeskError as exc:
            if self._alive:
                logger.warning(
                    "invitation_submit_failed",
                    linked=self._linked,
                    password_set=self._password_set,
                    error=exc.message,
                )
                self.submit_error = translate_auth_error(exc)
                self.state = AcceptanceState.FORM
            return self.state

        if self._alive:
            self.state = AcceptanceState.DONE
            logger.info("invitation_accepted")
        return self.state

    def close(self) -> None:
        self._alive = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._session_future is not None and not self._session_future.done():
            self._session_future.set_result(None)

    async def _wait_for_session(self) -> Session | None:
        """Wait for the magic-link session; None when it does not arrive in time."""
        future: asyncio.Future[Session | None] = asyncio.get_running_loop().create_future()
        self._session_future = future

        def on_auth_event(event: AuthEvent, session: Session | None) -> None:
            if future.done():
                return
            if event is AuthEvent.SIGNED_IN or (event is AuthEvent.INITIAL_SESSION and session is not None):
                future.set_result(session)

        self._subscription = self._client.auth.on_auth_state_change(on_auth_event)
        try:
            return await asyncio.wait_for(future, timeout=self._session_wait)
        except TimeoutError:
            logger.info("invitation_session_timeout", wait_seconds=self._session_wait)
            return None
        finally:
            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None
            self._session_future = None

    def _fail(self, message: str) -> AcceptanceState:
        self.error = message
        self.state = AcceptanceState.ERROR
        return self.state
