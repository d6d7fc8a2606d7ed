"""Login, sign-up and password recovery workflows behind the auth pages.

Each workflow validates locally, calls the backend, and raises a
``StudioDeskError`` whose message is already translated for display.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from studiodesk.auth import api
from studiodesk.auth.errors import translate_auth_error
from studiodesk.exceptions import BackendError, StudioDeskError, ValidationError
from studiodesk.types import RecoveryStep

if TYPE_CHECKING:
    from studiodesk.backend.client import BackendClient
    from studiodesk.models.domain import AuthResponse, Session

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

PASSWORDS_DIFFER_MESSAGE = "Las contraseñas no coinciden."
EMAIL_TAKEN_MESSAGE = "Este correo electrónico ya está registrado. Intenta iniciar sesión."


def _translated(exc: StudioDeskError) -> StudioDeskError:
    message = translate_auth_error(exc)
    if isinstance(exc, BackendError):
        return BackendError(message, status_code=exc.status_code, code=exc.code)
    return type(exc)(message, exc.status_code)


def check_new_password(password: str, confirm_password: str, min_length: int = MIN_PASSWORD_LENGTH) -> None:
    """Raise ValidationError unless both entries match and meet the minimum length."""
    if password != confirm_password:
        raise ValidationError(PASSWORDS_DIFFER_MESSAGE)
    if len(password) < min_length:
        raise ValidationError(f"La contraseña debe tener al menos {min_length} caracteres.")


async def login(client: BackendClient, email: str, password: str) -> Session:
    try:
        return await api.sign_in(client, email, password)
    except StudioDeskError as exc:
        raise _translated(exc) from exc


def login_with_google(client: BackendClient, redirect_to: str) -> str:
    return api.sign_in_with_google(client, redirect_to)


async def signup(client: BackendClient, email: str, password: str, confirm_password: str) -> AuthResponse:
    """Create an account; the user must confirm the email before signing in."""
    check_new_password(password, confirm_password)
    try:
        if await api.check_email_exists(client, email):
            raise ValidationError(EMAIL_TAKEN_MESSAGE)
        result = await api.sign_up_with_email(client, email, password)
    except StudioDeskError as exc:
        raise _translated(exc) from exc
    logger.info("account_created", email=email)
    return result


class PasswordRecovery:
    """Three-step password reset: request a code, verify it, set a new password."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self.step = RecoveryStep.EMAIL
        self.email = ""

    async def request_code(self, email: str) -> None:
        if not email:
            raise ValidationError("Por favor, ingresa tu correo electrónico.")
        try:
            await api.reset_password_for_email(self._client, email)
        except StudioDeskError as exc:
            raise _translated(exc) from exc
        self.email = email
        self.step = RecoveryStep.TOKEN

    async def verify_code(self, token: str) -> None:
        if self.step is not RecoveryStep.TOKEN:
            raise ValidationError("Solicita primero un código de recuperación.")
        if not token:
            raise ValidationError("Ingresa el código que recibiste.")
        try:
            result = await api.verify_otp(self._client, self.email, token, "recovery")
        except StudioDeskError as exc:
            raise _translated(exc) from exc
        if result.session is None:
            raise ValidationError("No se pudo establecer la sesión. Intenta nuevamente.")
        self.step = RecoveryStep.PASSWORD

    async def set_password(self, new_password: str, confirm_password: str) -> None:
        if self.step is not RecoveryStep.PASSWORD:
            raise ValidationError("Verifica primero el código recibido.")
        check_new_password(new_password, confirm_password)
        try:
            await api.update_user(self._client, {"password": new_password})
        except StudioDeskError as exc:
            raise _translated(exc) from exc
        self.step = RecoveryStep.DONE
        logger.info("password_reset_completed", email=self.email)
