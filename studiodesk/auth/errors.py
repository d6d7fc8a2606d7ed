"""Translate auth service error messages into Spanish user-facing text."""

from __future__ import annotations

UNEXPECTED_ERROR_MESSAGE = "Ocurrió un error inesperado al procesar tu solicitud."

# (substrings of the lowercased raw message, translation); first match wins
_AUTH_MESSAGES: tuple[tuple[tuple[str, ...], str], ...] = (
    # Login
    (("invalid login credentials",), "Correo o contraseña incorrectos. Verifica tus datos."),
    (
        ("email not confirmed",),
        "Debes confirmar tu correo electrónico antes de iniciar sesión.",
    ),
    (("user not found",), "No hemos encontrado un usuario con este correo electrónico."),
    # OTP / recovery
    (
        ("token has expired", "invalid token"),
        "El código ingresado es incorrecto o ya ha expirado. Solicita uno nuevo.",
    ),
    (("otp expired",), "El código numérico ha expirado. Solicita uno nuevo."),
    (
        ("for security purposes",),
        "Por motivos de seguridad, espera un momento antes de solicitar otro código.",
    ),
    # Sign up
    (("user already registered",), "Este correo electrónico ya está registrado."),
    (
        ("password should be at least",),
        "La contraseña es demasiado corta. Debe tener al menos 6 caracteres.",
    ),
    # Rate limits
    (
        ("rate limit exceeded", "too many requests"),
        "Demasiados intentos. Por favor, espera unos minutos e intenta nuevamente.",
    ),
)


def translate_auth_error(error: object) -> str:
    """Return the Spanish message for a known auth error, else the raw message.

    Unmapped messages pass through unchanged so new backend errors stay
    visible; anything that is not an exception gets a generic message.
    """
    if not isinstance(error, Exception):
        return UNEXPECTED_ERROR_MESSAGE

    raw = getattr(error, "message", None) or str(error)
    lowered = raw.lower()
    for needles, translation in _AUTH_MESSAGES:
        if any(needle in lowered for needle in needles):
            return translation
    return raw
