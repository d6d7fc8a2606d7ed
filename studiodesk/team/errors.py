"""Spanish messages for invite endpoint and invitation email errors."""

from __future__ import annotations

GENERIC_INVITATION_ERROR = "Ocurrió un error inesperado. Intenta de nuevo."

ERROR_MAP: dict[str, str] = {
    # Auth service, invitation email
    "A user with this email address has already been registered": (
        "Ya existe una cuenta con este correo electrónico."
    ),
    "User already registered": "Ya existe una cuenta con este correo electrónico.",
    "Email rate limit exceeded": (
        "Se han enviado demasiadas invitaciones. Intenta de nuevo más tarde."
    ),
    "Unable to validate email address: invalid format": (
        "El formato del correo electrónico no es válido."
    ),
    "Email link is invalid or has expired": "El enlace de invitación no es válido o ha expirado.",
    "Signup is disabled": "El registro de nuevos usuarios está desactivado.",
    "Email signups are disabled": "El registro por correo está desactivado.",
    # Invite endpoint, authentication
    "Missing Authorization header": "Error de autenticación. Vuelve a iniciar sesión.",
    "Unauthorized: invalid session": "Tu sesión no es válida. Vuelve a iniciar sesión.",
    # Invite endpoint, permissions
    "Forbidden: solo los admins pueden invitar empleados": (
        "Solo los administradores pueden invitar miembros al equipo."
    ),
    # Invite endpoint, validation
    "Se requiere email y roleId": "El correo y el rol son obligatorios.",
    "Este usuario ya es miembro del estudio": "Este usuario ya pertenece a este estudio.",
    # Invite endpoint, storage and internal
    "Error al crear la invitación": "No se pudo crear la invitación. Intenta de nuevo.",
    "Error interno": "Ocurrió un error interno. Intenta de nuevo.",
}


def translate_invitation_error(message: str) -> str:
    """Exact match first, then case-insensitive containment, else a generic message."""
    if message in ERROR_MAP:
        return ERROR_MAP[message]

    lowered = message.lower()
    for key, translation in ERROR_MAP.items():
        if key.lower() in lowered:
            return translation

    return GENERIC_INVITATION_ERROR
