"""Enums and type aliases for StudioDesk."""

from enum import StrEnum


class TenantRole(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class InviteMethod(StrEnum):
    DIRECT = "direct"
    EMAIL = "email"


class AuthEvent(StrEnum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class AcceptanceState(StrEnum):
    VERIFYING_SESSION = "verifying_session"
    LOADING_INVITATION = "loading_invitation"
    ERROR = "error"
    FORM = "form"
    SUBMITTING = "submitting"
    DONE = "done"


class RecoveryStep(StrEnum):
    EMAIL = "email"
    TOKEN = "token"
    PASSWORD = "password"
    DONE = "done"
