"""Shared test fixtures."""

from __future__ import annotations

import json
import time
import uuid
from typing import Any

import httpx
import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from studiodesk.backend.client import BackendClient
from studiodesk.config.settings import get_settings
from studiodesk.exceptions import UpstreamError
from studiodesk.storage.database import init_db
from studiodesk.storage.repositories.invitations import InMemoryInvitationStore
from studiodesk.web import dependencies

JWT_SECRET = "test-jwt-secret-with-at-least-32-characters"
BACKEND_URL = "http://backend.test"
ANON_KEY = "anon-key"


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch):
    """Pin settings to test values and reset every settings-derived cache."""
    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("SUPABASE_URL", BACKEND_URL)
    monkeypatch.setenv("SUPABASE_ANON_KEY", ANON_KEY)
    monkeypatch.setenv("APP_ORIGIN", "http://dashboard.test")
    monkeypatch.setenv("USE_DATABASE", "false")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    get_settings.cache_clear()
    dependencies.get_invitation_store.cache_clear()
    dependencies.get_invitation_mailer.cache_clear()
    yield
    get_settings.cache_clear()
    dependencies.get_invitation_store.cache_clear()
    dependencies.get_invitation_mailer.cache_clear()


@pytest.fixture()
def make_token():
    """Mint access tokens shaped like the ones the hosted backend issues."""

    def _make(
        sub: str = "user-1",
        *,
        tenant_id: str | None = "tenant-1",
        role: str | None = "admin",
        email: str = "admin@studio.test",
        expires_in: int = 3600,
        secret: str = JWT_SECRET,
        audience: str = "authenticated",
    ) -> str:
        app_metadata: dict[str, Any] = {}
        if tenant_id is not None:
            app_metadata["tenant_id"] = tenant_id
        if role is not None:
            app_metadata["role"] = role
        payload = {
            "sub": sub,
            "email": email,
            "aud": audience,
            "exp": int(time.time()) + expires_in,
            "app_metadata": app_metadata,
        }
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


class RecordingMailer:
    """Keeps the invitations it was asked to send; can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail_with: str | None = None

    async def send_invitation(self, email: str, redirect_to: str) -> None:
        if self.fail_with is not None:
            raise UpstreamError(self.fail_with)
        self.sent.append((email, redirect_to))


@pytest.fixture()
def invitation_store() -> InMemoryInvitationStore:
    return InMemoryInvitationStore()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def app(invitation_store, mailer):
    """Create a fresh app instance wired to the in-memory store and recording mailer."""
    from studiodesk.web.app import create_app

    application = create_app()
    application.dependency_overrides[dependencies.get_invitation_store] = lambda: invitation_store
    application.dependency_overrides[dependencies.get_invitation_mailer] = lambda: mailer
    return application


@pytest.fixture()
async def api_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


# ----------------------------------------------------------------------
# In-process stand-in for the hosted backend (auth, RPC, tables, functions)
# ----------------------------------------------------------------------


def _reply(status: int, body: Any = None) -> httpx.Response:
    if body is None:
        return httpx.Response(status)
    return httpx.Response(status, json=body)


class FakeBackend:
    """Answers the HTTP calls BackendClient makes, backed by plain dicts.

    Claims live on the user record, so a procedure that changes them is only
    visible to the client after it refreshes its session.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}  # id -> user
        self.tenants: dict[str, dict[str, Any]] = {}  # id -> tenant row
        self.memberships: dict[str, dict[str, str]] = {}  # user id -> {tenant id: role}
        self.profiles: dict[str, dict[str, Any]] = {}  # user id -> profile row
        self.invitations: dict[str, dict[str, Any]] = {}  # token -> invitation
        self.roles: list[dict[str, str]] = [
            {"id": "role-admin", "name": "admin"},
            {"id": "role-employee", "name": "employee"},
            {"id": "role-manager", "name": "manager"},
        ]
        self.employees: list[dict[str, Any]] = []
        self.pending: list[dict[str, Any]] = []
        self.otp_codes: dict[str, str] = {}  # email -> code
        self.function_reply: tuple[int, Any] = (200, {"success": True, "method": "email"})
        self.failures: dict[str, tuple[int, Any]] = {}  # path -> forced reply
        self.calls: list[tuple[str, str, Any]] = []
        self._access: dict[str, str] = {}  # access token -> user id
        self._refresh: dict[str, str] = {}  # refresh token -> user id

    # -- seeding -------------------------------------------------------

    def add_user(self, email: str, password: str = "secret123", user_id: str | None = None) -> dict[str, Any]:
        user = {
            "id": user_id or str(uuid.uuid4()),
            "email": email,
            "password": password,
            "app_metadata": {},
        }
        self.users[user["id"]] = user
        return user

    def add_tenant(self, name: str, tenant_id: str | None = None) -> str:
        tenant_id = tenant_id or str(uuid.uuid4())
        slug = name.lower().replace(" ", "-")
        self.tenants[tenant_id] = {"id": tenant_id, "name": name, "slug": slug, "created_at": "2026-01-01T00:00:00Z"}
        return tenant_id

    def add_membership(self, user_id: str, tenant_id: str, role: str = "employee", *, active: bool = False) -> None:
        self.memberships.setdefault(user_id, {})[tenant_id] = role
        if active:
            self.users[user_id]["app_metadata"] = {"tenant_id": tenant_id, "role": role}

    def add_invitation(
        self,
        tenant_id: str,
        email: str,
        role: str = "employee",
        *,
        token: str | None = None,
        is_valid: bool = True,
    ) -> str:
        token = token or str(uuid.uuid4())
        self.invitations[token] = {
            "tenant_id": tenant_id,
            "email": email,
            "role": role,
            "is_valid": is_valid,
        }
        return token

    def fail(self, path: str, status: int, body: Any) -> None:
        self.failures[path] = (status, body)

    def paths(self) -> list[str]:
        return [path for _, path, _ in self.calls]

    # -- transport -----------------------------------------------------

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))
        if path in self.failures:
            return _reply(*self.failures[path])

        caller = self._caller(request)
        if path.startswith("/auth/v1/"):
            return self._auth(request, path.removeprefix("/auth/v1/"), body, caller)
        if path.startswith("/rest/v1/rpc/"):
            return self._rpc(path.removeprefix("/rest/v1/rpc/"), body or {}, caller)
        if path.startswith("/rest/v1/"):
            return self._select(path.removeprefix("/rest/v1/"), request.url.params, caller)
        if path.startswith("/functions/v1/"):
            return _reply(*self.function_reply)
        return _reply(404, {"message": "not found"})

    def _caller(self, request: httpx.Request) -> dict[str, Any] | None:
        header = request.headers.get("authorization", "")
        token = header.removeprefix("Bearer ").strip()
        user_id = self._access.get(token)
        return self.users.get(user_id) if user_id else None

    def _user_json(self, user: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": user["id"],
            "email": user["email"],
            "app_metadata": dict(user["app_metadata"]),
            "user_metadata": {},
        }

    def _session_json(self, user: dict[str, Any]) -> dict[str, Any]:
        access, refresh = f"access-{uuid.uuid4()}", f"refresh-{uuid.uuid4()}"
        self._access[access] = user["id"]
        self._refresh[refresh] = user["id"]
        return {
            "access_token": access,
            "refresh_token": refresh,
            "token_type": "bearer",
            "expires_in": 3600,
            "user": self._user_json(user),
        }

    def _by_email(self, email: str) -> dict[str, Any] | None:
        for user in self.users.values():
            if user["email"] == email:
                return user
        return None

    # -- auth ----------------------------------------------------------

    def _auth(
        self, request: httpx.Request, route: str, body: Any, caller: dict[str, Any] | None
    ) -> httpx.Response:
        if route == "token":
            grant = request.url.params.get("grant_type")
            if grant == "password":
                user = self._by_email(body["email"])
                if user is None or user["password"] != body["password"]:
                    return _reply(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
                return _reply(200, self._session_json(user))
            user_id = self._refresh.pop(body.get("refresh_token", ""), None)
            if user_id is None:
                return _reply(400, {"error": "invalid_grant", "error_description": "Invalid Refresh Token"})
            return _reply(200, self._session_json(self.users[user_id]))

        if route == "user":
            if caller is None:
                return _reply(401, {"msg": "invalid JWT"})
            if request.method == "PUT":
                if "password" in body:
                    caller["password"] = body["password"]
            return _reply(200, self._user_json(caller))

        if route == "signup":
            if self._by_email(body["email"]) is not None:
                return _reply(422, {"code": 422, "msg": "User already registered"})
            user = self.add_user(body["email"], body["password"])
            return _reply(200, self._user_json(user))

        if route == "logout":
            return _reply(204)

        if route == "recover":
            self.otp_codes.setdefault(body["email"], "123456")
            return _reply(200, {})

        if route == "verify":
            user = self._by_email(body["email"])
            if user is None or self.otp_codes.get(body["email"]) != body["token"]:
                return _reply(403, {"code": 403, "msg": "Token has expired or is invalid"})
            return _reply(200, self._session_json(user))

        if route == "invite":
            user = self._by_email(body["email"]) or self.add_user(body["email"])
            return _reply(200, self._user_json(user))

        return _reply(404, {"msg": "not found"})

    # -- procedures ----------------------------------------------------

    def _rpc(self, name: str, params: dict[str, Any], caller: dict[str, Any] | None) -> httpx.Response:
        if name == "check_email_exists":
            return _reply(200, self._by_email(params["p_email"]) is not None)

        if caller is None:
            return _reply(401, {"message": "JWT expired"})
        memberships = self.memberships.get(caller["id"], {})

        if name == "get_my_tenants":
            return _reply(200, [self.tenants[tid] for tid in memberships])

        if name == "switch_active_tenant":
            tenant_id = params["p_tenant_id"]
            if tenant_id not in memberships:
                return _reply(400, {"code": "P0001", "message": "No perteneces a este estudio"})
            caller["app_metadata"] = {"tenant_id": tenant_id, "role": memberships[tenant_id]}
            return _reply(204)

        if name == "create_new_tenant_with_admin":
            tenant_id = self.add_tenant(params["p_tenant_name"])
            self.add_membership(caller["id"], tenant_id, "admin", active=True)
            return _reply(204)

        if name == "get_invitation_by_token":
            invitation = self.invitations.get(params["p_token"])
            if invitation is None:
                return _reply(200, [])
            return _reply(
                200,
                [
                    {
                        "email": invitation["email"],
                        "role_name": invitation["role"],
                        "tenant_name": self.tenants[invitation["tenant_id"]]["name"],
                        "is_valid": invitation["is_valid"],
                    }
                ],
            )

        if name == "accept_invitation":
            invitation = self.invitations.get(params["p_token"])
            if invitation is None or not invitation["is_valid"]:
                return _reply(400, {"code": "P0001", "message": "Invitación inválida o expirada"})
            invitation["is_valid"] = False
            self.add_membership(caller["id"], invitation["tenant_id"], invitation["role"], active=True)
            self.profiles[caller["id"]] = {
                "id": caller["id"],
                "first_name": params["p_first_name"],
                "last_name": params["p_last_name"],
                "phone": params["p_phone"],
            }
            return _reply(204)

        if name == "get_pending_invitations":
            return _reply(200, self.pending)

        if name == "get_tenant_employees":
            return _reply(200, self.employees)

        return _reply(404, {"message": f"Could not find the function public.{name}"})

    # -- tables --------------------------------------------------------

    def _select(self, table: str, params: httpx.QueryParams, caller: dict[str, Any] | None) -> httpx.Response:
        if table == "roles":
            return _reply(200, sorted(self.roles, key=lambda row: row["name"]))
        if caller is None:
            return _reply(200, [])
        if table == "tenants":
            tenant_id = caller["app_metadata"].get("tenant_id")
            rows = [{"name": self.tenants[tenant_id]["name"]}] if tenant_id in self.tenants else []
            return _reply(200, rows)
        if table == "profiles":
            profile_id = params.get("id", "").removeprefix("eq.")
            profile = self.profiles.get(profile_id)
            return _reply(200, [profile] if profile else [])
        return _reply(404, {"message": f"relation public.{table} does not exist"})


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
async def backend_client(fake_backend: FakeBackend):
    """BackendClient talking to the fake backend through an httpx mock transport."""
    async with BackendClient(BACKEND_URL, ANON_KEY, transport=fake_backend.transport()) as client:
        yield client
