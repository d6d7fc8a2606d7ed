import pytest

from studiodesk.auth.verify import (
    INVALID_SESSION_MESSAGE,
    MISSING_HEADER_MESSAGE,
    bearer_token,
    verify_access_token,
)
from studiodesk.exceptions import UnauthorizedError


@pytest.mark.unit
class TestBearerToken:
    def test_extracts_token(self) -> None:
        assert bearer_token("Bearer abc.def") == "abc.def"
        assert bearer_token("bearer  abc.def ") == "abc.def"

    def test_missing_header(self) -> None:
        with pytest.raises(UnauthorizedError, match=MISSING_HEADER_MESSAGE):
            bearer_token(None)
        with pytest.raises(UnauthorizedError, match=MISSING_HEADER_MESSAGE):
            bearer_token("")

    def test_wrong_scheme(self) -> None:
        with pytest.raises(UnauthorizedError, match=INVALID_SESSION_MESSAGE):
            bearer_token("Basic dXNlcjpwYXNz")

    def test_empty_token(self) -> None:
        with pytest.raises(UnauthorizedError, match=INVALID_SESSION_MESSAGE):
            bearer_token("Bearer ")


@pytest.mark.unit
class TestVerifyAccessToken:
    def test_valid_token(self, make_token) -> None:
        claims = verify_access_token(make_token("user-9", tenant_id="t-9", role="manager", email="m@studio.test"))
        assert claims.user_id == "user-9"
        assert claims.tenant_id == "t-9"
        assert claims.role == "manager"
        assert claims.email == "m@studio.test"

    def test_token_without_tenant(self, make_token) -> None:
        claims = verify_access_token(make_token(tenant_id=None, role=None))
        assert claims.tenant_id is None
        assert claims.role is None

    def test_expired_token(self, make_token) -> None:
        with pytest.raises(UnauthorizedError, match=INVALID_SESSION_MESSAGE):
            verify_access_token(make_token(expires_in=-60))

    def test_wrong_secret(self, make_token) -> None:
        with pytest.raises(UnauthorizedError):
            verify_access_token(make_token(secret="another-secret-with-at-least-32-characters"))

    def test_wrong_audience(self, make_token) -> None:
        with pytest.raises(UnauthorizedError):
            verify_access_token(make_token(audience="anon"))

    def test_garbage(self) -> None:
        with pytest.raises(UnauthorizedError):
            verify_access_token("not-a-jwt")
