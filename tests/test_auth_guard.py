"""Tests for the authorization guard"""
from types import SimpleNamespace

import pytest
from starlette.requests import Request

from sleepplanet.api.deps import require_authorized
from sleepplanet.errors import ForbiddenError, InternalError, UnauthorizedError
from sleepplanet.middleware.auth import Authorized, Forbidden, Unauthorized, decide, extract_token
from sleepplanet.utils.jwt_utils import TokenErrorKind, TokenService
from tests.conftest import TEST_JWT_SECRET, bearer


def make_request(headers=None, query: str = "") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/sys/me",
        "query_string": query.encode(),
        "headers": [(name.lower().encode(), value.encode()) for name, value in (headers or {}).items()],
    }
    return Request(scope)


def expired_token() -> str:
    past = TokenService(TEST_JWT_SECRET, 60, clock=lambda: 1_000_000)
    return past.issue(1, "alice", ["super_admin"])


class TestExtractToken:
    def test_header_wins(self):
        request = make_request({"Authorization": "Bearer from-header", "Cookie": "jwt_token=from-cookie"}, "token=from-query")
        assert extract_token(request, "token", "jwt_token") == "from-header"

    def test_query_before_cookie(self):
        request = make_request({"Cookie": "jwt_token=from-cookie"}, "token=from-query")
        assert extract_token(request, "token", "jwt_token") == "from-query"

    def test_cookie(self):
        request = make_request({"Cookie": "jwt_token=from-cookie"})
        assert extract_token(request, "token", "jwt_token") == "from-cookie"

    @pytest.mark.parametrize("header", ["Basic abc", "Bearer ", "Bearer"])
    def test_non_bearer_header_ignored(self, header):
        assert extract_token(make_request({"Authorization": header}), "token", "jwt_token") is None

    def test_nothing_presented(self):
        assert extract_token(make_request(), "token", "jwt_token") is None


class TestDecide:
    def test_absent(self, app):
        assert decide(None, app.state.token_service) == Unauthorized()

    def test_valid(self, app):
        token = app.state.token_service.issue(7, "alice", ["super_admin"])
        state = decide(token, app.state.token_service)
        assert isinstance(state, Authorized)
        assert state.claims.admin_id == 7

    @pytest.mark.parametrize(
        "token_factory,kind",
        [
            (expired_token, TokenErrorKind.EXPIRED),
            (lambda: TokenService("another-secret", 60).issue(1, "alice", []), TokenErrorKind.BAD_SIGNATURE),
            (lambda: "garbage", TokenErrorKind.MALFORMED),
        ],
    )
    def test_rejected(self, app, token_factory, kind):
        assert decide(token_factory(), app.state.token_service) == Forbidden(kind)


class TestRequireAuthorized:
    def _request(self, state):
        return SimpleNamespace(state=SimpleNamespace(auth=state))

    def test_missing_state_is_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            require_authorized(SimpleNamespace(state=SimpleNamespace()))

    def test_other_kind_is_internal(self):
        with pytest.raises(InternalError):
            require_authorized(self._request(Forbidden(TokenErrorKind.OTHER)))

    def test_forbidden_carries_kind(self):
        with pytest.raises(ForbiddenError) as exc_info:
            require_authorized(self._request(Forbidden(TokenErrorKind.EXPIRED)))
        assert exc_info.value.kind == "expired"


class TestGuardOverHttp:
    def test_no_credential(self, client):
        response = client.get("/sys/me")
        assert response.status_code == 401
        assert response.json() == {"error": "unauthorized", "message": "credential missing, please log in"}

    @pytest.mark.parametrize(
        "token_factory,message",
        [
            (expired_token, "credential expired, please log in again"),
            (lambda: TokenService("another-secret", 60).issue(1, "alice", []), "invalid credential, please log in again"),
            (lambda: "abc.def", "malformed credential, please check the request format"),
        ],
    )
    def test_rejected_credential(self, client, token_factory, message):
        response = client.get("/sys/me", headers={"Authorization": f"Bearer {token_factory()}"})
        assert response.status_code == 403
        assert response.json()["message"] == message

    def test_query_parameter(self, client, app):
        token = app.state.token_service.issue(3, "alice", ["super_admin"])
        response = client.get("/sys/me", params={"token": token})
        assert response.status_code == 200
        assert response.json()["admin_id"] == 3

    def test_cookie(self, client, app):
        token = app.state.token_service.issue(3, "alice", ["super_admin"])
        client.cookies.set("jwt_token", token)
        response = client.get("/sys/me")
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    def test_public_routes_need_no_credential(self, client):
        assert client.get("/health").status_code == 200
        assert client.get("/health", headers={"Authorization": "Bearer garbage"}).status_code == 200

    def test_header(self, client, app):
        response = client.get("/sys/me", headers=bearer(app, 4, "bob", ["editor", "content_admin"]))
        assert response.status_code == 200
        assert response.json()["roles"] == ["editor", "content_admin"]
