"""Tests for the session-based authentication middleware."""

import json

from wren.http.headers import Headers
from wren.http.request import Request
from wren.middleware.auth import AuthConfig, AuthenticationMiddleware, GuestMiddleware, is_authenticated
from wren.middleware.protocol import Middleware, noop_next
from wren.sessions import Session


def _request(session: dict | None = None, headers: dict[str, str] | None = None) -> Request:
    return Request(
        method="GET",
        path="/dashboard",
        headers=Headers(tuple((headers or {}).items())),
        session=Session(session),
    )


class TestIsAuthenticated:
    def test_guest(self) -> None:
        assert not is_authenticated(_request())

    def test_signed_in(self) -> None:
        assert is_authenticated(_request({"user_id": 7}))

    def test_custom_key(self) -> None:
        assert is_authenticated(_request({"uid": 7}), "uid")
        assert not is_authenticated(_request({"user_id": 7}), "uid")


class TestAuthenticationMiddleware:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(AuthenticationMiddleware(), Middleware)

    def test_lets_signed_in_users_through(self) -> None:
        assert AuthenticationMiddleware().handle(_request({"user_id": 1}), noop_next) is None

    def test_redirects_guests_to_login(self) -> None:
        response = AuthenticationMiddleware().handle(_request(), noop_next)
        assert response is not None
        assert response.status == 302
        assert response.location == "/login"

    def test_custom_login_url(self) -> None:
        middleware = AuthenticationMiddleware(AuthConfig(login_url="/signin"))
        response = middleware.handle(_request(), noop_next)
        assert response is not None
        assert response.location == "/signin"

    def test_json_clients_get_401(self) -> None:
        response = AuthenticationMiddleware().handle(
            _request(headers={"accept": "application/json"}), noop_next
        )
        assert response is not None
        assert response.status == 401
        assert json.loads(response.text) == {"message": "Unauthenticated."}

    def test_no_login_url_gives_401(self) -> None:
        response = AuthenticationMiddleware(AuthConfig(login_url=None)).handle(_request(), noop_next)
        assert response is not None
        assert response.status == 401


class TestGuestMiddleware:
    def test_lets_guests_through(self) -> None:
        assert GuestMiddleware().handle(_request(), noop_next) is None

    def test_redirects_signed_in_users_home(self) -> None:
        middleware = GuestMiddleware(AuthConfig(home_url="/dashboard"))
        response = middleware.handle(_request({"user_id": 3}), noop_next)
        assert response is not None
        assert response.location == "/dashboard"
