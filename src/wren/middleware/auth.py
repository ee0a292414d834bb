"""Session-based authentication gates.

``AuthenticationMiddleware`` lets a request through only when the
session carries a user id, and sends everyone else to the login page.
``GuestMiddleware`` is its mirror image for pages like ``/login`` that
signed-in users should not see.

Usage::

    router.register_middleware("auth", AuthenticationMiddleware)
    router.register_middleware("guest", GuestMiddleware(AuthConfig(home_url="/dashboard")))

    router.get("/dashboard", "DashboardController@index").with_middleware("auth")
"""

from __future__ import annotations

from dataclasses import dataclass

from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Authentication middleware configuration.

    Attributes:
        session_key: Session key holding the signed-in user's id.
        login_url: Where unauthenticated browsers are sent. ``None``
            answers 401 instead of redirecting.
        home_url: Where ``GuestMiddleware`` sends signed-in users.
    """

    session_key: str = "user_id"
    login_url: str | None = "/login"
    home_url: str = "/"


def is_authenticated(request: Request, session_key: str = "user_id") -> bool:
    return request.session.get(session_key) is not None


class AuthenticationMiddleware:
    """Redirect to the login page unless the session holds a user id.

    JSON clients get a 401 instead of a redirect.
    """

    __slots__ = ("config",)

    def __init__(self, config: AuthConfig | None = None) -> None:
        self.config = config or AuthConfig()

    def handle(self, request: Request, next: Next) -> Response | None:
        if is_authenticated(request, self.config.session_key):
            return next(request)
        if self.config.login_url is None or request.expects_json:
            if request.expects_json:
                return Response.json({"message": "Unauthenticated."}, 401)
            return Response.unauthorized()
        return Response.redirect(self.config.login_url)


class GuestMiddleware:
    """Redirect signed-in users away from guest-only pages."""

    __slots__ = ("config",)

    def __init__(self, config: AuthConfig | None = None) -> None:
        self.config = config or AuthConfig()

    def handle(self, request: Request, next: Next) -> Response | None:
        if is_authenticated(request, self.config.session_key):
            return Response.redirect(self.config.home_url)
        return next(request)
