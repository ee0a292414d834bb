"""Base class for controllers.

Controllers are built by the container for each request, so their
constructor receives the current ``Request`` (and the app's ``View``)
by type annotation. Subclasses that need more collaborators declare
them too and pass the base ones along::

    class UserController(Controller):
        def __init__(self, request: Request, view: View, users: UserRepository) -> None:
            super().__init__(request, view)
            self.users = users

        def show(self, id: str) -> Response:
            return self.view("users.show", {"user": self.users.get(int(id))})

        def store(self) -> Response | Terminated:
            data = self.validate({"name": "required|max:50", "email": "required|email"})
            if isinstance(data, Terminated):
                return data
            ...
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from wren.errors import ConfigurationError
from wren.http.request import Request
from wren.http.response import Response, Terminated
from wren.security.urls import is_safe_url
from wren.sessions import ERRORS_KEY, OLD_INPUT_KEY, Session
from wren.templating.view import View
from wren.validation import RuleSpec, Validator


class Controller:
    """Conveniences shared by every controller."""

    login_url = "/login"

    def __init__(self, request: Request, view: View | None = None) -> None:
        self.request = request
        self.views = view

    @property
    def session(self) -> Session:
        return self.request.session

    # -- Responses --

    def view(self, name: str, data: Mapping[str, Any] | None = None, status: int = 200) -> Response:
        """Render view *name* into an HTML response.

        Validation ``errors`` from the previous request are available to
        the template unless *data* provides its own.
        """
        if self.views is None:
            msg = f"{type(self).__name__} has no View; bind one in the container"
            raise ConfigurationError(msg)
        context = {"errors": self.session.get(ERRORS_KEY, {}), **(data or {})}
        return Response.html(self.views.render(name, context), status)

    def json(self, data: Any, status: int = 200) -> Response:
        return Response.json(data, status)

    def redirect(self, url: str, status: int = 302) -> Response:
        return Response.redirect(url, status)

    def back(self) -> Response:
        """Redirect to the page the request came from (``Referer``), else ``/``."""
        referer = self.request.header("referer")
        host = (self.request.header("host") or "").split(":")[0]
        if referer and is_safe_url(referer, {host}):
            return self.redirect(referer)
        return self.redirect("/")

    # -- Validation --

    def validate(
        self,
        rules: Mapping[str, RuleSpec],
        messages: Mapping[str, str] | None = None,
    ) -> dict[str, Any] | Terminated:
        """Validate the request input.

        Returns the validated fields, or ``Terminated`` when validation
        fails. For a browser the termination redirects back, with the
        errors and the submitted input kept in the session; JSON
        clients get a 422 carrying the errors. Return the
        ``Terminated`` from the action unchanged.
        """
        data = self.request.all()
        validator = Validator(data, rules, messages)
        if validator.fails():
            if self.request.expects_json:
                payload = {"message": "The given data was invalid.", "errors": validator.errors}
                return Terminated(Response.json(payload, 422))
            self.session[ERRORS_KEY] = validator.errors
            self.session[OLD_INPUT_KEY] = {k: v for k, v in data.items() if k != "_token"}
            return Terminated(self.back())

        self.session.pop(ERRORS_KEY, None)
        self.session.pop(OLD_INPUT_KEY, None)
        return validator.validated()

    # -- Authentication --

    def user(self) -> Any:
        return self.session.get("user")

    def is_authenticated(self) -> bool:
        return self.session.get("user_id") is not None

    def require_auth(self) -> Terminated | None:
        """``Terminated`` with a redirect to the login page for guests."""
        if not self.is_authenticated():
            return Terminated(self.redirect(self.login_url))
        return None

    # -- Flash data --

    def flash(self, key: str, value: Any) -> None:
        self.session.flash(key, value)

    def get_flash(self, key: str, default: Any = None) -> Any:
        return self.session.get_flash(key, default)
