"""Tests for the Controller base class."""

import json
from pathlib import Path

import pytest

from wren.controller import Controller
from wren.errors import ConfigurationError
from wren.http.headers import Headers
from wren.http.query import QueryParams
from wren.http.request import Request
from wren.http.response import Terminated
from wren.sessions import ERRORS_KEY, OLD_INPUT_KEY, Session
from wren.templating.view import View

RULES = {"name": "required|max:10", "email": "required|email"}


def _request(
    method: str = "POST",
    *,
    form: str = "",
    headers: dict[str, str] | None = None,
    session: Session | None = None,
) -> Request:
    return Request(
        method=method,
        path="/users",
        headers=Headers(tuple((headers or {}).items())),
        form=QueryParams(form),
        session=session if session is not None else Session(),
    )


class TestResponses:
    def test_json(self) -> None:
        response = Controller(_request()).json({"ok": True}, 201)
        assert response.status == 201
        assert json.loads(response.text) == {"ok": True}

    def test_redirect(self) -> None:
        response = Controller(_request()).redirect("/home")
        assert response.status == 302
        assert response.location == "/home"

    def test_view_renders_template(self, tmp_path: Path) -> None:
        (tmp_path / "users").mkdir()
        (tmp_path / "users" / "show.html").write_text("Hello {{ name }}")
        controller = Controller(_request(), View(tmp_path))
        response = controller.view("users.show", {"name": "Ada"})
        assert response.status == 200
        assert response.text == "Hello Ada"

    def test_view_exposes_previous_errors(self, tmp_path: Path) -> None:
        (tmp_path / "form.html").write_text("{{ errors.name[0] }}")
        session = Session({ERRORS_KEY: {"name": ["The name field is required."]}})
        response = Controller(_request(session=session), View(tmp_path)).view("form")
        assert response.text == "The name field is required."

    def test_view_without_view_engine(self) -> None:
        with pytest.raises(ConfigurationError):
            Controller(_request()).view("home")


class TestBack:
    def test_same_host_referer(self) -> None:
        request = _request(headers={"host": "example.com", "referer": "http://example.com/form"})
        assert Controller(request).back().location == "http://example.com/form"

    def test_relative_referer(self) -> None:
        request = _request(headers={"referer": "/form"})
        assert Controller(request).back().location == "/form"

    def test_foreign_referer_ignored(self) -> None:
        request = _request(headers={"host": "example.com", "referer": "https://evil.com/"})
        assert Controller(request).back().location == "/"

    def test_no_referer(self) -> None:
        assert Controller(_request()).back().location == "/"


class TestValidate:
    def test_valid_input_returns_data(self) -> None:
        session = Session({ERRORS_KEY: {"name": ["old"]}, OLD_INPUT_KEY: {"name": ""}})
        request = _request(form="name=Ada&email=ada%40example.com&extra=1", session=session)
        data = Controller(request).validate(RULES)
        assert data == {"name": "Ada", "email": "ada@example.com"}
        assert ERRORS_KEY not in session
        assert OLD_INPUT_KEY not in session

    def test_browser_is_redirected_back(self) -> None:
        session = Session()
        request = _request(
            form="name=&email=nope&_token=abc",
            headers={"referer": "/users/create"},
            session=session,
        )
        result = Controller(request).validate(RULES)
        assert isinstance(result, Terminated)
        assert result.response.status == 302
        assert result.response.location == "/users/create"
        assert session[ERRORS_KEY] == {
            "name": ["The name field is required."],
            "email": ["The email must be a valid email address."],
        }
        assert session[OLD_INPUT_KEY] == {"name": "", "email": "nope"}

    def test_json_client_gets_422(self) -> None:
        session = Session()
        request = _request(form="name=", headers={"accept": "application/json"}, session=session)
        result = Controller(request).validate(RULES)
        assert isinstance(result, Terminated)
        assert result.response.status == 422
        payload = json.loads(result.response.text)
        assert payload["message"] == "The given data was invalid."
        assert set(payload["errors"]) == {"name", "email"}
        assert ERRORS_KEY not in session

    def test_custom_messages(self) -> None:
        session = Session()
        request = _request(form="email=a%40b.co", session=session)
        Controller(request).validate(RULES, {"name.required": "Tell us your name."})
        assert session[ERRORS_KEY] == {"name": ["Tell us your name."]}


class TestAuthHelpers:
    def test_guest(self) -> None:
        controller = Controller(_request())
        assert not controller.is_authenticated()
        assert controller.user() is None
        terminated = controller.require_auth()
        assert isinstance(terminated, Terminated)
        assert terminated.response.location == "/login"

    def test_signed_in(self) -> None:
        session = Session({"user_id": 1, "user": {"name": "Ada"}})
        controller = Controller(_request(session=session))
        assert controller.is_authenticated()
        assert controller.user() == {"name": "Ada"}
        assert controller.require_auth() is None

    def test_login_url_override(self) -> None:
        class AdminController(Controller):
            login_url = "/admin/login"

        terminated = AdminController(_request()).require_auth()
        assert terminated is not None
        assert terminated.response.location == "/admin/login"


class TestFlash:
    def test_flash_is_read_once(self) -> None:
        controller = Controller(_request())
        controller.flash("status", "Saved")
        assert controller.get_flash("status") == "Saved"
        assert controller.get_flash("status", "gone") == "gone"
