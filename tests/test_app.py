"""Tests for wren.app: App wiring, the WSGI entry point and full request cycles."""

import json
import logging
import sys
import types
from collections.abc import Iterator
from pathlib import Path

import pytest

from wren.app import BAD_REQUEST_BODY, DEFAULT_MIDDLEWARE, PAYLOAD_TOO_LARGE_BODY, App
from wren.config import AppConfig
from wren.container import Container
from wren.controller import Controller
from wren.data import Database, Model
from wren.errors import ActionResolutionError, ConfigurationError, MiddlewareNotFoundError
from wren.http.response import Response, Terminated
from wren.routing.router import Router
from wren.security.csrf import Csrf
from wren.security.passwords import hash_password, verify_password
from wren.templating.view import View
from wren.testing import TestClient

SECRET = "test-secret"
USERS = {"ada@example.com": hash_password("lovelace")}


class HomeController(Controller):
    def index(self) -> Response:
        return self.view("home", {"title": "Welcome"})

    def show(self, id: str) -> dict[str, str]:
        return {"id": id}


class SessionController(Controller):
    def create(self) -> Response:
        return self.view("login")

    def store(self) -> Response | Terminated:
        data = self.validate({"email": "required|email", "password": "required"})
        if isinstance(data, Terminated):
            return data
        hashed = USERS.get(data["email"])
        if hashed is None or not verify_password(data["password"], hashed):
            self.flash("error", "Invalid credentials.")
            return self.back()
        self.session.regenerate()
        self.session["user_id"] = data["email"]
        return self.redirect("/dashboard")

    def destroy(self) -> Response:
        self.session.invalidate()
        return self.redirect("/")


class DashboardController(Controller):
    def index(self) -> str:
        return f"Hello {self.session['user_id']}"

    def token(self) -> str:
        return Csrf(self.session).get_token()


def _routes(router: Router) -> None:
    router.get("/", "HomeController@index").named("home")
    router.get("/items/{id}", "HomeController@show").named("items.show")
    router.group(
        {"middleware": ["guest"]},
        lambda r: r.get("/login", "SessionController@create").named("login"),
    )
    router.group(
        {"middleware": ["guest", "csrf"]},
        lambda r: r.post("/login", "SessionController@store"),
    )
    router.group(
        {"middleware": ["auth"]},
        lambda r: r.get("/dashboard", "DashboardController@index"),
    )
    router.get("/_token", "DashboardController@token").with_middleware("auth")
    router.post("/logout", "SessionController@destroy").with_middleware("auth", "csrf")


@pytest.fixture
def templates(tmp_path: Path) -> Path:
    (tmp_path / "home.html").write_text("<h1>{{ title }}</h1><a href=\"{{ route('login') }}\">{{ app_name }}</a>")
    (tmp_path / "login.html").write_text(
        '<form method="post">{{ csrf_field() }}'
        '<input name="email" value="{{ old(\'email\') }}">'
        "{% for message in errors.get('email', []) %}<p>{{ message }}</p>{% endfor %}"
        "</form>"
    )
    return tmp_path


@pytest.fixture
def app(templates: Path) -> App:
    application = App(AppConfig(secret_key=SECRET, template_dir=templates, url="http://localhost"))
    for controller in (HomeController, SessionController, DashboardController):
        application.controller(controller)
    application.load_routes(_routes)
    return application


@pytest.fixture
def client(app: App) -> TestClient:
    return TestClient(app)


def _csrf_token(client: TestClient) -> str:
    html = client.get("/login").text
    marker = 'name="_token" value="'
    start = html.index(marker) + len(marker)
    return html[start : html.index('"', start)]


class TestConstruction:
    def test_missing_secret_rejected(self, templates: Path) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            App(AppConfig(template_dir=templates))

    def test_debug_generates_throwaway_secret(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="wren.server"):
            App(AppConfig(debug=True))
        assert "throwaway key" in caplog.text

    def test_container_bindings(self, app: App) -> None:
        assert app.container.resolve(App) is app
        assert app.container.resolve("config") is app.config
        assert app.container.resolve(Router) is app.router
        assert app.container.resolve("view") is app.view
        assert app.container.resolve(Container) is app.container

    def test_default_middleware_registered(self, app: App) -> None:
        for name in DEFAULT_MIDDLEWARE:
            assert app.router.has_middleware(name)

    def test_custom_view(self, templates: Path) -> None:
        view = View(templates)
        assert App(AppConfig(secret_key=SECRET), view=view).view is view

    def test_database_from_config(self) -> None:
        app = App(AppConfig(secret_key=SECRET, database=":memory:"))
        assert isinstance(app.database, Database)
        assert app.container.resolve(Database) is app.database
        assert Model.database() is app.database

    def test_no_database_by_default(self, app: App) -> None:
        assert app.database is None


class TestUrls:
    def test_url(self) -> None:
        app = App(AppConfig(secret_key=SECRET, url="https://example.com/"))
        assert app.url() == "https://example.com"
        assert app.url("/users/1") == "https://example.com/users/1"
        assert app.asset("css/app.css") == "https://example.com/css/app.css"

    def test_named_routes_are_absolute(self, app: App) -> None:
        assert app.router.route("items.show", {"id": 5}) == "http://localhost/items/5"


class TestSetup:
    def test_controller_decorator(self) -> None:
        app = App(AppConfig(secret_key=SECRET))

        @app.controller
        class PingController:
            def ping(self) -> str:
                return "pong"

        app.router.get("/ping", "PingController@ping")
        assert TestClient(app).get("/ping").text == "pong"

    def test_middleware_registration(self) -> None:
        app = App(AppConfig(secret_key=SECRET))
        app.middleware("teapot", lambda request, next: Response.html("short and stout", 418))
        app.router.get("/", lambda: "ok").with_middleware("teapot")
        assert TestClient(app).get("/").status == 418

    def test_load_routes_from_module(self, monkeypatch: pytest.MonkeyPatch) -> None:
        module = types.ModuleType("wren_test_routes")
        module.register = lambda router: router.get("/from-module", lambda: "loaded")  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "wren_test_routes", module)

        app = App(AppConfig(secret_key=SECRET))
        app.load_routes("wren_test_routes")
        assert TestClient(app).get("/from-module").text == "loaded"

    def test_load_routes_module_without_register(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "wren_empty_routes", types.ModuleType("wren_empty_routes"))
        with pytest.raises(ConfigurationError, match="register"):
            App(AppConfig(secret_key=SECRET)).load_routes("wren_empty_routes")

    def test_freeze_resolves_controllers(self) -> None:
        app = App(AppConfig(secret_key=SECRET))
        app.router.get("/", "GhostController@index")
        with pytest.raises(ActionResolutionError, match="Controller GhostController not found"):
            app.freeze()

    def test_freeze_is_idempotent(self, app: App) -> None:
        app.freeze()
        app.freeze()


class TestRequestCycle:
    def test_view_response(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status == 200
        assert response.content_type.startswith("text/html")
        assert response.text == '<h1>Welcome</h1><a href="http://localhost/login">Wren</a>'

    def test_json_response_with_parameter(self, client: TestClient) -> None:
        response = client.get("/items/42")
        assert response.content_type == "application/json"
        assert json.loads(response.text) == {"id": "42"}

    def test_not_found(self, client: TestClient) -> None:
        response = client.get("/nope")
        assert response.status == 404
        assert response.text == "404 - Page Not Found"

    def test_request_injected_into_controller(self) -> None:
        class EchoController(Controller):
            def index(self) -> str:
                return self.request.query.get("q") or ""

        app = App(AppConfig(secret_key=SECRET))
        app.controller(EchoController)
        app.router.get("/search", "EchoController@index")
        assert TestClient(app).get("/search", query={"q": "wren"}).text == "wren"

    def test_server_error(self) -> None:
        app = App(AppConfig(secret_key=SECRET))

        def broken() -> str:
            raise RuntimeError("secret detail")

        app.router.get("/", broken)
        response = TestClient(app).get("/")
        assert response.status == 500
        assert "secret detail" not in response.text

    def test_missing_middleware_propagates(self) -> None:
        app = App(AppConfig(secret_key=SECRET))
        app.router.get("/", lambda: "ok").with_middleware("ghost")
        with pytest.raises(MiddlewareNotFoundError):
            TestClient(app).get("/")

    def test_payload_too_large(self) -> None:
        app = App(AppConfig(secret_key=SECRET, max_content_length=10))
        app.router.post("/upload", lambda: "ok")
        response = TestClient(app).post("/upload", body=b"x" * 100)
        assert response.status == 413
        assert response.text == PAYLOAD_TOO_LARGE_BODY

    def test_multipart_without_boundary_is_bad_request(self) -> None:
        app = App(AppConfig(secret_key=SECRET))
        app.router.post("/upload", lambda: "ok")
        response = TestClient(app).post(
            "/upload", body=b"x=1", headers={"Content-Type": "multipart/form-data"}
        )
        assert response.status == 400
        assert response.text == BAD_REQUEST_BODY

    def test_invalid_utf8_form_is_bad_request(self) -> None:
        app = App(AppConfig(secret_key=SECRET))
        app.router.post("/upload", lambda: "ok")
        response = TestClient(app).post(
            "/upload", body=b"name=\xff", headers={"Content-Type": "application/x-www-form-urlencoded"}
        )
        assert response.status == 400

    def test_access_log(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="wren.server"):
            client.get("/items/1")
        assert "GET /items/1 200" in caplog.text

    def test_wsgi_callable(self, app: App) -> None:
        captured: dict[str, object] = {}

        def start_response(status: str, headers: list[tuple[str, str]]) -> None:
            captured["status"] = status
            captured["headers"] = dict(headers)

        environ = {"REQUEST_METHOD": "GET", "PATH_INFO": "/items/7"}
        body = b"".join(app(environ, start_response))
        assert captured["status"] == "200 OK"
        assert captured["headers"]["Content-Type"] == "application/json"  # type: ignore[index]
        assert json.loads(body) == {"id": "7"}


class TestSessionsAndAuth:
    def test_guest_redirected_to_login(self, client: TestClient) -> None:
        response = client.get("/dashboard")
        assert response.status == 302
        assert response.location == "/login"

    def test_json_guest_gets_401(self, client: TestClient) -> None:
        response = client.get("/dashboard", headers={"Accept": "application/json"})
        assert response.status == 401

    def test_login_form_has_csrf_field(self, client: TestClient) -> None:
        assert len(_csrf_token(client)) == 64
        assert "wren_session" in client.cookies

    def test_post_without_token_rejected(self, client: TestClient) -> None:
        response = client.post("/login", data={"email": "ada@example.com", "password": "lovelace"})
        assert response.status == 419

    def test_full_login_flow(self, client: TestClient) -> None:
        token = _csrf_token(client)
        response = client.post(
            "/login", data={"_token": token, "email": "ada@example.com", "password": "lovelace"}
        )
        assert response.status == 302
        assert response.location == "/dashboard"

        assert client.get("/dashboard").text == "Hello ada@example.com"
        assert client.get("/login").location == "/"

    def test_login_rotates_csrf_token(self, client: TestClient) -> None:
        token = _csrf_token(client)
        client.post("/login", data={"_token": token, "email": "ada@example.com", "password": "lovelace"})
        response = client.post("/logout", data={"_token": token})
        assert response.status == 419

    def test_logout(self, client: TestClient) -> None:
        token = _csrf_token(client)
        client.post("/login", data={"_token": token, "email": "ada@example.com", "password": "lovelace"})
        response = client.post("/logout", headers={"X-CSRF-TOKEN": _dashboard_token(client)})
        assert response.status == 302
        assert client.get("/dashboard").location == "/login"

    def test_validation_errors_and_old_input(self, client: TestClient) -> None:
        token = _csrf_token(client)
        response = client.post(
            "/login",
            data={"_token": token, "email": "not-an-email", "password": ""},
            headers={"Referer": "http://localhost/login"},
        )
        assert response.status == 302
        assert response.location == "http://localhost/login"

        page = client.get("/login").text
        assert 'value="not-an-email"' in page
        assert "<p>The email must be a valid email address.</p>" in page

    def test_validation_json_client(self, client: TestClient) -> None:
        token = _csrf_token(client)
        response = client.post(
            "/login",
            json={"email": "", "password": ""},
            headers={"X-CSRF-TOKEN": token},
        )
        assert response.status == 422
        assert set(json.loads(response.text)["errors"]) == {"email", "password"}

    def test_tampered_session_cookie_ignored(self, client: TestClient) -> None:
        token = _csrf_token(client)
        client.post("/login", data={"_token": token, "email": "ada@example.com", "password": "lovelace"})
        client.cookies["wren_session"] = client.cookies["wren_session"][:-4] + "AAAA"
        assert client.get("/dashboard").status == 302


def _dashboard_token(client: TestClient) -> str:
    """The CSRF token of the signed-in session."""
    return client.get("/_token").text


@pytest.fixture(autouse=True)
def _reset_model_database() -> Iterator[None]:
    previous = Model._database
    yield
    Model.use(previous)  # type: ignore[arg-type]
