"""Tests for ``wren routes``."""

import sys
import types

import pytest

from wren.app import App
from wren.cli import main
from wren.cli._routes import route_rows
from wren.config import AppConfig


class UserController:
    def index(self) -> str:
        return "users"


def _health() -> str:
    return "ok"


def _install(monkeypatch: pytest.MonkeyPatch, app: App) -> None:
    mod = types.ModuleType("_routes_test_app")
    mod.app = app  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_routes_test_app", mod)


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch) -> App:
    application = App(AppConfig(secret_key="cli-secret"))
    application.controller(UserController)
    application.router.match(["GET", "HEAD"], "/users", "UserController@index").named("users.index")
    application.router.group(
        {"prefix": "admin", "middleware": ["auth", "csrf"]},
        lambda r: r.post("/users", (UserController, "index")),
    )
    application.router.get("/health", _health)
    _install(monkeypatch, application)
    return application


class TestRouteRows:
    def test_rows(self, app: App) -> None:
        assert route_rows(app.router.routes) == [
            ("GET|HEAD", "/users", "UserController@index", "users.index", ""),
            ("POST", "/admin/users", "UserController@index", "", "auth, csrf"),
            ("GET", "/health", "_health", "", ""),
        ]


class TestRoutesCommand:
    def test_prints_table(self, app: App, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_routes_test_app:app"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["METHOD", "PATH", "ACTION", "NAME", "MIDDLEWARE"]
        assert set(lines[1]) == {"-"}
        assert lines[2].split() == ["GET|HEAD", "/users", "UserController@index", "users.index"]
        assert lines[3].split() == ["POST", "/admin/users", "UserController@index", "auth,", "csrf"]
        assert len(lines) == 5

    def test_empty(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        _install(monkeypatch, App(AppConfig(secret_key="cli-secret")))
        main(["routes", "_routes_test_app:app"])
        assert capsys.readouterr().out.strip() == "No routes registered."

    def test_unresolvable_controller_exits_one(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        broken = App(AppConfig(secret_key="cli-secret"))
        broken.router.get("/", "GhostController@index")
        _install(monkeypatch, broken)
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "_routes_test_app:app"])
        assert exc_info.value.code == 1
        assert "Controller GhostController not found" in capsys.readouterr().err

    def test_bad_import_exits_one(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "nonexistent_module_xyz:app"])
        assert exc_info.value.code == 1
