"""Tests for the WSGI TestClient."""

import json

import pytest

from wren.app import App
from wren.config import AppConfig
from wren.controller import Controller
from wren.http.response import Response
from wren.testing import TestClient


class PrefsController(Controller):
    def echo(self) -> Response:
        return self.json(
            {
                "method": self.request.method,
                "query": self.request.query.to_dict(),
                "input": self.request.all(),
                "cookie": self.request.cookie("theme"),
                "visits": self.session.get("visits", 0),
            }
        )

    def remember(self) -> Response:
        return Response.html("ok").with_cookie("theme", "dark")

    def forget(self) -> Response:
        return Response.html("ok").without_cookie("theme")

    def visit(self) -> Response:
        self.session["visits"] = self.session.get("visits", 0) + 1
        return Response.html("ok")


@pytest.fixture
def client() -> TestClient:
    app = App(AppConfig(secret_key="client-secret"))
    app.controller(PrefsController)
    app.router.any("/echo", "PrefsController@echo")
    app.router.get("/remember", "PrefsController@remember")
    app.router.get("/forget", "PrefsController@forget")
    app.router.get("/visit", "PrefsController@visit")
    return TestClient(app)


class TestRequests:
    def test_query_merges_with_path(self, client: TestClient) -> None:
        response = client.get("/echo?a=1", query={"b": "2"})
        assert response.status == 200
        assert response.content_type.startswith("application/json")
        body = json.loads(response.text)
        assert body["query"] == {"a": "1", "b": "2"}

    def test_form_data(self, client: TestClient) -> None:
        response = client.put("/echo", data={"name": "Ada"})
        assert json.loads(response.text)["input"] == {"name": "Ada"}
        assert json.loads(response.text)["method"] == "PUT"

    def test_json_body(self, client: TestClient) -> None:
        response = client.patch("/echo", json={"name": "Ada"})
        assert json.loads(response.text)["input"] == {"name": "Ada"}


class TestCookieJar:
    def test_cookie_round_trip(self, client: TestClient) -> None:
        client.get("/remember")
        assert client.cookies["theme"] == "dark"
        assert json.loads(client.get("/echo").text)["cookie"] == "dark"

    def test_expired_cookie_removed(self, client: TestClient) -> None:
        client.get("/remember")
        client.get("/forget")
        assert "theme" not in client.cookies
        assert json.loads(client.get("/echo").text)["cookie"] is None

    def test_session_survives_requests(self, client: TestClient) -> None:
        client.get("/visit")
        client.get("/visit")
        assert json.loads(client.get("/echo").text)["visits"] == 2
