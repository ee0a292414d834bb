"""Tests for wren.routing.route: template compilation, matching and actions."""

import pytest

from wren.container import Container
from wren.errors import ActionResolutionError, ConfigurationError, InvalidActionError
from wren.routing.actions import ControllerRegistry
from wren.routing.route import Route, compile_template


def _ok() -> str:
    return "ok"


class PostController:
    def show(self, id: str) -> str:
        return f"post {id}"

    def comment(self, id: str, cid: str) -> str:
        return f"post {id} comment [{cid}]"


class TestCompileTemplate:
    def test_literal(self) -> None:
        pattern, names = compile_template("/about")
        assert names == ()
        assert pattern.fullmatch("/about")
        assert not pattern.fullmatch("/about/more")

    def test_required_parameter(self) -> None:
        pattern, names = compile_template("/users/{id}")
        assert names == ("id",)
        m = pattern.fullmatch("/users/42")
        assert m is not None
        assert m.group(1) == "42"

    def test_required_parameter_does_not_cross_slashes(self) -> None:
        pattern, _ = compile_template("/users/{id}")
        assert pattern.fullmatch("/users/1/2") is None

    def test_names_in_template_order(self) -> None:
        _, names = compile_template("/a/{first}/b/{second}/{third?}")
        assert names == ("first", "second", "third")

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            compile_template("/a/{id}/b/{id}")

    def test_regex_metacharacters_are_literal(self) -> None:
        pattern, _ = compile_template("/files/report.pdf")
        assert pattern.fullmatch("/files/report.pdf")
        assert pattern.fullmatch("/files/reportXpdf") is None


class TestMatching:
    def test_method_must_be_accepted(self) -> None:
        route = Route(["GET"], "/users", _ok)
        assert route.matches("/users", "GET")
        assert route.matches("/users", "get")
        assert not route.matches("/users", "POST")

    def test_trailing_slash_is_normalized(self) -> None:
        route = Route(["GET"], "/users/", _ok)
        assert route.path == "/users"
        assert route.matches("/users/", "GET")

    def test_root(self) -> None:
        route = Route(["GET"], "/", _ok)
        assert route.path == "/"
        assert route.matches("/", "GET")
        assert route.matches("", "GET")

    def test_literal_route_is_literal(self) -> None:
        assert Route(["GET"], "/about", _ok).is_literal
        assert not Route(["GET"], "/users/{id}", _ok).is_literal

    def test_literal_and_regex_agree(self) -> None:
        route = Route(["GET"], "/about/team", _ok)
        for path in ("/about/team", "/about/team/", "/about", "/about/teams"):
            assert route.matches(path, "GET") == (route.pattern.fullmatch("/" + path.strip("/")) is not None)

    def test_optional_segment_present(self) -> None:
        route = Route(["GET"], "/post/{id}/comment/{cid?}", _ok)
        assert route.matches("/post/42/comment/7", "GET")
        assert route.extract_parameters("/post/42/comment/7") == {"id": "42", "cid": "7"}

    def test_optional_segment_absent(self) -> None:
        route = Route(["GET"], "/post/{id}/comment/{cid?}", _ok)
        assert route.matches("/post/42/comment", "GET")
        assert route.extract_parameters("/post/42/comment") == {"id": "42", "cid": ""}

    def test_optional_segment_empty(self) -> None:
        route = Route(["GET"], "/post/{id}/comment/{cid?}", _ok)
        assert route.matches("/post/42/comment/", "GET")
        assert route.extract_parameters("/post/42/comment/") == {"id": "42", "cid": ""}

    def test_mid_path_optional_keeps_its_slashes(self) -> None:
        route = Route(["GET"], "/a/{x?}/b", _ok)
        assert route.matches("/a/b", "GET") is False
        assert route.extract_parameters("/a/c/b") == {"x": "c"}
        assert route.extract_parameters("/a//b") == {"x": ""}

    def test_extract_on_mismatch_is_empty(self) -> None:
        route = Route(["GET"], "/users/{id}", _ok)
        assert route.extract_parameters("/posts/1") == {}

    def test_parameters_are_remembered(self) -> None:
        route = Route(["GET"], "/users/{id}", _ok)
        route.extract_parameters("/users/9")
        assert route.parameters == {"id": "9"}


class TestBuilders:
    def test_prefix_recompiles(self) -> None:
        route = Route(["GET"], "/users", _ok)
        assert route.matches("/users", "GET")
        route.with_prefix("admin")
        assert route.path == "/admin/users"
        assert route.matches("/admin/users", "GET")
        assert not route.matches("/users", "GET")

    def test_prefix_on_root_uri(self) -> None:
        route = Route(["GET"], "/", _ok).with_prefix("/admin/")
        assert route.path == "/admin"
        assert route.uri == "/"

    def test_middleware_replaces(self) -> None:
        route = Route(["GET"], "/", _ok).with_middleware("auth", "csrf")
        route.with_middleware("guest")
        assert route.middleware == ("guest",)

    def test_middleware_accepts_iterable(self) -> None:
        route = Route(["GET"], "/", _ok).with_middleware(["auth", "csrf"])
        assert route.middleware == ("auth", "csrf")

    def test_named_notifies_callback(self) -> None:
        seen: list[tuple[str, Route]] = []
        route = Route(["GET"], "/", _ok, on_name=lambda name, r: seen.append((name, r)))
        assert route.named("home") is route
        assert route.name == "home"
        assert seen == [("home", route)]

    def test_methods_deduplicated_and_uppercased(self) -> None:
        route = Route(["get", "GET", "post"], "/", _ok)
        assert route.methods == ("GET", "POST")

    def test_no_methods_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Route([], "/", _ok)


class TestRun:
    def test_callable_receives_parameters_in_order(self) -> None:
        route = Route(["GET"], "/a/{x}/b/{y}", lambda x, y: f"{x}-{y}")
        assert route.run({"y": "2", "x": "1"}) == "1-2"

    def test_run_with_sequence(self) -> None:
        route = Route(["GET"], "/a/{x}", lambda x: x * 2)
        assert route.run(["ab"]) == "abab"

    def test_run_uses_last_extracted_parameters(self) -> None:
        route = Route(["GET"], "/users/{id}", lambda id: id)
        route.extract_parameters("/users/5")
        assert route.run() == "5"

    def test_controller_string(self) -> None:
        registry = ControllerRegistry()
        registry.register(PostController)
        route = Route(["GET"], "/post/{id}", "PostController@show", controllers=registry)
        assert route.run({"id": "3"}) == "post 3"

    def test_controller_tuple(self) -> None:
        route = Route(["GET"], "/post/{id}/comment/{cid?}", (PostController, "comment"))
        assert route.run({"id": "3", "cid": ""}) == "post 3 comment []"

    def test_controller_built_by_container(self) -> None:
        class Greeter:
            def greet(self) -> str:
                return "hi"

        class GreetController:
            def __init__(self, greeter: Greeter) -> None:
                self.greeter = greeter

            def index(self) -> str:
                return self.greeter.greet()

        route = Route(["GET"], "/", (GreetController, "index"), container=Container())
        assert route.run({}) == "hi"

    def test_unknown_controller(self) -> None:
        route = Route(["GET"], "/", "MissingController@index", controllers=ControllerRegistry())
        with pytest.raises(ActionResolutionError, match="Controller MissingController not found"):
            route.run({})

    def test_unknown_method(self) -> None:
        route = Route(["GET"], "/", (PostController, "missing"))
        with pytest.raises(ActionResolutionError, match="Method missing not found"):
            route.run({})

    def test_resolve_checks_method_up_front(self) -> None:
        route = Route(["GET"], "/", (PostController, "missing"))
        with pytest.raises(ActionResolutionError):
            route.resolve()

    def test_invalid_action_fails_on_run(self) -> None:
        route = Route(["GET"], "/", 42)  # type: ignore[arg-type]
        with pytest.raises(InvalidActionError, match="Invalid route action"):
            route.run({})

    def test_malformed_controller_string(self) -> None:
        route = Route(["GET"], "/", "PostController")
        with pytest.raises(InvalidActionError):
            route.run({})

    def test_action_name(self) -> None:
        assert Route(["GET"], "/", "PostController@show").action_name == "PostController@show"
        assert Route(["GET"], "/", (PostController, "show")).action_name == "PostController@show"
        assert Route(["GET"], "/", _ok).action_name == "_ok"
