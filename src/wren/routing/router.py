"""Route registry and the dispatch pipeline.

Routes are kept in one list per HTTP method, in registration order.
Dispatch scans that list and the first matching route wins::

    router = Router()
    router.get("/users/{id}", "UserController@show").named("users.show")

    with_auth = {"prefix": "admin", "middleware": ["auth"]}
    router.group(with_auth, lambda r: r.get("/", "AdminController@index"))

    response = router.dispatch(request)

Groups do not accumulate: a route registered inside nested groups gets
the prefix and middleware of the innermost group only, and that group's
middleware replaces whatever the route had.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from wren.container import Container
from wren.errors import ConfigurationError, HTTPError, MiddlewareNotFoundError, RouteNotFoundError
from wren.http.request import Request, normalize_path
from wren.http.response import NOT_FOUND_BODY, Response, Terminated
from wren.middleware.protocol import MiddlewareEntry, noop_next
from wren.routing.actions import Action, ControllerRegistry
from wren.routing.route import Route
from wren.server.errors import http_error_response, internal_error_response
from wren.sessions import Session

logger = logging.getLogger("wren.routing")

ALL_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


class Router:
    """Holds every route and dispatches requests to them."""

    __slots__ = (
        "_all",
        "_container",
        "_controllers",
        "_groups",
        "_middleware",
        "_named",
        "_routes",
        "_url_for",
        "debug",
    )

    def __init__(
        self,
        *,
        container: Container | None = None,
        controllers: ControllerRegistry | None = None,
        url_for: Callable[[str], str] | None = None,
        debug: bool = False,
    ) -> None:
        self._routes: dict[str, list[Route]] = {}
        self._all: list[Route] = []
        self._named: dict[str, Route] = {}
        self._middleware: dict[str, MiddlewareEntry] = {}
        self._groups: list[Mapping[str, Any]] = []
        self._container = container or Container()
        self._controllers = controllers or ControllerRegistry()
        self._url_for = url_for
        self.debug = debug

    @property
    def container(self) -> Container:
        return self._container

    @property
    def controllers(self) -> ControllerRegistry:
        return self._controllers

    # -- Registration --

    def get(self, uri: str, action: Action) -> Route:
        return self.add_route(("GET",), uri, action)

    def post(self, uri: str, action: Action) -> Route:
        return self.add_route(("POST",), uri, action)

    def put(self, uri: str, action: Action) -> Route:
        return self.add_route(("PUT",), uri, action)

    def patch(self, uri: str, action: Action) -> Route:
        return self.add_route(("PATCH",), uri, action)

    def delete(self, uri: str, action: Action) -> Route:
        return self.add_route(("DELETE",), uri, action)

    def options(self, uri: str, action: Action) -> Route:
        return self.add_route(("OPTIONS",), uri, action)

    def any(self, uri: str, action: Action) -> Route:
        """Register one route for every standard method."""
        return self.add_route(ALL_METHODS, uri, action)

    def match(self, methods: Iterable[str], uri: str, action: Action) -> Route:
        """Register one route for an explicit set of methods."""
        return self.add_route(methods, uri, action)

    def add_route(self, methods: Iterable[str], uri: str, action: Action) -> Route:
        """Build a route, apply the innermost open group, and append it."""
        route = Route(
            methods,
            uri,
            action,
            container=self._container,
            controllers=self._controllers,
            on_name=self._register_name,
        )

        if self._groups:
            attributes = self._groups[-1]
            if attributes.get("prefix"):
                route.with_prefix(attributes["prefix"])
            if "middleware" in attributes:
                middleware = attributes["middleware"]
                route.with_middleware(*([middleware] if isinstance(middleware, str) else middleware))

        for method in route.methods:
            self._routes.setdefault(method, []).append(route)
        self._all.append(route)
        return route

    def group(self, attributes: Mapping[str, Any], callback: Callable[[Router], Any]) -> None:
        """Register routes inside *callback* with shared ``prefix``/``middleware``.

        Only the innermost group applies; nesting does not concatenate
        prefixes or merge middleware lists.
        """
        self._groups.append(attributes)
        try:
            callback(self)
        finally:
            self._groups.pop()

    def _register_name(self, name: str, route: Route) -> None:
        existing = self._named.get(name)
        if existing is not None and existing is not route:
            msg = f"Route name {name!r} is already used by {existing!r}"
            raise ConfigurationError(msg)
        if route.name is not None and route.name != name:
            self._named.pop(route.name, None)
        self._named[name] = route

    # -- Middleware registry --

    def register_middleware(self, name: str, middleware: MiddlewareEntry) -> None:
        """Register *middleware* under *name*, replacing any previous entry."""
        self._middleware[name] = middleware

    def register_middleware_group(self, middleware: Mapping[str, MiddlewareEntry]) -> None:
        """Register several middleware at once."""
        for name, entry in middleware.items():
            self.register_middleware(name, entry)

    def has_middleware(self, name: str) -> bool:
        return name in self._middleware

    # -- Introspection --

    @property
    def routes(self) -> tuple[Route, ...]:
        """Every route, in registration order."""
        return tuple(self._all)

    def routes_for(self, method: str) -> tuple[Route, ...]:
        return tuple(self._routes.get(method.upper(), ()))

    def has_route(self, name: str) -> bool:
        return name in self._named

    def get_route(self, name: str) -> Route:
        route = self._named.get(name)
        if route is None:
            raise RouteNotFoundError(name)
        return route

    def resolve_actions(self) -> None:
        """Resolve every controller reference now, failing fast at startup."""
        for route in self._all:
            route.resolve()

    # -- Reverse routing --

    def route(self, name: str, parameters: Mapping[str, Any] | None = None) -> str:
        """Build the URL of the route called *name*.

        Works on the raw URI template, so a group prefix is not part of
        the result. ``{key}`` and ``{key?}`` placeholders are replaced by
        the string form of ``parameters[key]``. Placeholders without a
        value stay in the URL as they are.

        Raises:
            RouteNotFoundError: No route has that name.
        """
        path = "/" + self.get_route(name).uri.lstrip("/")
        for key, value in (parameters or {}).items():
            path = path.replace(f"{{{key}}}", str(value)).replace(f"{{{key}?}}", str(value))
        if self._url_for is not None:
            return self._url_for(path)
        return path

    # -- Dispatch --

    def find(self, method: str, path: str) -> Route | None:
        """The first route accepting *method* and *path*, in registration order."""
        for route in self._routes.get(method.upper(), ()):
            if route.matches(path, method):
                return route
        return None

    def dispatch(self, request: Request) -> Response:
        """Run the full pipeline for *request* and return a response.

        No matching route gives a 404 response. Middleware run in
        order; the first one to return a response ends the request.
        Errors raised while binding parameters, running middleware or
        the action, or building the response become a 500 response,
        except ``MiddlewareNotFoundError``, which propagates.
        """
        method = request.method
        path = normalize_path(request.path)

        route = self.find(method, path)
        if route is None:
            logger.debug("404 %s %s", method, path)
            return Response.html(NOT_FOUND_BODY, 404)

        with self._container.scope({Request: request, Session: request.session}):
            try:
                parameters = route.extract_parameters(path)
                request.path_params.update(parameters)

                blocked = self._run_middleware(route, request)
                if blocked is not None:
                    return blocked

                return to_response(route.run(parameters))
            except MiddlewareNotFoundError:
                raise
            except HTTPError as exc:
                return http_error_response(exc, request)
            except Exception as exc:
                return internal_error_response(exc, request, debug=self.debug)

    def _run_middleware(self, route: Route, request: Request) -> Response | None:
        for name in route.middleware:
            entry = self._middleware.get(name)
            if entry is None:
                raise MiddlewareNotFoundError(name)

            if isinstance(entry, type):
                handler = self._container.resolve(entry).handle
            elif hasattr(entry, "handle"):
                handler = entry.handle
            else:
                handler = entry

            result = handler(request, noop_next)
            if result is not None:
                logger.debug("Middleware %r stopped %s %s", name, request.method, request.path)
                return to_response(result)
        return None


def to_response(result: Any) -> Response:
    """Normalize an action's return value into a ``Response``.

    - ``Response`` passes through; ``Terminated`` unwraps
    - mappings, lists, tuples, dataclasses and objects with ``to_dict()`` become JSON
    - ``str`` becomes HTML; ``None`` an empty HTML body
    - anything else is converted with ``str()`` and sent as HTML
    """
    if isinstance(result, Response):
        return result
    if isinstance(result, Terminated):
        return result.response
    if isinstance(result, str):
        return Response.html(result)
    if result is None:
        return Response.html("")
    if isinstance(result, bytes):
        return Response(body=result)
    if (
        isinstance(result, (Mapping, list, tuple))
        or (dataclasses.is_dataclass(result) and not isinstance(result, type))
        or callable(getattr(result, "to_dict", None))
    ):
        return Response.json(result)
    return Response.html(str(result))
