"""Wren application class.

The App wires the pieces together: config, container, router,
controller registry, views, sessions and (optionally) the database.
It is a WSGI callable, so any WSGI server can host it::

    from wren import App, AppConfig

    app = App(AppConfig(secret_key="s3cr3t", controller_namespace="myapp.controllers"))

    app.router.get("/", "HomeController@index").named("home")
    app.router.group({"middleware": "auth"}, lambda r: r.get("/dashboard", "DashboardController@index"))

    app.run()
"""

from __future__ import annotations

import importlib
import logging
import secrets
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from wren.config import AppConfig
from wren.container import Container
from wren.data.database import Database
from wren.data.model import Model
from wren.errors import ConfigurationError, HTTPError
from wren.http.cookies import parse_cookies
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.auth import AuthenticationMiddleware, GuestMiddleware
from wren.middleware.csrf import CsrfMiddleware
from wren.middleware.protocol import MiddlewareEntry
from wren.routing.actions import ControllerRegistry
from wren.routing.router import Router
from wren.security.csrf import Csrf
from wren.sessions import Session, SessionConfig, SessionStore
from wren.templating.view import View

logger = logging.getLogger("wren.server")

BAD_REQUEST_BODY = "400 - Bad Request"
PAYLOAD_TOO_LARGE_BODY = "413 - Payload Too Large"

# Fixed bodies for requests rejected before dispatch
_REJECTED_BODIES = {400: BAD_REQUEST_BODY, 413: PAYLOAD_TOO_LARGE_BODY}

type StartResponse = Callable[[str, list[tuple[str, str]]], Any]

DEFAULT_MIDDLEWARE: Mapping[str, MiddlewareEntry] = {
    "auth": AuthenticationMiddleware,
    "guest": GuestMiddleware,
    "csrf": CsrfMiddleware,
}


class App:
    """The wren application.

    Register routes on ``app.router`` and middleware with
    ``app.middleware()`` during setup. ``freeze()`` (called by ``run()``)
    resolves every controller reference so a typo fails at startup
    rather than on the first request that hits it.
    """

    __slots__ = (
        "_frozen",
        "config",
        "container",
        "controllers",
        "database",
        "router",
        "sessions",
        "view",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        view: View | None = None,
        database: Database | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._frozen = False

        self.container = Container()
        self.controllers = ControllerRegistry(self.config.controller_namespace)
        self.router = Router(
            container=self.container,
            controllers=self.controllers,
            url_for=self.url,
            debug=self.config.debug,
        )
        self.view = view or View.from_config(self.config)
        self.sessions = SessionStore(self._session_config())

        if database is None and self.config.database:
            database = Database(self.config.database, echo=self.config.debug)
        self.database = database
        if database is not None:
            Model.use(database)
            self.container.instance(Database, database)

        self._register_bindings()
        self._register_view_globals()
        self.router.register_middleware_group(DEFAULT_MIDDLEWARE)

    def _session_config(self) -> SessionConfig:
        secret = self.config.secret_key
        if not secret:
            if not self.config.debug:
                msg = "AppConfig.secret_key must be set to sign session cookies."
                raise ConfigurationError(msg)
            secret = secrets.token_hex(32)
            logger.warning("No secret_key configured; sessions use a throwaway key until restart")
        return SessionConfig(
            secret_key=secret,
            cookie_name=self.config.session_cookie,
            max_age=self.config.session_max_age,
            secure=self.config.session_secure,
            samesite=self.config.session_samesite,
        )

    def _register_bindings(self) -> None:
        c = self.container
        c.instance(App, self)
        c.instance(AppConfig, self.config)
        c.instance(Container, c)
        c.instance(Router, self.router)
        c.instance(ControllerRegistry, self.controllers)
        c.instance(View, self.view)
        c.instance(SessionStore, self.sessions)
        c.alias("app", App)
        c.alias("config", AppConfig)
        c.alias("router", Router)
        c.alias("view", View)

    def _register_view_globals(self) -> None:
        view = self.view
        view.add_global("url", self.url)
        view.add_global("asset", self.asset)
        view.add_global("route", self.router.route)
        view.add_global("csrf_token", lambda: self.container.resolve(Csrf).get_token())
        view.add_global("csrf_field", lambda: self.container.resolve(Csrf).field())
        view.add_global("old", lambda key, default="": self.container.resolve(Session).old(key, default))
        view.share("app_name", self.config.name)

    # -- Setup --

    def middleware(self, name: str, middleware: MiddlewareEntry) -> None:
        """Register *middleware* under *name* for routes to reference."""
        self.router.register_middleware(name, middleware)

    def controller(self, cls: type, name: str | None = None) -> type:
        """Register a controller class; usable as a decorator."""
        return self.controllers.register(cls, name)

    def load_routes(self, source: str | Callable[[Router], Any]) -> None:
        """Register routes from a callable or a module.

        A string names a module (``"myapp.routes"``) whose ``register``
        function receives the router.
        """
        if isinstance(source, str):
            module = importlib.import_module(source)
            register = getattr(module, "register", None)
            if not callable(register):
                msg = f"Route module {source!r} has no register(router) function"
                raise ConfigurationError(msg)
            source = register
        source(self.router)

    def freeze(self) -> None:
        """Resolve every route's controller now. Idempotent."""
        if self._frozen:
            return
        self.router.resolve_actions()
        self._frozen = True
        logger.debug("App frozen with %d routes", len(self.router.routes))

    # -- URLs --

    def url(self, path: str = "") -> str:
        """Absolute URL for *path* under the configured base URL."""
        base = self.config.url.rstrip("/")
        path = path.lstrip("/")
        return f"{base}/{path}" if path else base

    def asset(self, path: str) -> str:
        return self.url(path)

    # -- Request handling --

    def handle(self, request: Request) -> Response:
        """Dispatch *request* with the request-scoped CSRF helper available."""
        with self.container.scope({Csrf: Csrf(request.session)}):
            return self.router.dispatch(request)

    def wsgi_app(self, environ: dict[str, Any], start_response: StartResponse) -> Iterable[bytes]:
        """The WSGI entry point.

        Loads the session from its cookie, builds the ``Request``,
        dispatches it and writes the session cookie back when the
        session changed.
        """
        cookies = parse_cookies(environ.get("HTTP_COOKIE", ""))
        session = self.sessions.load(cookies.get(self.sessions.cookie_name))

        try:
            request = Request.from_environ(
                environ, session, max_content_length=self.config.max_content_length
            )
        except HTTPError as exc:
            logger.warning(
                "%d %s %s: %s", exc.status, environ.get("REQUEST_METHOD"), environ.get("PATH_INFO"), exc.detail
            )
            response = Response.html(_REJECTED_BODIES.get(exc.status, BAD_REQUEST_BODY), exc.status)
        else:
            response = self.handle(request)
            logger.info("%s %s %d", request.method, request.path, response.status)

        response = self.sessions.save(response, session)
        start_response(response.status_line, response.header_items())
        return [response.body_bytes]

    def __call__(self, environ: dict[str, Any], start_response: StartResponse) -> Iterable[bytes]:
        return self.wsgi_app(environ, start_response)

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve with the standard library's development WSGI server."""
        from wsgiref.simple_server import make_server

        from wren.log import configure_logging

        configure_logging(self.config)
        self.freeze()

        host = host or self.config.host
        port = port or self.config.port
        with make_server(host, port, self) as server:
            logger.info("%s serving on http://%s:%d", self.config.name, host, port)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                logger.info("Shutting down")
