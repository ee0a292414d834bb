"""Wren: a small synchronous MVC web framework.

Routes map URI templates to controller methods; middleware guard them;
controllers return responses. Served over WSGI.

Basic usage::

    from wren import App, AppConfig, Controller

    app = App(AppConfig(secret_key="s3cr3t"))

    @app.controller
    class HomeController(Controller):
        def index(self):
            return "Hello, World!"

        def show(self, id):
            return {"id": id}

    app.router.get("/", "HomeController@index").named("home")
    app.router.get("/items/{id}", "HomeController@show")

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Container",
    "Controller",
    "Forbidden",
    "HTTPError",
    "Middleware",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "Route",
    "Router",
    "Terminated",
    "WrenError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Container":
        from wren.container import Container

        return Container

    if name == "Controller":
        from wren.controller import Controller

        return Controller

    if name in ("Request", "Response", "Terminated"):
        from wren import http as _http

        return getattr(_http, name)

    if name in ("Route", "Router"):
        from wren import routing as _routing

        return getattr(_routing, name)

    if name in ("Middleware", "Next"):
        from wren.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("WrenError", "ConfigurationError", "HTTPError", "NotFound", "Forbidden"):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
