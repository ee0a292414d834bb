"""Wren exception hierarchy.

Shared across Router, Route, App, container and middleware so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when app configuration is invalid.

    Typically raised during ``App.freeze()`` at startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers. ``Router.dispatch`` converts it into a response
    carrying the same status instead of a 500.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 raised from inside an action (``Model.find_or_fail`` and friends)."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403 raised from inside an action."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class BadRequest(HTTPError):  # noqa: N818
    """400 for a request body that cannot be parsed."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413 for a request body over ``max_content_length``."""

    def __init__(self, detail: str = "Payload Too Large") -> None:
        super().__init__(status=413, detail=detail)


# -- Routing --


class RouteNotFoundError(WrenError, LookupError):
    """No route is registered under the requested name (reverse routing)."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Route [{name}] not found")


class MiddlewareNotFoundError(WrenError, LookupError):
    """A route references a middleware name nobody registered.

    Propagates out of ``Router.dispatch``; it is a wiring bug, not a
    request failure.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Middleware [{name}] not found")


class ActionResolutionError(WrenError):
    """A ``Controller@method`` reference points at a missing class or method."""


class InvalidActionError(WrenError, TypeError):
    """A route action is neither callable nor a controller reference."""


# -- Container --


class ResolutionError(WrenError):
    """The container cannot build the requested type."""
