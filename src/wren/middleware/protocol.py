"""Middleware protocol and Next type alias.

A middleware is anything with ``handle(request, next)`` returning a
``Response`` to stop the request, or ``None`` to let it through::

    class RequireJson:
        def handle(self, request: Request, next: Next) -> Response | None:
            if not request.expects_json:
                return Response.html("JSON only", 406)
            return None

The router runs a route's middleware itself, one after another, so
``next`` is a no-op that returns ``None``. Calling it is allowed and
harmless; returning ``None`` is the way to continue.

Registered entries may be instances, classes (built through the
container for every request, so they can take request-scoped
collaborators in ``__init__``) or plain ``(request, next)`` functions.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from wren.http.request import Request
    from wren.http.response import Response

# The continuation handed to a middleware
type Next = Callable[[Request], Response | None]


@runtime_checkable
class Middleware(Protocol):
    """Protocol for wren middleware."""

    def handle(self, request: Request, next: Next) -> Response | None: ...


type MiddlewareEntry = Middleware | type | Callable[[Request, Next], Response | None]


def noop_next(request: Request) -> Response | None:
    """The continuation passed to every middleware."""
    return None
