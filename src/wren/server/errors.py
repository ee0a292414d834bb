"""Turning exceptions raised during dispatch into responses."""

import logging
from typing import Any

from markupsafe import escape

from wren.errors import HTTPError
from wren.http.response import SERVER_ERROR_BODY, Response

logger = logging.getLogger("wren.server")


def http_error_response(exc: HTTPError, request: Any) -> Response:
    """Map an ``HTTPError`` raised by an action to a response with its status."""
    logger.debug("%d %s %s - %s", exc.status, request.method, request.path, exc.detail)
    body = str(escape(exc.detail)) if exc.detail else f"Error {exc.status}"
    response = Response.html(body, exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


def internal_error_response(exc: BaseException, request: Any, *, debug: bool) -> Response:
    """Log *exc* and build the 500 response.

    Debug mode renders the full error page (message, location, stack
    trace, request). Otherwise the body is a fixed message that leaks
    nothing about the failure.
    """
    logger.error(
        "500 %s %s",
        getattr(request, "method", "?"),
        getattr(request, "path", "?"),
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    if debug:
        from wren.server.debug_page import render_debug_page

        return Response.html(render_debug_page(exc, request), 500)
    return Response.html(SERVER_ERROR_BODY, 500)
