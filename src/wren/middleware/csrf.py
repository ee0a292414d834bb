"""CSRF protection middleware: token-based, session-backed.

Validates the session's CSRF token on state-changing requests. Safe
methods (GET, HEAD, OPTIONS) and exempt paths pass untouched. The token
is read from the ``_token`` form field, then from the ``X-CSRF-TOKEN``
header. A missing or wrong token answers ``419``.

Usage::

    router.register_middleware("csrf", CsrfMiddleware(CsrfConfig(exempt=("api/*",))))

Templates::

    <form method="post">
        {{ csrf_field() }}
        ...
    </form>
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next
from wren.security.csrf import FIELD_NAME, HEADER_NAME, Csrf

logger = logging.getLogger("wren.security")

SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})

MISMATCH_BODY = "419 - CSRF Token Mismatch"


@dataclass(frozen=True, slots=True)
class CsrfConfig:
    """CSRF middleware configuration.

    ``exempt`` holds path patterns where ``*`` matches anything
    (``"api/*"``, ``"webhooks/stripe"``). Leading and trailing slashes
    are ignored on both sides.
    """

    field_name: str = FIELD_NAME
    header_name: str = HEADER_NAME
    exempt: tuple[str, ...] = ()


def _compile_exempt(pattern: str) -> re.Pattern[str]:
    parts = (re.escape(p) for p in pattern.strip("/").split("*"))
    return re.compile(".*".join(parts))


class CsrfMiddleware:
    """Reject state-changing requests without a valid CSRF token."""

    __slots__ = ("_exempt", "config")

    # Subclasses may list additional exempt patterns here
    exempt: tuple[str, ...] = ()

    def __init__(self, config: CsrfConfig | None = None) -> None:
        self.config = config or CsrfConfig()
        self._exempt = tuple(_compile_exempt(p) for p in (*type(self).exempt, *self.config.exempt))

    def handle(self, request: Request, next: Next) -> Response | None:
        if request.method in SAFE_METHODS or self.is_exempt(request.path):
            return next(request)

        token = request.input(self.config.field_name) or request.header(self.config.header_name)
        if not token or not Csrf(request.session).validate_token(token):
            logger.warning("CSRF token mismatch on %s %s", request.method, request.path)
            return Response.html(MISMATCH_BODY, 419)
        return next(request)

    def is_exempt(self, path: str) -> bool:
        trimmed = path.strip("/")
        return any(p.fullmatch(trimmed) for p in self._exempt)
