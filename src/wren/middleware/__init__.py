"""Built-in middleware and the middleware protocol."""

from wren.middleware.auth import AuthConfig, AuthenticationMiddleware, GuestMiddleware
from wren.middleware.csrf import CsrfConfig, CsrfMiddleware
from wren.middleware.protocol import Middleware, Next, noop_next

__all__ = [
    "AuthConfig",
    "AuthenticationMiddleware",
    "CsrfConfig",
    "CsrfMiddleware",
    "GuestMiddleware",
    "Middleware",
    "Next",
    "noop_next",
]
