"""CSRF tokens stored in the session.

One token per session, generated on first use. Forms embed it with
``csrf.field()`` (or ``{{ csrf_field() }}`` in templates); AJAX
clients send it in the ``X-CSRF-TOKEN`` header. ``CsrfMiddleware``
compares the submitted value with the stored one.
"""

import secrets
from collections.abc import Mapping
from typing import Any

from markupsafe import Markup, escape

from wren.sessions import Session

TOKEN_KEY = "_csrf_token"
FIELD_NAME = "_token"
HEADER_NAME = "X-CSRF-TOKEN"
TOKEN_BYTES = 32


class Csrf:
    """CSRF token operations over one request's session."""

    __slots__ = ("session",)

    token_key = TOKEN_KEY
    field_name = FIELD_NAME

    def __init__(self, session: Session) -> None:
        self.session = session

    def generate_token(self) -> str:
        """Store and return a fresh token (64 hex characters)."""
        token = secrets.token_hex(TOKEN_BYTES)
        self.session[self.token_key] = token
        return token

    def get_token(self) -> str:
        """The session's token, generated if there is none yet."""
        token = self.session.get(self.token_key)
        if not token:
            return self.generate_token()
        return token

    def validate_token(self, token: str | None) -> bool:
        """Constant-time comparison against the stored token."""
        expected = self.session.get(self.token_key)
        if not expected or not token or not isinstance(token, str):
            return False
        return secrets.compare_digest(expected.encode("utf-8"), token.encode("utf-8"))

    def validate_request(self, data: Mapping[str, Any]) -> bool:
        """Validate the ``_token`` field of submitted *data*."""
        return self.validate_token(data.get(self.field_name))

    def field(self) -> Markup:
        """A hidden ``<input>`` carrying the token, safe to embed in HTML."""
        return Markup('<input type="hidden" name="{}" value="{}">').format(
            escape(self.field_name), escape(self.get_token())
        )
