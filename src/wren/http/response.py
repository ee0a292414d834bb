"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable; built up one
transformation at a time. Class-level factories (``html``,
``json``, ``redirect``...) cover the common shapes.
"""

from __future__ import annotations

import dataclasses
import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime
from http import HTTPStatus
from typing import Any

from wren.http.cookies import SetCookie

HTML = "text/html; charset=utf-8"
JSON = "application/json"
TEXT = "text/plain; charset=utf-8"

NOT_FOUND_BODY = "404 - Page Not Found"
SERVER_ERROR_BODY = "500 - Internal Server Error"


def json_default(value: Any) -> Any:
    """``json.dumps`` fallback for dataclasses, models, dates and sets."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status, headers, and cookies. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Factories --

    @classmethod
    def html(cls, html: str, status: int = 200, headers: Mapping[str, str] | None = None) -> Response:
        return cls(body=html, status=status, headers=tuple((headers or {}).items()))

    @classmethod
    def json(cls, data: Any, status: int = 200, headers: Mapping[str, str] | None = None) -> Response:
        body = json_module.dumps(data, default=json_default)
        return cls(body=body, status=status, content_type=JSON, headers=tuple((headers or {}).items()))

    @classmethod
    def text_plain(cls, text: str, status: int = 200) -> Response:
        return cls(body=text, status=status, content_type=TEXT)

    @classmethod
    def redirect(cls, url: str, status: int = 302) -> Response:
        return cls(body="", status=status, headers=(("Location", url),))

    @classmethod
    def download(
        cls,
        content: str | bytes,
        filename: str,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """An ``attachment`` response for *content* under *filename*."""
        payload = content.encode("utf-8") if isinstance(content, str) else content
        safe_name = filename.replace('"', "").replace("\r", "").replace("\n", "")
        return cls(
            body=payload,
            content_type="application/octet-stream",
            headers=(
                ("Content-Disposition", f'attachment; filename="{safe_name}"'),
                *(headers or {}).items(),
            ),
        )

    @classmethod
    def not_found(cls, message: str = "Not Found") -> Response:
        return cls.html(message, 404)

    @classmethod
    def forbidden(cls, message: str = "Forbidden") -> Response:
        return cls.html(message, 403)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized") -> Response:
        return cls.html(message, 401)

    @classmethod
    def error(cls, message: str = "Internal Server Error") -> Response:
        return cls.html(message, 500)

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Response:
        """Return a new Response with an additional Set-Cookie."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return replace(self, cookies=(*self.cookies, cookie))

    def without_cookie(self, name: str, path: str = "/") -> Response:
        """Return a new Response that deletes a cookie (Max-Age=0)."""
        cookie = SetCookie.expired(name, path)
        return replace(self, cookies=(*self.cookies, cookie))

    # -- Accessors --

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of header *name* (case-insensitive)."""
        name_lower = name.lower()
        for key, value in self.headers:
            if key.lower() == name_lower:
                return value
        return default

    @property
    def location(self) -> str | None:
        return self.header("Location")

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and self.location is not None

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    @property
    def status_text(self) -> str:
        """Reason phrase for the status code (``"OK"``, ``"Not Found"``)."""
        if self.status == 419:
            return "Page Expired"
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return "Unknown"

    @property
    def status_line(self) -> str:
        """The WSGI status string, e.g. ``"200 OK"``."""
        return f"{self.status} {self.status_text}"

    def header_items(self) -> list[tuple[str, str]]:
        """All headers as a WSGI list, with Content-Type and Set-Cookie."""
        items: list[tuple[str, str]] = [("Content-Type", self.content_type)]
        items.extend((name, value) for name, value in self.headers if name.lower() != "content-type")
        items.extend(("Set-Cookie", cookie.to_header_value()) for cookie in self.cookies)
        if self.header("Content-Length") is None:
            items.append(("Content-Length", str(len(self.body_bytes))))
        return items


@dataclass(frozen=True, slots=True)
class Terminated:
    """An action that ended early with a finished response.

    Returned by ``Controller.validate`` and ``Controller.require_auth``
    when the request cannot continue. The action hands it straight back
    and ``Router.dispatch`` sends ``response`` as is.
    """

    response: Response
