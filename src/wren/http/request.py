"""Immutable HTTP request.

Frozen metadata plus the already-read body. The request is honest about
what it is: received data that doesn't change. The one piece of
mutable state it carries is the ``Session``, which is passed along
explicitly instead of living in a global.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from wren.errors import PayloadTooLarge
from wren.http.cookies import parse_cookies
from wren.http.forms import UploadFile, parse_form_data
from wren.http.headers import Headers
from wren.http.query import QueryParams
from wren.sessions import Session

_SPOOFABLE_METHODS = frozenset({"PUT", "PATCH", "DELETE"})


def normalize_path(path: str) -> str:
    """Collapse a path to one leading slash and no trailing slash."""
    return "/" + path.strip("/")


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``method`` already reflects ``_method`` form spoofing, so an HTML
    form can reach ``PUT``/``PATCH``/``DELETE`` routes. ``path`` is
    normalized (``"/users/1/"`` becomes ``"/users/1"``).
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    form: QueryParams = field(default_factory=QueryParams)
    files: Mapping[str, UploadFile] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    environ: Mapping[str, Any] = field(default_factory=dict, repr=False)
    session: Session = field(default_factory=Session, repr=False, compare=False)

    # Filled by the router once a route matched
    path_params: dict[str, str] = field(default_factory=dict, compare=False)

    # Private: mutable cache for the parsed JSON body
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def server(self) -> Mapping[str, Any]:
        """The raw WSGI environ."""
        return self.environ

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type") or ""

    @property
    def is_json(self) -> bool:
        """True if the body is JSON (``application/json`` or ``+json``)."""
        ct = self.content_type
        return "/json" in ct or "+json" in ct

    @property
    def wants_json(self) -> bool:
        """True if the client asked for JSON in ``Accept``."""
        accept = self.headers.get("accept") or ""
        return "/json" in accept or "+json" in accept

    @property
    def expects_json(self) -> bool:
        return self.is_json or self.wants_json

    @property
    def is_ajax(self) -> bool:
        return self.headers.get("x-requested-with") == "XMLHttpRequest"

    @property
    def ip(self) -> str | None:
        """Client address, honouring the first ``X-Forwarded-For`` hop."""
        forwarded = self.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return self.environ.get("REMOTE_ADDR")

    @property
    def user_agent(self) -> str | None:
        return self.headers.get("user-agent")

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    @property
    def full_url(self) -> str:
        """Absolute URL rebuilt from the environ (PEP 3333 recipe)."""
        env = self.environ
        scheme = env.get("wsgi.url_scheme", "http")
        host = self.headers.get("host")
        if not host:
            host = env.get("SERVER_NAME", "localhost")
            port = str(env.get("SERVER_PORT", ""))
            if port and port != ("443" if scheme == "https" else "80"):
                host = f"{host}:{port}"
        return f"{scheme}://{host}{quote(self.url, safe='/?=&%')}"

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def is_method(self, method: str) -> bool:
        return self.method == method.upper()

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)

    def cookie(self, name: str, default: str | None = None) -> str | None:
        return self.cookies.get(name, default)

    def file(self, name: str) -> UploadFile | None:
        return self.files.get(name)

    def has_file(self, name: str) -> bool:
        upload = self.files.get(name)
        return upload is not None and upload.size > 0

    # -- Input --

    def json(self) -> Any:
        """Parse the body as JSON. Cached; ``None`` for an empty body."""
        if "_json" not in self._cache:
            self._cache["_json"] = json_module.loads(self.body) if self.body else None
        return self._cache["_json"]

    def all(self) -> dict[str, Any]:
        """Query, form and JSON-object input merged (later sources win)."""
        merged: dict[str, Any] = {**self.query.to_dict(), **self.form.to_dict()}
        if self.is_json:
            try:
                payload = self.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                merged.update(payload)
        return merged

    def input(self, key: str, default: Any = None) -> Any:
        """A single value from ``all()``."""
        value = self.all().get(key)
        return default if value is None else value

    def only(self, *keys: str) -> dict[str, Any]:
        data = self.all()
        return {k: data[k] for k in _flatten(keys) if k in data}

    def except_(self, *keys: str) -> dict[str, Any]:
        excluded = set(_flatten(keys))
        return {k: v for k, v in self.all().items() if k not in excluded}

    def has(self, *keys: str) -> bool:
        data = self.all()
        return all(k in data for k in _flatten(keys))

    # -- Factory --

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, Any],
        session: Session | None = None,
        *,
        max_content_length: int | None = None,
    ) -> Request:
        """Create a Request from a WSGI environ, reading the whole body.

        Raises:
            PayloadTooLarge: ``CONTENT_LENGTH`` is over *max_content_length*.
            BadRequest: The form body cannot be parsed.
        """
        headers = Headers.from_environ(environ)
        body = _read_body(environ, max_content_length)
        ct = headers.get("content-type") or ""
        form, files = parse_form_data(body, ct) if body else (QueryParams(), {})

        method = str(environ.get("REQUEST_METHOD", "GET")).upper()
        if method == "POST":
            spoofed = (form.get("_method") or headers.get("x-http-method-override") or "").upper()
            if spoofed in _SPOOFABLE_METHODS:
                method = spoofed

        raw_path = environ.get("PATH_INFO", "") or "/"
        # WSGI hands PATH_INFO over as latin-1 decoded bytes
        path = raw_path.encode("latin-1").decode("utf-8", errors="replace")

        return cls(
            method=method,
            path=normalize_path(path),
            headers=headers,
            query=QueryParams(environ.get("QUERY_STRING", "")),
            form=form,
            files=files,
            cookies=parse_cookies(headers.get("cookie", "") or ""),
            body=body,
            environ=environ,
            session=session if session is not None else Session(),
        )


def _flatten(keys: Iterable[Any]) -> list[str]:
    out: list[str] = []
    for key in keys:
        if isinstance(key, (list, tuple, set, frozenset)):
            out.extend(key)
        else:
            out.append(key)
    return out


def _read_body(environ: Mapping[str, Any], limit: int | None) -> bytes:
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    if length <= 0:
        return b""
    if limit is not None and length > limit:
        msg = f"Request body of {length} bytes exceeds the {limit} byte limit"
        raise PayloadTooLarge(msg)
    stream = environ.get("wsgi.input")
    if stream is None:
        return b""
    return stream.read(length)
