"""Signed cookie sessions.

Session data is serialized as JSON and signed using ``itsdangerous``.
The App loads the session before dispatch and attaches it to the
``Request``; middleware and controllers read it from there
(``request.session``) or receive it from the container. There is no
process-wide session global, so concurrent tests stay isolated.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from itsdangerous import BadSignature, URLSafeTimedSerializer

from wren.errors import ConfigurationError

if TYPE_CHECKING:
    from wren.http.response import Response

logger = logging.getLogger("wren.security")

FLASH_KEY = "_flash"
OLD_INPUT_KEY = "_old_input"
ERRORS_KEY = "errors"


class Session(MutableMapping[str, Any]):
    """Keyed session state for one request.

    Behaves like a dict. ``modified`` flips on any write so the store
    only re-signs the cookie when something changed.
    """

    __slots__ = ("_data", "modified")

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})
        self.modified = False

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.modified = True

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self.modified = True

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Session({self._data!r})"

    def pull(self, key: str, default: Any = None) -> Any:
        """Return and remove *key*."""
        if key not in self._data:
            return default
        value = self._data[key]
        del self[key]
        return value

    # -- Flash data --

    def flash(self, key: str, value: Any) -> None:
        """Store a value readable exactly once via ``get_flash``."""
        bag = dict(self._data.get(FLASH_KEY, {}))
        bag[key] = value
        self[FLASH_KEY] = bag

    def get_flash(self, key: str, default: Any = None) -> Any:
        """Read and forget a flashed value."""
        bag = self._data.get(FLASH_KEY)
        if not bag or key not in bag:
            return default
        bag = dict(bag)
        value = bag.pop(key)
        if bag:
            self[FLASH_KEY] = bag
        else:
            del self[FLASH_KEY]
        return value

    def has_flash(self, key: str) -> bool:
        return key in self._data.get(FLASH_KEY, {})

    def old(self, key: str, default: Any = None) -> Any:
        """Previously submitted input, kept after a failed validation."""
        return self._data.get(OLD_INPUT_KEY, {}).get(key, default)

    # -- Lifecycle --

    def invalidate(self) -> None:
        """Drop every key (logout)."""
        self._data.clear()
        self.modified = True

    def regenerate(self) -> None:
        """Rotate the session nonce and drop the CSRF token (login).

        The signed cookie changes whenever its payload changes, so a new
        nonce is enough to prevent session fixation. A fresh CSRF token
        is generated on next use.
        """
        self._data.pop("_csrf_token", None)
        self["_nonce"] = secrets.token_hex(16)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session cookie configuration.

    ``secret_key`` is required: sessions are signed, not encrypted.
    """

    secret_key: str
    cookie_name: str = "wren_session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class SessionStore:
    """Loads sessions from and saves them to a signed cookie."""

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="wren.session")

    @property
    def cookie_name(self) -> str:
        return self._config.cookie_name

    def load(self, cookie_value: str | None) -> Session:
        """Deserialize and verify a session cookie.

        Tampered or expired cookies yield an empty session.
        """
        if not cookie_value:
            return Session()
        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadSignature:
            logger.debug("Discarding session cookie with a bad or expired signature")
            return Session()
        if not isinstance(data, dict):
            return Session()
        return Session(data)

    def dump(self, session: Session) -> str:
        return self._serializer.dumps(session.to_dict())

    def save(self, response: Response, session: Session) -> Response:
        """Serialize the session and set the cookie on the response.

        Unmodified sessions leave the response untouched.
        """
        if not session.modified:
            return response
        cfg = self._config
        return response.with_cookie(
            name=cfg.cookie_name,
            value=self.dump(session),
            max_age=cfg.max_age,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )
