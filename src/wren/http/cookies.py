"""Request cookies in, ``Set-Cookie`` headers out.

``parse_cookies`` reads the ``Cookie`` header for ``Request``;
``SetCookie`` is what ``Response.with_cookie`` attaches. Values are
percent-encoded on the way out and decoded on the way in, so any
string survives the round trip.
"""

from dataclasses import dataclass
from urllib.parse import quote, unquote

SAMESITE_VALUES = frozenset({"lax", "strict", "none"})


def parse_cookies(header: str) -> dict[str, str]:
    """Map cookie names to decoded values. Pairs without ``=`` are skipped."""
    cookies: dict[str, str] = {}
    for pair in (header or "").split(";"):
        name, sep, value = pair.partition("=")
        if sep:
            cookies[name.strip()] = unquote(value.strip().strip('"'))
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """One ``Set-Cookie`` directive."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def __post_init__(self) -> None:
        if self.samesite and self.samesite.lower() not in SAMESITE_VALUES:
            msg = f"Invalid SameSite value {self.samesite!r}; expected one of lax, strict, none"
            raise ValueError(msg)

    @classmethod
    def expired(cls, name: str, path: str = "/") -> "SetCookie":
        """A directive telling the browser to drop cookie *name* now."""
        return cls(name=name, value="", max_age=0, path=path)

    def to_header_value(self) -> str:
        attributes = [
            ("Max-Age", None if self.max_age is None else str(self.max_age)),
            ("Path", self.path or None),
            ("Domain", self.domain),
            ("Secure", "" if self.secure else None),
            ("HttpOnly", "" if self.httponly else None),
            ("SameSite", self.samesite or None),
        ]
        parts = [f"{self.name}={quote(self.value, safe='')}"]
        parts.extend(key if value == "" else f"{key}={value}" for key, value in attributes if value is not None)
        return "; ".join(parts)
