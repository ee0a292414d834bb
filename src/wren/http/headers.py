"""Immutable, case-insensitive HTTP headers.

Implements ``Mapping[str, str]``. Built from the ``HTTP_*`` keys of a
WSGI environ (plus ``CONTENT_TYPE`` and ``CONTENT_LENGTH``, which WSGI
keeps unprefixed).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[str, str], ...] = ()) -> None:
        object.__setattr__(self, "_raw", tuple((name.lower(), value) for name, value in raw))

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> Headers:
        """Collect request headers from a WSGI environ."""
        pairs: list[tuple[str, str]] = []
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                name = key[5:].replace("_", "-").lower()
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                if not value:
                    continue
                name = key.replace("_", "-").lower()
            else:
                continue
            pairs.append((name, str(value)))
        return cls(tuple(pairs))

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower()
        for name, value in self._raw:
            if name == key_lower:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower()
        return any(name == key_lower for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key_lower = key.lower()
        return [value for name, value in self._raw if name == key_lower]

    @property
    def raw(self) -> tuple[tuple[str, str], ...]:
        """Header pairs with lower-cased names, in arrival order."""
        return self._raw
