"""Multi-value parameters for query strings and form bodies.

A field may repeat (``?tag=a&tag=b``, checkbox groups), so every name
maps to a list. Plain item access gives the first value; ``get_list``
gives all of them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl

TRUTHY = frozenset({"true", "1", "yes", "on"})


class QueryParams(Mapping[str, str]):
    """Read-only view over parsed ``name=value`` pairs."""

    __slots__ = ("_data", "_raw")

    _data: dict[str, list[str]]
    _raw: str

    def __init__(self, query_string: str = "", *, data: dict[str, list[str]] | None = None) -> None:
        if data is None:
            data = {}
            for name, value in parse_qsl(query_string, keep_blank_values=True):
                data.setdefault(name, []).append(value)
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_raw", query_string)

    def __setattr__(self, name: str, value: object) -> None:
        msg = "QueryParams is immutable"
        raise AttributeError(msg)

    # -- Mapping --

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"QueryParams({self.to_dict()!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._data.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, ()))

    # -- Typed access --

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """First value as an int; *default* when missing or not a number."""
        try:
            return int(self[key])
        except (KeyError, ValueError):
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """``true``, ``1``, ``yes`` and ``on`` (any case) are True; anything else False."""
        value = self.get(key)
        return default if value is None else value.lower() in TRUTHY

    def to_dict(self) -> dict[str, str | list[str]]:
        """Single values as strings, repeated fields as lists."""
        return {key: values[0] if len(values) == 1 else list(values) for key, values in self._data.items()}

    @property
    def raw(self) -> str:
        return self._raw
