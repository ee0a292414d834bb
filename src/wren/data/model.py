"""Active-record models over ``Query``.

A model class maps to one table; an instance wraps one row::

    class User(Model):
        fillable = ("name", "email")

        def posts(self) -> list[Post]:
            return self.has_many(Post)

    Model.use(db)

    user = User.create({"name": "Alice", "email": "alice@example.com"})
    user.name = "Alicia"
    user.save()

    admins = User.where("role", "admin").order_by("name").get()

Table names default to the snake_case plural of the class name
(``BlogPost`` uses ``blog_posts``). Attributes are read and written as
plain attributes (``user.name``) or items (``user["name"]``). A column
that shares its name with a model method or setting (``key``,
``table``) is only reachable as an item.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, ClassVar, Self

from wren.data.database import Database
from wren.data.errors import DataError, ModelNotFoundError
from wren.data.query import Query
from wren.http.response import json_default

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class Model:
    """Base class for active-record models."""

    table: ClassVar[str | None] = None
    primary_key: ClassVar[str] = "id"
    fillable: ClassVar[tuple[str, ...]] = ()
    guarded: ClassVar[tuple[str, ...]] = ("*",)
    timestamps: ClassVar[bool] = True
    CREATED_AT: ClassVar[str] = "created_at"
    UPDATED_AT: ClassVar[str] = "updated_at"

    _database: ClassVar[Database | None] = None

    def __init__(self, attributes: Mapping[str, Any] | None = None) -> None:
        object.__setattr__(self, "_attributes", {})
        object.__setattr__(self, "_original", {})
        object.__setattr__(self, "exists", False)
        self.fill(attributes or {})

    # -- Connection --

    @classmethod
    def use(cls, db: Database) -> None:
        """Bind *db* to this model class and its subclasses."""
        cls._database = db

    @classmethod
    def database(cls) -> Database:
        if cls._database is None:
            msg = f"{cls.__name__} has no Database; call Model.use(db) first"
            raise DataError(msg)
        return cls._database

    @classmethod
    def table_name(cls) -> str:
        return cls.table or f"{snake_case(cls.__name__)}s"

    @classmethod
    def foreign_key(cls) -> str:
        """Column other tables use to point here (``User`` gives ``user_id``)."""
        return f"{snake_case(cls.__name__)}_{cls.primary_key}"

    @classmethod
    def query(cls) -> Query:
        return Query(cls.table_name(), db=cls.database())

    # -- Finders --

    @classmethod
    def hydrate(cls, row: Mapping[str, Any]) -> Self:
        """Build an instance for a row that already exists in the table."""
        model = cls()
        object.__setattr__(model, "_attributes", dict(row))
        object.__setattr__(model, "_original", dict(row))
        object.__setattr__(model, "exists", True)
        return model

    @classmethod
    def find(cls, id: Any) -> Self | None:
        row = cls.query().find(id, cls.primary_key)
        return cls.hydrate(row) if row is not None else None

    @classmethod
    def find_or_fail(cls, id: Any) -> Self:
        """Like ``find`` but raises ``ModelNotFoundError`` (a 404) on a miss."""
        model = cls.find(id)
        if model is None:
            msg = f"{cls.__name__} with {cls.primary_key} {id} not found"
            raise ModelNotFoundError(msg)
        return model

    @classmethod
    def all(cls) -> list[Self]:
        return [cls.hydrate(row) for row in cls.query().get()]

    @classmethod
    def first(cls) -> Self | None:
        row = cls.query().first()
        return cls.hydrate(row) if row is not None else None

    @classmethod
    def where(cls, column: str, operator: Any, value: Any = ...) -> Query:
        """A ``Query`` on this model's table. Hydrate rows with ``hydrate``."""
        if value is ...:
            return cls.query().where(column, operator)
        return cls.query().where(column, operator, value)

    @classmethod
    def create(cls, attributes: Mapping[str, Any]) -> Self:
        model = cls(attributes)
        model.save()
        return model

    # -- Persistence --

    def save(self) -> bool:
        """INSERT a new model or UPDATE the dirty attributes of an existing one."""
        if self.exists:
            return self._perform_update()
        return self._perform_insert()

    def _perform_insert(self) -> bool:
        if self.timestamps:
            now = _now()
            self._attributes.setdefault(self.CREATED_AT, now)
            self._attributes.setdefault(self.UPDATED_AT, now)
        new_id = self.query().insert(self._attributes)
        if self._attributes.get(self.primary_key) is None:
            self._attributes[self.primary_key] = new_id
        object.__setattr__(self, "exists", True)
        self._sync_original()
        return True

    def _perform_update(self) -> bool:
        dirty = self.dirty()
        if not dirty:
            return True
        if self.timestamps and self.UPDATED_AT not in dirty:
            self._attributes[self.UPDATED_AT] = _now()
            dirty = self.dirty()
        self.query().where(self.primary_key, "=", self.key).update(dirty)
        self._sync_original()
        return True

    def delete(self) -> bool:
        """Delete the row. Returns False if the model was never saved."""
        if not self.exists:
            return False
        self.query().where(self.primary_key, "=", self.key).delete()
        object.__setattr__(self, "exists", False)
        return True

    # -- Attributes --

    @property
    def key(self) -> Any:
        return self._attributes.get(self.primary_key)

    def fill(self, attributes: Mapping[str, Any]) -> Self:
        """Assign the mass-assignable subset of *attributes*."""
        for key, value in attributes.items():
            if self.is_fillable(key):
                self._attributes[key] = value
        return self

    @classmethod
    def is_fillable(cls, key: str) -> bool:
        if cls.fillable:
            return key in cls.fillable
        if "*" in cls.guarded:
            return False
        return key not in cls.guarded

    def dirty(self) -> dict[str, Any]:
        """Attributes changed since the model was loaded or last saved."""
        return {
            key: value
            for key, value in self._attributes.items()
            if key not in self._original or self._original[key] != value
        }

    def _sync_original(self) -> None:
        object.__setattr__(self, "_original", dict(self._attributes))

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        try:
            return self.__dict__["_attributes"][name]
        except KeyError:
            msg = f"{type(self).__name__!r} has no attribute {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or name == "exists":
            object.__setattr__(self, name, value)
        else:
            self._attributes[name] = value

    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._attributes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return type(self) is type(other) and self.exists and other.exists and self.key == other.key

    __hash__ = None  # type: ignore[assignment]

    # -- Relations --

    def has_one[M: Model](
        self, related: type[M], foreign_key: str | None = None, local_key: str | None = None
    ) -> M | None:
        foreign_key = foreign_key or self.foreign_key()
        value = self._attributes.get(local_key or self.primary_key)
        row = related.query().where(foreign_key, "=", value).first()
        return related.hydrate(row) if row is not None else None

    def has_many[M: Model](
        self, related: type[M], foreign_key: str | None = None, local_key: str | None = None
    ) -> list[M]:
        foreign_key = foreign_key or self.foreign_key()
        value = self._attributes.get(local_key or self.primary_key)
        return [related.hydrate(row) for row in related.query().where(foreign_key, "=", value).get()]

    def belongs_to[M: Model](
        self, related: type[M], foreign_key: str | None = None, owner_key: str | None = None
    ) -> M | None:
        foreign_key = foreign_key or related.foreign_key()
        owner_key = owner_key or related.primary_key
        row = related.query().where(owner_key, "=", self._attributes.get(foreign_key)).first()
        return related.hydrate(row) if row is not None else None

    # -- Serialization --

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=json_default)

    def __str__(self) -> str:
        return self.to_json()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._attributes!r})"


def _now() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)
