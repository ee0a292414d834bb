"""Immutable query builder for wren.data.

Accumulates SQL clauses through chaining methods, compiles to a SQL
string plus a parameters tuple, and executes through ``Database``.

Each method returns a new frozen ``Query``; the original is never
mutated. Same pattern as ``Response.with_*()`` but for SQL.

Usage::

    posts = (
        db.table("posts")
        .where("published", True)
        .where("views", ">", 100)
        .order_by("created_at", "desc")
        .paginate(page=2, per_page=20)
        .get()
    )

Transparency: ``.sql`` and ``.params`` show exactly what will run.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from wren.data.errors import DataError, QueryError

if TYPE_CHECKING:
    from wren.data.database import Database, Row

OPERATORS = frozenset({"=", "!=", "<>", "<", ">", "<=", ">=", "LIKE", "NOT LIKE"})
DIRECTIONS = frozenset({"ASC", "DESC"})

_MISSING: Any = object()


@dataclass(frozen=True, slots=True)
class _Where:
    boolean: str  # "AND" / "OR"
    clause: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class Query:
    """Immutable query over one table.

    Every method returns a new ``Query``; the original is unchanged.
    Execution methods need a ``Database``, either bound at construction
    (``db.table(name)``) or passed in.
    """

    table: str
    db: Database | None = None
    _columns: tuple[str, ...] = ("*",)
    _wheres: tuple[_Where, ...] = ()
    _joins: tuple[str, ...] = ()
    _orders: tuple[str, ...] = ()
    _groups: tuple[str, ...] = ()
    _limit: int | None = None
    _offset: int | None = None

    # -- Building --

    def select(self, *columns: str) -> Query:
        """Set which columns to SELECT. Default is ``*``."""
        return replace(self, _columns=columns or ("*",))

    def where(self, column: str, operator: Any, value: Any = _MISSING) -> Query:
        """Add an ANDed ``column <op> ?`` condition.

        With two arguments the operator is ``=``::

            q.where("active", True)           # active = ?
            q.where("age", ">=", 18)          # age >= ?
        """
        return self._add_where("AND", column, operator, value)

    def or_where(self, column: str, operator: Any, value: Any = _MISSING) -> Query:
        """Like ``where`` but ORed with the previous condition."""
        return self._add_where("OR", column, operator, value)

    def _add_where(self, boolean: str, column: str, operator: Any, value: Any) -> Query:
        if value is _MISSING:
            operator, value = "=", operator
        op = str(operator).upper()
        if op not in OPERATORS:
            msg = f"Unsupported operator {operator!r}"
            raise QueryError(msg)
        return replace(self, _wheres=(*self._wheres, _Where(boolean, f"{column} {op} ?", (value,))))

    def where_in(self, column: str, values: Iterable[Any]) -> Query:
        values = tuple(values)
        if not values:
            # IN () is a syntax error in SQLite; an empty set matches nothing
            return replace(self, _wheres=(*self._wheres, _Where("AND", "0 = 1")))
        placeholders = ", ".join("?" for _ in values)
        clause = _Where("AND", f"{column} IN ({placeholders})", values)
        return replace(self, _wheres=(*self._wheres, clause))

    def where_null(self, column: str) -> Query:
        return replace(self, _wheres=(*self._wheres, _Where("AND", f"{column} IS NULL")))

    def where_not_null(self, column: str) -> Query:
        return replace(self, _wheres=(*self._wheres, _Where("AND", f"{column} IS NOT NULL")))

    def join(self, table: str, first: str, operator: str, second: str, kind: str = "INNER") -> Query:
        """Add ``<kind> JOIN table ON first <op> second``."""
        if operator.upper() not in OPERATORS:
            msg = f"Unsupported operator {operator!r}"
            raise QueryError(msg)
        clause = f"{kind.upper()} JOIN {table} ON {first} {operator} {second}"
        return replace(self, _joins=(*self._joins, clause))

    def left_join(self, table: str, first: str, operator: str, second: str) -> Query:
        return self.join(table, first, operator, second, "LEFT")

    def order_by(self, column: str, direction: str = "asc") -> Query:
        """Append an ORDER BY column. Calls accumulate."""
        direction = direction.upper()
        if direction not in DIRECTIONS:
            msg = f"Order direction must be ASC or DESC, got {direction!r}"
            raise QueryError(msg)
        return replace(self, _orders=(*self._orders, f"{column} {direction}"))

    def group_by(self, *columns: str) -> Query:
        return replace(self, _groups=(*self._groups, *columns))

    def limit(self, n: int) -> Query:
        return replace(self, _limit=int(n))

    def offset(self, n: int) -> Query:
        return replace(self, _offset=int(n))

    def paginate(self, page: int = 1, per_page: int = 15) -> Query:
        """LIMIT/OFFSET for 1-based *page*."""
        page = max(int(page), 1)
        return replace(self, _limit=per_page, _offset=(page - 1) * per_page)

    # -- Compilation --

    def _where_sql(self) -> str:
        if not self._wheres:
            return ""
        parts = []
        for index, where in enumerate(self._wheres):
            parts.append(where.clause if index == 0 else f"{where.boolean} {where.clause}")
        return "WHERE " + " ".join(parts)

    def _from_sql(self) -> list[str]:
        parts = [f"FROM {self.table}", *self._joins]
        if self._wheres:
            parts.append(self._where_sql())
        if self._groups:
            parts.append("GROUP BY " + ", ".join(self._groups))
        return parts

    @property
    def sql(self) -> str:
        """The exact SQL that ``get()`` will run."""
        parts = [f"SELECT {', '.join(self._columns)}", *self._from_sql()]
        if self._orders:
            parts.append("ORDER BY " + ", ".join(self._orders))
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._offset is not None:
            if self._limit is None:
                parts.append("LIMIT -1")
            parts.append(f"OFFSET {self._offset}")
        return " ".join(parts)

    @property
    def params(self) -> tuple[Any, ...]:
        """The bound parameters, in order."""
        result: list[Any] = []
        for where in self._wheres:
            result.extend(where.params)
        return tuple(result)

    # -- Execution --

    def _database(self, db: Database | None) -> Database:
        database = db or self.db
        if database is None:
            msg = f"Query on {self.table!r} has no Database; use db.table(...) or pass db="
            raise DataError(msg)
        return database

    def get(self, db: Database | None = None) -> list[Row]:
        """Execute and return all matching rows."""
        return self._database(db).select(self.sql, *self.params)

    def first(self, db: Database | None = None) -> Row | None:
        """Execute with ``LIMIT 1`` and return the row, or ``None``."""
        query = self.limit(1)
        return query._database(db).select_one(query.sql, *query.params)

    def find(self, id: Any, column: str = "id", db: Database | None = None) -> Row | None:
        return self.where(column, "=", id).first(db)

    def count(self, column: str = "*", db: Database | None = None) -> int:
        """``COUNT(column)`` over the same joins, conditions and grouping.

        Ignores ordering, limit and offset.
        """
        sql = " ".join([f"SELECT COUNT({column}) AS count", *self._from_sql()])
        return int(self._database(db).select_value(sql, *self.params) or 0)

    def exists(self, db: Database | None = None) -> bool:
        sql = " ".join(["SELECT 1", *self._from_sql(), "LIMIT 1"])
        return self._database(db).select_value(sql, *self.params) is not None

    def insert(self, data: Mapping[str, Any], db: Database | None = None) -> int:
        """INSERT *data* into the table and return the new row id."""
        if not data:
            msg = "Cannot insert an empty row"
            raise QueryError(msg)
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        sql = f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})"
        return self._database(db).insert(sql, *data.values())

    def update(self, data: Mapping[str, Any], db: Database | None = None) -> int:
        """UPDATE matching rows with *data*; returns the affected row count."""
        if not data:
            return 0
        sets = ", ".join(f"{column} = ?" for column in data)
        sql = f"UPDATE {self.table} SET {sets}"
        if self._wheres:
            sql += " " + self._where_sql()
        return self._database(db).update(sql, *data.values(), *self.params)

    def delete(self, db: Database | None = None) -> int:
        """DELETE matching rows; returns the affected row count."""
        sql = f"DELETE FROM {self.table}"
        if self._wheres:
            sql += " " + self._where_sql()
        return self._database(db).delete(sql, *self.params)
