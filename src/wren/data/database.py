"""Synchronous SQLite access.

SQL in, dict rows out. Not an ORM: ``Query`` and ``Model`` build on
top of these methods.

Connection strings::

    Database("app.db")              # file path
    Database("sqlite:///app.db")    # URL form
    Database(":memory:")            # in-memory, handy in tests

Individual statements auto-commit. ``transaction()`` groups several
statements and rolls them all back if the block raises.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from wren.data.errors import DataError, QueryError

if TYPE_CHECKING:
    from wren.data.query import Query

logger = logging.getLogger("wren.data")

type Row = dict[str, Any]


class Database:
    """A single SQLite connection guarded by a lock.

    Usage::

        db = Database("app.db")

        users = db.select("SELECT * FROM users WHERE active = ?", True)
        user = db.select_one("SELECT * FROM users WHERE id = ?", 42)
        user_id = db.insert("INSERT INTO users (name) VALUES (?)", "Alice")

        with db.transaction():
            db.update("UPDATE accounts SET balance = balance - ? WHERE id = ?", 10, 1)
            db.update("UPDATE accounts SET balance = balance + ? WHERE id = ?", 10, 2)

        recent = db.table("users").order_by("id", "desc").limit(10).get()
    """

    __slots__ = ("_conn", "_lock", "_transaction_depth", "echo", "path")

    def __init__(self, url: str, /, *, echo: bool = False) -> None:
        self.path = _parse_sqlite_path(url)
        self.echo = echo
        self._lock = threading.RLock()
        self._transaction_depth = 0
        self._conn: sqlite3.Connection | None = None

    # -- Connection management --

    @property
    def connection(self) -> sqlite3.Connection:
        """The underlying connection, opened on first use."""
        if self._conn is None:
            conn = sqlite3.connect(self.path, check_same_thread=False, autocommit=True)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._conn = conn
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Execute several statements atomically.

        Commits on clean exit, rolls back on exception. A nested
        ``transaction()`` joins the outer one.
        """
        with self._lock:
            if self._transaction_depth:
                self._transaction_depth += 1
                try:
                    yield self
                finally:
                    self._transaction_depth -= 1
                return

            conn = self.connection
            conn.autocommit = False
            self._transaction_depth = 1
            try:
                yield self
                conn.commit()
            except BaseException:
                conn.rollback()
                raise
            finally:
                self._transaction_depth = 0
                conn.autocommit = True

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    # -- Statements --

    def _run(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        start = time.perf_counter()
        with self._lock:
            try:
                cursor = self.connection.execute(sql, tuple(params))
            except sqlite3.Error as exc:
                msg = f"{exc} [{sql}]"
                raise QueryError(msg) from exc
        if self.echo:
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug("%6.1fms  %s  params=%r", elapsed, sql, tuple(params))
        return cursor

    def select(self, sql: str, /, *params: Any) -> list[Row]:
        """Run a query and return every row as a dict."""
        cursor = self._run(sql, params)
        with self._lock:
            return [dict(row) for row in cursor.fetchall()]

    def select_one(self, sql: str, /, *params: Any) -> Row | None:
        """Run a query and return the first row, or ``None``."""
        cursor = self._run(sql, params)
        with self._lock:
            row = cursor.fetchone()
        return dict(row) if row is not None else None

    def select_value(self, sql: str, /, *params: Any) -> Any:
        """The first column of the first row, or ``None``."""
        cursor = self._run(sql, params)
        with self._lock:
            row = cursor.fetchone()
        return row[0] if row is not None else None

    def insert(self, sql: str, /, *params: Any) -> int:
        """Run an INSERT and return the new row id."""
        cursor = self._run(sql, params)
        return cursor.lastrowid or 0

    def update(self, sql: str, /, *params: Any) -> int:
        """Run an UPDATE and return the number of affected rows."""
        return self._run(sql, params).rowcount

    def delete(self, sql: str, /, *params: Any) -> int:
        """Run a DELETE and return the number of affected rows."""
        return self._run(sql, params).rowcount

    def execute(self, sql: str, /, *params: Any) -> int:
        """Run any statement and return the number of affected rows."""
        return self._run(sql, params).rowcount

    def execute_script(self, sql: str, /) -> None:
        """Run several ``;``-separated statements (schema setup)."""
        with self._lock:
            try:
                self.connection.executescript(sql)
            except sqlite3.Error as exc:
                raise QueryError(str(exc)) from exc

    def table(self, name: str) -> Query:
        """Start a query builder for table *name*."""
        from wren.data.query import Query

        return Query(name, db=self)

    def __repr__(self) -> str:
        return f"Database({self.path!r})"


def _parse_sqlite_path(url: str) -> str:
    """Extract the file path from a plain path or ``sqlite://`` URL."""
    # sqlite:///path/to/db  ->  path/to/db
    # sqlite:///:memory:    ->  :memory:
    for prefix in ("sqlite:///", "sqlite://"):
        if url.startswith(prefix):
            path = url[len(prefix) :]
            break
    else:
        if "://" in url:
            msg = f"Unsupported database URL: {url!r}. Only SQLite is supported."
            raise DataError(msg)
        path = url
    if not path:
        msg = f"Invalid SQLite URL: {url!r}"
        raise DataError(msg)
    return path
