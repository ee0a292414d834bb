"""Synchronous SQLite access for wren.

SQL in, dict rows out, with an immutable query builder and a small
active-record ``Model`` on top.

Basic usage::

    from wren.data import Database, Model

    db = Database("app.db")
    rows = db.select("SELECT * FROM users WHERE active = ?", True)

    class User(Model):
        fillable = ("name", "email")

    Model.use(db)
    user = User.find_or_fail(42)

Uses the standard library ``sqlite3`` module; no driver to install.
"""

from wren.data.database import Database
from wren.data.errors import DataError, ModelNotFoundError, QueryError
from wren.data.model import Model
from wren.data.query import Query

__all__ = [
    "DataError",
    "Database",
    "Model",
    "ModelNotFoundError",
    "Query",
    "QueryError",
]
