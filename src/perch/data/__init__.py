"""Synchronous SQL access for perch subjects.

SQL in, dicts (or record dataclasses) out. Not an ORM by itself: the
``ORM`` capability drives it through the ``QueryBuilder`` contract.

Basic usage::

    from perch.data import SQLQueryBuilder

    qb = SQLQueryBuilder()
    qb.connect("sqlite", "", "app.db", "", "")
    rows = qb.table("country").where("code", "IT").get()

SQLite needs nothing extra. PostgreSQL requires ``asyncpg``::

    pip install perch[pg]
"""

from perch.data.database import Database
from perch.data.errors import DataError, DriverNotInstalledError, QueryError
from perch.data.query import QueryBuilder, SQLQueryBuilder

__all__ = [
    "DataError",
    "Database",
    "DriverNotInstalledError",
    "QueryBuilder",
    "QueryError",
    "SQLQueryBuilder",
]
