"""Query builder contract and its SQL implementation.

``QueryBuilder`` is the narrow surface the ``Database`` and ``ORM``
capabilities consume. Any object implementing it can be injected into a
subject as ``query_builder``.

``SQLQueryBuilder`` implements it over ``perch.data.Database``. It is
stateful: ``table()`` starts a new statement, ``where()`` and
``order_by()`` accumulate onto it, and ``get()``, ``insert()``,
``update()`` and ``delete()`` compile and run it::

    qb = SQLQueryBuilder()
    qb.connect("sqlite", "", ":memory:", "", "")
    qb.table("region").where("country", "IT").order_by("name")
    qb.sql     # "SELECT * FROM region WHERE country = ? ORDER BY name ASC"
    qb.params  # ("IT",)
    rows = qb.get()

Scope a builder to one request with ``with SQLQueryBuilder() as qb:``; leaving
the block closes the connection.

Transparency: ``.sql`` and ``.params`` show exactly what ``get()`` will run.

Identifiers are checked against a strict pattern and operators and
directions against fixed sets, since they are interpolated into SQL
rather than bound.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from perch.config import DatabaseSettings
from perch.data.database import Database
from perch.data.errors import DataError

# table, column, or schema.table
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)?$")

OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "NOT LIKE", "ILIKE"})
DIRECTIONS = frozenset({"ASC", "DESC"})


class QueryBuilder(Protocol):
    """Operations the capabilities call on an injected query builder."""

    def connect(
        self,
        driver: str,
        host: str,
        database: str,
        username: str,
        password: str,
        charset: str = "utf8",
        collation: str = "utf8_unicode_ci",
        options: Mapping[str, Any] | None = None,
    ) -> None: ...

    def table(self, name: str) -> QueryBuilder: ...

    def where(self, field: str, value: Any, operator: str = "=") -> QueryBuilder: ...

    def order_by(self, field: str, direction: str = "ASC") -> QueryBuilder: ...

    def get(self) -> list[dict[str, Any]]: ...

    def insert(self, fields: Mapping[str, Any]) -> Any: ...

    def update(self, fields: Mapping[str, Any]) -> int: ...

    def delete(self, fields: Mapping[str, Any] | None = None) -> int: ...

    def exec_raw(self, sql: str) -> int: ...


def _check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise DataError(msg)
    return name


class SQLQueryBuilder:
    """Stateful SQL builder over a synchronous ``Database``."""

    __slots__ = ("_database", "_echo", "_order", "_table", "_wheres")

    def __init__(self, database: Database | None = None, *, echo: bool = False) -> None:
        self._database = database
        self._echo = echo
        self._table: str | None = None
        self._wheres: list[tuple[str, str, Any]] = []
        self._order: list[tuple[str, str]] = []

    # -- Connection --

    def connect(
        self,
        driver: str,
        host: str,
        database: str,
        username: str,
        password: str,
        charset: str = "utf8",
        collation: str = "utf8_unicode_ci",
        options: Mapping[str, Any] | None = None,
    ) -> None:
        """Open a connection. Reuses an already connected ``Database``."""
        if self.connected:
            return
        settings = DatabaseSettings(
            driver=driver,
            database=database,
            host=host,
            username=username,
            password=password,
            charset=charset,
            collation=collation,
            options=dict(options or {}),
        )
        self._database = Database(settings, echo=self._echo)
        self._database.connect()

    @property
    def connected(self) -> bool:
        return self._database is not None and self._database.connected

    def close(self) -> None:
        """Close the connection (and, on PostgreSQL, its portal thread)."""
        if self._database is not None:
            self._database.close()

    def __enter__(self) -> SQLQueryBuilder:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    # -- Building --

    def table(self, name: str) -> SQLQueryBuilder:
        """Start a new statement against *name*."""
        self._table = _check_identifier(name)
        self._wheres = []
        self._order = []
        return self

    def where(self, field: str, value: Any, operator: str = "=") -> SQLQueryBuilder:
        """Add a condition. Multiple calls are ANDed."""
        op = operator.upper()
        if op not in OPERATORS:
            msg = f"Unsupported operator: {operator!r}"
            raise DataError(msg)
        self._wheres.append((_check_identifier(field), op, value))
        return self

    def order_by(self, field: str, direction: str = "ASC") -> SQLQueryBuilder:
        """Append an ORDER BY term."""
        d = direction.upper()
        if d not in DIRECTIONS:
            msg = f"Unsupported order direction: {direction!r}"
            raise DataError(msg)
        self._order.append((_check_identifier(field), d))
        return self

    # -- Compilation --

    @property
    def sql(self) -> str:
        """The SELECT that ``get()`` will run."""
        return self._compile_select()[0]

    @property
    def params(self) -> tuple[Any, ...]:
        """The bound parameters of ``sql``, in order."""
        return self._compile_select()[1]

    def _placeholder(self) -> Callable[[int], str]:
        if self._database is not None:
            return self._database.placeholder
        return lambda _index: "?"

    def _require_table(self) -> str:
        if self._table is None:
            msg = "No table selected; call table() first"
            raise DataError(msg)
        return self._table

    def _compile_where(self, start: int) -> tuple[str, tuple[Any, ...]]:
        if not self._wheres:
            return "", ()
        mark = self._placeholder()
        clauses = [
            f"{field} {op} {mark(start + i)}" for i, (field, op, _) in enumerate(self._wheres)
        ]
        return " WHERE " + " AND ".join(clauses), tuple(v for _, _, v in self._wheres)

    def _compile_select(self) -> tuple[str, tuple[Any, ...]]:
        table = self._require_table()
        where, params = self._compile_where(1)
        sql = f"SELECT * FROM {table}{where}"
        if self._order:
            sql += " ORDER BY " + ", ".join(f"{f} {d}" for f, d in self._order)
        return sql, params

    # -- Execution --

    def _db(self) -> Database:
        if self._database is None:
            msg = "Query builder is not connected; call connect() first"
            raise DataError(msg)
        return self._database

    def get(self) -> list[dict[str, Any]]:
        """Run the SELECT and return every row."""
        sql, params = self._compile_select()
        return self._db().fetch_all(sql, params)

    def insert(self, fields: Mapping[str, Any]) -> Any:
        """INSERT one row; returns the generated key or ``False``."""
        table = self._require_table()
        db = self._db()
        columns = [_check_identifier(c) for c in fields]
        marks = ", ".join(db.placeholder(i + 1) for i in range(len(columns)))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({marks})"
        return db.insert(sql, tuple(fields.values()))

    def update(self, fields: Mapping[str, Any]) -> int:
        """UPDATE rows matching the accumulated conditions."""
        table = self._require_table()
        db = self._db()
        assignments = ", ".join(
            f"{_check_identifier(c)} = {db.placeholder(i + 1)}" for i, c in enumerate(fields)
        )
        where, where_params = self._compile_where(len(fields) + 1)
        sql = f"UPDATE {table} SET {assignments}{where}"
        return db.execute(sql, (*fields.values(), *where_params))

    def delete(self, fields: Mapping[str, Any] | None = None) -> int:
        """DELETE rows matching *fields* (equality) and accumulated conditions."""
        table = self._require_table()
        for field, value in (fields or {}).items():
            self.where(field, value)
        where, params = self._compile_where(1)
        return self._db().execute(f"DELETE FROM {table}{where}", params)

    def exec_raw(self, sql: str) -> int:
        """Run *sql* verbatim, without parameters."""
        return self._db().execute(sql)
