"""Synchronous database connections.

Supports SQLite (stdlib ``sqlite3``) and PostgreSQL (``asyncpg``, driven
through an ``anyio`` blocking portal so callers stay synchronous). Subjects
run one request on one thread from construction to dispatch, and every
statement blocks that thread until it completes.

Driver names follow the configuration convention::

    sqlite                   # "database" is a file path or ":memory:"
    pgsql                    # aliases: postgresql, postgres

Driver errors are wrapped in ``QueryError`` carrying the SQLSTATE code when
the driver reports one.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
import time
from collections.abc import Sequence
from contextlib import ExitStack
from typing import Any

from anyio.from_thread import start_blocking_portal

from perch.config import DatabaseSettings
from perch.data.errors import (
    ConnectionError,
    DataError,
    DriverNotInstalledError,
    QueryError,
)

logger = logging.getLogger("perch.data")

DRIVERS = frozenset({"sqlite", "pgsql"})

_DRIVER_ALIASES = {
    "sqlite3": "sqlite",
    "postgresql": "pgsql",
    "postgres": "pgsql",
}


def canonical_driver(name: str) -> str:
    """Map driver aliases onto their canonical name. Unknown names pass through."""
    return _DRIVER_ALIASES.get(name, name)


def _detect_driver(name: str) -> str:
    driver = canonical_driver(name)
    if driver not in DRIVERS:
        msg = f"Unsupported database driver: {name!r}. Supported: sqlite, pgsql"
        raise DataError(msg)
    return driver


class Database:
    """One synchronous connection.

    Usage::

        db = Database(DatabaseSettings(driver="sqlite", database=":memory:"))
        db.connect()
        db.execute("CREATE TABLE country (code TEXT PRIMARY KEY, name TEXT)")
        key = db.insert("INSERT INTO country (code, name) VALUES (?, ?)", ("IT", "Italy"))
        rows = db.fetch_all("SELECT * FROM country", ())
    """

    __slots__ = ("_conn", "_driver", "_echo", "_portal", "_settings", "_stack")

    def __init__(self, settings: DatabaseSettings, /, *, echo: bool = False) -> None:
        self._settings = settings
        self._driver = _detect_driver(settings.driver)
        self._echo = echo
        self._conn: Any = None
        self._portal: Any = None
        self._stack: ExitStack | None = None

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def placeholder(self, index: int) -> str:
        """Bound parameter marker for the 1-based *index*."""
        if self._driver == "sqlite":
            return "?"
        return f"${index}"

    # -- Lifecycle --

    def connect(self) -> None:
        """Open the connection. A second call is a no-op."""
        if self._conn is not None:
            return
        if self._driver == "sqlite":
            self._conn = _connect_sqlite(self._settings)
        else:
            self._connect_pg()

    def close(self) -> None:
        if self._conn is None:
            return
        if self._driver == "sqlite":
            self._conn.close()
        else:
            try:
                self._portal.call(self._conn.close)
            finally:
                self._stack.close()
                self._portal = None
                self._stack = None
        self._conn = None

    def __enter__(self) -> Database:
        self.connect()
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    # -- Statements --

    def fetch_all(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        """Run a query and return every row as a dict."""
        self._require_connection()
        t0 = time.perf_counter()
        try:
            if self._driver == "sqlite":
                cursor = self._sqlite_execute(sql, params)
                return [dict(row) for row in cursor.fetchall()]
            rows = self._pg_call(self._conn.fetch, sql, *params)
            return [dict(row) for row in rows]
        finally:
            self._log_query(sql, params, time.perf_counter() - t0)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement (UPDATE/DELETE/DDL) and return rows affected."""
        self._require_connection()
        t0 = time.perf_counter()
        try:
            if self._driver == "sqlite":
                return max(self._sqlite_execute(sql, params).rowcount, 0)
            status = self._pg_call(self._conn.execute, sql, *params)
            # asyncpg returns "UPDATE 3" style status strings
            parts = status.split()
            return int(parts[-1]) if parts and parts[-1].isdigit() else 0
        finally:
            self._log_query(sql, params, time.perf_counter() - t0)

    def insert(self, sql: str, params: Sequence[Any]) -> Any:
        """Run an INSERT and return the generated key, or ``False``.

        SQLite reports ``lastrowid``. PostgreSQL asks ``lastval()``, which
        fails with SQLSTATE 55000 when the insert used no sequence in this
        session; that failure surfaces as ``QueryError`` after the row
        has been stored.
        """
        self._require_connection()
        t0 = time.perf_counter()
        try:
            if self._driver == "sqlite":
                return self._sqlite_execute(sql, params).lastrowid or False
            self._pg_call(self._conn.execute, sql, *params)
            return self._pg_call(self._conn.fetchval, "SELECT lastval()")
        finally:
            self._log_query(sql, params, time.perf_counter() - t0)

    # -- Driver calls --

    def _require_connection(self) -> None:
        if self._conn is None:
            msg = "Database is not connected; call connect() first"
            raise ConnectionError(msg)

    def _sqlite_execute(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc

    def _pg_call(self, func: Any, *args: Any) -> Any:
        import asyncpg

        try:
            return self._portal.call(func, *args)
        except asyncpg.PostgresError as exc:
            raise QueryError(str(exc), sqlstate=exc.sqlstate) from exc

    def _connect_pg(self) -> None:
        try:
            import asyncpg
        except ImportError:
            msg = (
                "perch.data requires 'asyncpg' for PostgreSQL databases. "
                "Install it with: pip install perch[pg]"
            )
            raise DriverNotInstalledError(msg) from None

        s = self._settings
        connect = functools.partial(
            asyncpg.connect,
            host=s.host or None,
            user=s.username or None,
            password=s.password or None,
            database=s.database,
            server_settings={"client_encoding": s.charset},
            **dict(s.options),
        )
        stack = ExitStack()
        portal = stack.enter_context(start_blocking_portal())
        try:
            conn = portal.call(connect)
        except (OSError, asyncpg.PostgresError) as exc:
            stack.close()
            msg = f"Cannot connect to PostgreSQL database {s.database!r}: {exc}"
            raise ConnectionError(msg) from exc
        self._stack = stack
        self._portal = portal
        self._conn = conn

    # -- Echo / query logging --

    def _log_query(self, sql: str, params: Sequence[Any], elapsed: float) -> None:
        if not self._echo:
            return
        ms = elapsed * 1000
        param_str = f"  params={tuple(params)!r}" if params else ""
        logger.info("%6.1fms  %s%s", ms, sql, param_str)


def _connect_sqlite(settings: DatabaseSettings) -> sqlite3.Connection:
    """Open a SQLite connection in autocommit mode with dict-like rows.

    ``charset`` and ``collation`` do not apply to SQLite and are ignored.
    """
    try:
        conn = sqlite3.connect(settings.database, autocommit=True, **dict(settings.options))
    except sqlite3.Error as exc:
        msg = f"Cannot open SQLite database {settings.database!r}: {exc}"
        raise ConnectionError(msg) from exc
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn
