"""Tests for perch.data.Database: driver selection and SQLite statements."""

import sys

import pytest

from perch.config import DatabaseSettings
from perch.data import Database, DataError, DriverNotInstalledError, QueryError
from perch.data.database import canonical_driver
from perch.data.errors import ConnectionError


def _sqlite(path: str = ":memory:") -> Database:
    return Database(DatabaseSettings(driver="sqlite", database=path))


@pytest.fixture
def db():
    database = _sqlite()
    database.connect()
    database.execute("CREATE TABLE country (code TEXT PRIMARY KEY, name TEXT NOT NULL)")
    yield database
    database.close()


class TestDrivers:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("sqlite", "sqlite"), ("sqlite3", "sqlite"), ("pgsql", "pgsql"), ("postgres", "pgsql"),
         ("postgresql", "pgsql"), ("mysql", "mysql")],
    )
    def test_canonical_driver(self, name: str, expected: str) -> None:
        assert canonical_driver(name) == expected

    def test_unsupported_driver(self) -> None:
        with pytest.raises(DataError, match="Unsupported database driver"):
            Database(DatabaseSettings(driver="mysql", database="geo"))

    def test_placeholders(self) -> None:
        assert _sqlite().placeholder(2) == "?"
        pg = Database(DatabaseSettings(driver="postgresql", database="geo"))
        assert pg.driver == "pgsql"
        assert pg.placeholder(2) == "$2"

    def test_missing_asyncpg(self, monkeypatch) -> None:
        monkeypatch.setitem(sys.modules, "asyncpg", None)
        pg = Database(DatabaseSettings(driver="pgsql", database="geo"))
        with pytest.raises(DriverNotInstalledError, match="asyncpg"):
            pg.connect()


class TestLifecycle:
    def test_connect_close(self) -> None:
        database = _sqlite()
        assert not database.connected
        database.connect()
        assert database.connected
        database.close()
        assert not database.connected

    def test_context_manager(self) -> None:
        with _sqlite() as database:
            assert database.connected
        assert not database.connected

    def test_not_connected(self) -> None:
        with pytest.raises(ConnectionError, match="not connected"):
            _sqlite().fetch_all("SELECT 1", ())

    @pytest.mark.parametrize(
        ("method", "args"),
        [("fetch_all", ("SELECT 1", ())), ("execute", ("SELECT 1",)), ("insert", ("SELECT 1", ()))],
    )
    def test_pg_not_connected(self, method: str, args: tuple) -> None:
        pg = Database(DatabaseSettings(driver="pgsql", database="geo"))
        with pytest.raises(ConnectionError, match="not connected"):
            getattr(pg, method)(*args)

    def test_unopenable_file(self, tmp_path) -> None:
        with pytest.raises(ConnectionError, match="Cannot open SQLite database"):
            _sqlite(str(tmp_path / "missing" / "dir" / "app.db")).connect()

    def test_file_database(self, tmp_path) -> None:
        path = str(tmp_path / "app.db")
        with _sqlite(path) as database:
            database.execute("CREATE TABLE t (id INTEGER)")
            database.execute("INSERT INTO t (id) VALUES (?)", (1,))
        with _sqlite(path) as database:
            assert database.fetch_all("SELECT id FROM t", ()) == [{"id": 1}]


class TestStatements:
    def test_insert_and_fetch(self, db: Database) -> None:
        key = db.insert("INSERT INTO country (code, name) VALUES (?, ?)", ("IT", "Italia"))
        assert key == 1
        assert db.fetch_all("SELECT * FROM country", ()) == [{"code": "IT", "name": "Italia"}]

    def test_execute_rowcount(self, db: Database) -> None:
        db.insert("INSERT INTO country (code, name) VALUES (?, ?)", ("IT", "Italia"))
        db.insert("INSERT INTO country (code, name) VALUES (?, ?)", ("FR", "Francia"))
        assert db.execute("UPDATE country SET name = ?", ("x",)) == 2

    def test_ddl_rowcount_not_negative(self, db: Database) -> None:
        assert db.execute("CREATE TABLE other (id INTEGER)") == 0

    def test_constraint_violation(self, db: Database) -> None:
        db.insert("INSERT INTO country (code, name) VALUES (?, ?)", ("IT", "Italia"))
        with pytest.raises(QueryError, match="UNIQUE"):
            db.insert("INSERT INTO country (code, name) VALUES (?, ?)", ("IT", "Italy"))

    def test_foreign_keys_enforced(self, db: Database) -> None:
        db.execute(
            "CREATE TABLE region (code TEXT PRIMARY KEY, country TEXT REFERENCES country(code))"
        )
        with pytest.raises(QueryError, match="FOREIGN KEY"):
            db.insert("INSERT INTO region (code, country) VALUES (?, ?)", ("LOM", "XX"))
