"""Shared fakes and fixtures for perch tests.

``DictConfigurationLoader`` stands in for the on-disk entity configuration
files and ``RecordingQueryBuilder`` for the injected query builder, so
subjects and capabilities can be exercised without a database.
"""

from collections.abc import Mapping
from typing import Any

import pytest

from perch.context import RequestContext
from perch.data.errors import QueryError
from perch.errors import MissingConfigurationError

COUNTRY = {"locale": None, "ORM": {"table": "country", "view": "country_view", "primaryKey": "code"}}
REGION = {"ORM": {"table": "region", "view": "region_view", "primaryKey": ["country", "code"]}}


class DictConfigurationLoader:
    """Entity configurations from a dict; records every lookup."""

    def __init__(self, configurations: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self.configurations = dict(configurations or {})
        self.loaded: list[str] = []

    def load(self, name: str) -> Mapping[str, Any]:
        self.loaded.append(name)
        if name not in self.configurations:
            raise MissingConfigurationError(name, "configuration file")
        return self.configurations[name]


class RecordingQueryBuilder:
    """Query builder double: records calls, returns canned rows."""

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        insert_result: Any = 1,
        insert_error: Exception | None = None,
    ) -> None:
        self.rows = rows or []
        self.insert_result = insert_result
        self.insert_error = insert_error
        self.calls: list[tuple[Any, ...]] = []
        self.connections = 0

    def connect(self, driver, host, database, username, password, charset="utf8",
                collation="utf8_unicode_ci", options=None) -> None:
        self.connections += 1
        self.calls.append(("connect", driver, host, database, username, password, charset,
                           collation, options))

    def table(self, name: str) -> "RecordingQueryBuilder":
        self.calls.append(("table", name))
        return self

    def where(self, field: str, value: Any, operator: str = "=") -> "RecordingQueryBuilder":
        self.calls.append(("where", field, operator, value))
        return self

    def order_by(self, field: str, direction: str = "ASC") -> "RecordingQueryBuilder":
        self.calls.append(("order_by", field, direction))
        return self

    def get(self) -> list[dict[str, Any]]:
        self.calls.append(("get",))
        return list(self.rows)

    def insert(self, fields: Mapping[str, Any]) -> Any:
        self.calls.append(("insert", dict(fields)))
        if self.insert_error is not None:
            raise self.insert_error
        return self.insert_result

    def update(self, fields: Mapping[str, Any]) -> int:
        self.calls.append(("update", dict(fields)))
        return 1

    def delete(self, fields: Mapping[str, Any] | None = None) -> int:
        self.calls.append(("delete", dict(fields or {})))
        return 1

    def exec_raw(self, sql: str) -> int:
        self.calls.append(("exec_raw", sql))
        return 0

    def named(self, name: str) -> list[tuple[Any, ...]]:
        """Recorded calls of one method."""
        return [call for call in self.calls if call[0] == name]


def pg_lastval_error() -> QueryError:
    return QueryError(
        "lastval is not yet defined in this session", sqlstate="55000"
    )


@pytest.fixture
def context(tmp_path) -> RequestContext:
    return RequestContext(application="backoffice", language="it", area="admin", root=tmp_path)


@pytest.fixture
def loader() -> DictConfigurationLoader:
    return DictConfigurationLoader({"country": COUNTRY, "region": REGION})


@pytest.fixture
def builder() -> RecordingQueryBuilder:
    return RecordingQueryBuilder()
