"""ORM capability: generic CRUD over a table and its read view.

Binds a subject to the ``ORM`` section of its configuration::

    {
        "ORM": {
            "schema": "geo",
            "table": "region",
            "view": "region_view",
            "primaryKey": ["country", "code"],
            "multiLanguage": {"suffix": "_ml", "languagePK": "language_code"}
        }
    }

Reads go to the view, writes to the table. ``table``, ``view`` and
``primaryKey`` must be present (they may be ``null`` when unused).
The primary key is always handled as an ordered field list.

With ``multiLanguage`` configured, ``view()`` appends the suffix and
``get()`` restricts rows to the active language.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from perch._internal.types import Conditions, KeyLookup, Ordering, Record
from perch.capabilities.base import Capability, CapabilityDescriptor
from perch.capabilities.database import DatabaseCapability
from perch.config import Configuration
from perch.data.errors import QueryError
from perch.data.records import RecordType, record_type
from perch.errors import KeyMismatchError, MissingConfigurationError
from perch.routing.ancestors import normalize_primary_key

if TYPE_CHECKING:
    from perch.subject import Subject

logger = logging.getLogger("perch.orm")

# Parameters that must exist in the ORM section, possibly as null
REQUIRED_PARAMETERS = ("table", "view", "primaryKey")

# PostgreSQL "object not in prerequisite state": lastval() has no value in
# this session, raised after inserts whose key is not sequence-generated
OBJECT_NOT_IN_PREREQUISITE_STATE = "55000"


@dataclass(frozen=True, slots=True)
class MultiLanguage:
    """Per-language overlay: view suffix plus the language discriminator field."""

    suffix: str
    language_field: str


@dataclass(frozen=True, slots=True)
class ORMParameters:
    """Table, view and key definition of an entity.

    ``primary_key`` is never empty and always ordered.
    """

    table: str | None
    view: str | None
    primary_key: tuple[str, ...]
    schema: str | None = None
    multi_language: MultiLanguage | None = None


class ORMCapability(Capability):
    """CRUD operations expressed as calls into the injected query builder."""

    descriptor = CapabilityDescriptor("ORM", dependencies=frozenset({"Database"}))

    __slots__ = ("parameters",)

    def __init__(self, subject: Subject) -> None:
        super().__init__(subject)
        self.parameters: ORMParameters | None = None

    # -- Configuration --

    def on_configure(self, configuration: Configuration) -> Configuration:
        name = self.subject.name
        section = configuration.subject(name).get("ORM")
        if section is None:
            raise MissingConfigurationError(name, "ORM parameters")
        for parameter in REQUIRED_PARAMETERS:
            if parameter not in section:
                raise MissingConfigurationError(name, f"ORM {parameter} parameter")
        primary_key = normalize_primary_key(section["primaryKey"])
        multi_language = section.get("multiLanguage")
        self.parameters = ORMParameters(
            table=section["table"],
            view=section["view"],
            primary_key=tuple(primary_key),
            schema=section.get("schema") or None,
            multi_language=(
                MultiLanguage(multi_language["suffix"], multi_language["languagePK"])
                if multi_language
                else None
            ),
        )
        return configuration.with_subject(name, {"ORM": {"primaryKey": primary_key}})

    def set_parameters(
        self,
        table: str | None,
        view: str | None,
        primary_key: Any,
        schema: str | None = None,
        multi_language: MultiLanguage | None = None,
    ) -> None:
        """Bind table/view/key directly, bypassing configuration."""
        self.parameters = ORMParameters(
            table=table,
            view=view,
            primary_key=tuple(normalize_primary_key(primary_key)),
            schema=schema,
            multi_language=multi_language,
        )

    # -- Names --

    @property
    def primary_key(self) -> tuple[str, ...]:
        return self._parameters.primary_key

    def schema(self) -> str:
        """Schema prefix (``"geo."``), or an empty string."""
        schema = self._parameters.schema
        return f"{schema}." if schema else ""

    def table(self) -> str:
        """Table name with its schema."""
        return f"{self.schema()}{self._parameters.table}"

    def view(self) -> str:
        """View name with its schema and multi-language suffix."""
        view = f"{self.schema()}{self._parameters.view}"
        if self._parameters.multi_language is not None:
            view += self._parameters.multi_language.suffix
        return view

    # -- Reads --

    def get(self, where: Conditions | None = None, order: Ordering | None = None) -> list[Record]:
        """Query the view.

        *where* maps fields to values (or ``(operator, value)`` tuples);
        *order* is a field -> direction mapping or ``(field, direction)``
        pairs. On multi-language entities rows are always restricted to the
        active language.
        """
        builder = self._database.connect()
        builder.table(self.view())
        conditions = dict(where or {})
        multi_language = self._parameters.multi_language
        if multi_language is not None:
            conditions[multi_language.language_field] = self.subject.context.language
        self._database.where(conditions)
        pairs = order.items() if isinstance(order, Mapping) else (order or ())
        for field, direction in pairs:
            builder.order_by(field, direction)
        return self._map(builder.get())

    def get_first(self, where: Conditions | None = None, order: Ordering | None = None) -> Record | None:
        """First record of ``get()``, or ``None``."""
        records = self.get(where, order)
        return records[0] if records else None

    def resolve_key_where(self, value: KeyLookup) -> dict[str, Any]:
        """Turn a key lookup value into ordered equality conditions.

        A bare scalar is the value of the first key field; a mapping must
        provide every key field. Extra mapping entries are ignored.

        Raises ``KeyMismatchError`` for a missing key field.
        """
        if not isinstance(value, Mapping):
            value = {self.primary_key[0]: value}
        conditions: dict[str, Any] = {}
        for field in self.primary_key:
            if value.get(field) is None:
                raise KeyMismatchError(self.table(), field)
            conditions[field] = value[field]
        return conditions

    def get_by_key(self, value: KeyLookup) -> Record | None:
        """The view record matching a primary-key value, or ``None``."""
        builder = self._database.connect()
        builder.table(self.view())
        self._where_key(value)
        records = self._map(builder.get())
        return records[0] if records else None

    # -- Writes --

    def insert(self, fields: Mapping[str, Any]) -> Any:
        """Insert into the table.

        Returns the key the builder reports (``False`` when it cannot).
        On PostgreSQL an insert whose key is not sequence-generated makes
        the key lookup fail with SQLSTATE 55000; the row is stored, so that
        case returns ``True``.
        """
        builder = self._database.connect()
        builder.table(self.table())
        if self._database.driver != "pgsql":
            return builder.insert(fields)
        try:
            return builder.insert(fields)
        except QueryError as exc:
            if exc.sqlstate != OBJECT_NOT_IN_PREREQUISITE_STATE:
                raise
            logger.debug("Insert into %s stored without a sequence key", self.table())
            return True

    def update(self, key: KeyLookup, fields: Mapping[str, Any]) -> Any:
        """Update the record identified by *key*; returns *key*.

        Empty *fields* succeed without a statement: entities whose only
        editable fields live in a related multi-language table.
        """
        if not fields:
            return True
        builder = self._database.connect()
        builder.table(self.table())
        self._where_key(key)
        builder.update(fields)
        return key

    def delete(self, conditions: Conditions) -> None:
        """Delete table rows matching *conditions* (any fields, not only the key).

        Conditions take the same form as in ``get()``: a value, or an
        ``(operator, value)`` tuple.
        """
        builder = self._database.connect()
        builder.table(self.table())
        self._database.where(conditions)
        builder.delete()

    def refresh_materialized_view(self) -> None:
        """Maintenance: refresh the (materialized) view."""
        builder = self._database.connect()
        builder.exec_raw(f"REFRESH MATERIALIZED VIEW {self.view()};")

    # -- Internal --

    @property
    def _parameters(self) -> ORMParameters:
        if self.parameters is None:
            raise MissingConfigurationError(self.subject.name, "ORM parameters")
        return self.parameters

    @property
    def _database(self) -> DatabaseCapability:
        return self.subject.capability("Database")

    @property
    def _record_type(self) -> RecordType[Any] | None:
        record = getattr(self.subject, "record", None)
        return record_type(record) if record is not None else None

    def _where_key(self, value: KeyLookup) -> None:
        builder = self._database.query_builder
        conditions = self.resolve_key_where(value)
        records = self._record_type
        if records is not None:
            # URL-derived key strings bound with the key fields' types
            conditions = records.convert_key(conditions)
        for field, operand in conditions.items():
            builder.where(field, operand)

    def _map(self, rows: list[Record]) -> list[Record]:
        records = self._record_type
        if records is None:
            return list(rows)
        return records.from_rows(rows)
