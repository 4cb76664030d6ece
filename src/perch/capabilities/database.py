"""Database capability: a lazily connected query builder.

Requires ``query_builder`` to be injected into the subject before the
action runs. Connection settings come from the top-level ``database``
configuration section, overridden key by key by the subject's own
``subjects.<name>.database`` section.

Other capabilities (``ORM``) reach the builder through ``connect()``,
which connects once and then keeps returning the same builder for the
lifetime of the subject.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from perch._internal.types import Conditions
from perch.capabilities.base import Capability, CapabilityDescriptor
from perch.config import Configuration, DatabaseSettings, merge
from perch.data.database import canonical_driver
from perch.errors import CompositionError, MissingConfigurationError

if TYPE_CHECKING:
    from perch.data.query import QueryBuilder
    from perch.subject import Subject

logger = logging.getLogger("perch.capabilities")

QUERY_BUILDER = "query_builder"


class DatabaseCapability(Capability):
    """Connects the injected query builder with configured settings."""

    descriptor = CapabilityDescriptor("Database", injections=frozenset({QUERY_BUILDER}))

    __slots__ = ("_connected", "settings")

    def __init__(self, subject: Subject) -> None:
        super().__init__(subject)
        self.settings: DatabaseSettings | None = None
        self._connected = False

    def on_configure(self, configuration: Configuration) -> Configuration:
        section = merge(
            configuration.get("database") or {},
            configuration.subject(self.subject.name).get("database") or {},
        )
        if section:
            self.settings = DatabaseSettings.from_mapping(self.subject.name, section)
        return configuration

    @property
    def driver(self) -> str | None:
        return canonical_driver(self.settings.driver) if self.settings else None

    @property
    def query_builder(self) -> QueryBuilder:
        builder = self.subject.injected(QUERY_BUILDER)
        if not builder:
            raise CompositionError(self.subject.name, self.name, QUERY_BUILDER, kind="injection")
        return builder

    def connect(self) -> QueryBuilder:
        """Connect the builder on first use and return it."""
        builder = self.query_builder
        if self._connected:
            return builder
        if self.settings is None:
            raise MissingConfigurationError(self.subject.name, "database")
        s = self.settings
        logger.debug("Connecting %r to %s database %r", self.subject.name, s.driver, s.database)
        builder.connect(
            s.driver, s.host, s.database, s.username, s.password, s.charset, s.collation, dict(s.options)
        )
        self._connected = True
        return builder

    def where(self, conditions: Conditions) -> None:
        """Apply *conditions* to the builder's current statement.

        Each value is compared with ``=``, unless it is an
        ``(operator, value)`` tuple::

            db.where({"country": "IT", "population": (">", 10000)})
        """
        builder = self.query_builder
        for field, value in conditions.items():
            if isinstance(value, tuple):
                operator, operand = value
                builder.where(field, operand, operator)
            else:
                builder.where(field, value)
