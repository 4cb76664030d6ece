"""Configuration values.

``Configuration`` wraps the global configuration tree (``application``,
``database``, ``areas`` and one ``subjects.<name>`` section per loaded
entity). It is never mutated: capabilities that normalize their section
get back a new value from ``with_subject()`` and the composer threads that
value forward.

``DatabaseSettings`` is a frozen dataclass, immutable after creation,
no string-key dict lookups past parsing.

Entity configurations live on disk as JSON, one file per entity::

    private/<application>/configurations/country.json

    {
        "locale": "country.ini",
        "ORM": {"table": "country", "view": "country_view", "primaryKey": "code"}
    }

JSON keeps explicit ``null`` values, which matters for entities that
declare an ORM key they do not use.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from perch.context import RequestContext
from perch.errors import MissingConfigurationError


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* onto *base*, returning a new dict.

    Nested mappings are merged key by key; any other value in *override*
    replaces the one in *base*. Neither argument is modified.
    """
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = merge(current, value)
        else:
            result[key] = value
    return result


@dataclass(frozen=True, slots=True)
class Configuration:
    """The global configuration tree. Immutable after creation.

    Usage::

        config = Configuration({"database": {"driver": "sqlite", "database": ":memory:"}})
        config = config.with_subject("country", {"ORM": {"table": "country"}})
        config.subject("country")["ORM"]["table"]  # "country"
    """

    data: Mapping[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def subject(self, name: str) -> Mapping[str, Any]:
        """Return the ``subjects.<name>`` section, or an empty mapping."""
        return self.data.get("subjects", {}).get(name, {})

    def with_subject(self, name: str, section: Mapping[str, Any]) -> Configuration:
        """Return a new configuration with *section* merged into ``subjects.<name>``."""
        return Configuration(merge(self.data, {"subjects": {name: section}}))

    def replace_subject(self, name: str, section: Mapping[str, Any]) -> Configuration:
        """Return a new configuration whose ``subjects.<name>`` is exactly *section*."""
        subjects = dict(self.data.get("subjects", {}))
        subjects[name] = dict(section)
        return Configuration({**self.data, "subjects": subjects})


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Connection settings consumed by ``QueryBuilder.connect()``."""

    driver: str
    database: str
    host: str = ""
    username: str = ""
    password: str = ""
    charset: str = "utf8"
    collation: str = "utf8_unicode_ci"
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, subject: str, section: Mapping[str, Any]) -> DatabaseSettings:
        """Parse a ``database`` configuration section.

        Raises ``MissingConfigurationError`` when ``driver`` or
        ``database`` is absent.
        """
        for required in ("driver", "database"):
            if not section.get(required):
                raise MissingConfigurationError(subject, f"database.{required}")
        return cls(
            driver=section["driver"],
            database=section["database"],
            host=section.get("host") or "",
            username=section.get("username") or "",
            password=section.get("password") or "",
            charset=section.get("charset") or "utf8",
            collation=section.get("collation") or "utf8_unicode_ci",
            options=dict(section.get("options") or {}),
        )


# -- Entity configuration lookup --


class ConfigurationLoader(Protocol):
    """Loads one entity's persisted configuration by name."""

    def load(self, name: str) -> Mapping[str, Any]: ...


class FileConfigurationLoader:
    """Reads ``<root>/private/<application>/configurations/<name>.json``.

    Loaded files are cached per loader instance; a request that resolves the
    same ancestor twice reads its file once.
    """

    __slots__ = ("_cache", "_context")

    def __init__(self, context: RequestContext) -> None:
        self._context = context
        self._cache: dict[str, Mapping[str, Any]] = {}

    def load(self, name: str) -> Mapping[str, Any]:
        """Return the parsed configuration for entity *name*.

        Raises ``MissingConfigurationError`` if the file does not exist.
        """
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        path = self._context.configurations_dir / f"{name}.json"
        if not path.is_file():
            raise MissingConfigurationError(name, f"configuration file {path}")
        data = json.loads(path.read_text(encoding="utf-8"))
        self._cache[name] = data
        return data
