"""Ancestor chain resolution.

A request can be nested under other entities: ``/it/admin/country/IT/region/LOM/city``
is the ``city`` subject inside region ``LOM`` inside country ``IT``. The outer
router reports that nesting as ordinal markers plus key values::

    {"ancestor0": "country", "ancestor1": "region", "code": "IT", ...}

``AncestorResolver`` turns those flat parameters into an ordered chain,
loading each ancestor's configuration to learn which parameters make up
its primary key.

Compound keys are always represented as a field mapping, even when the key
has a single field, so path building and where-clause construction never
special-case scalars.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from perch.config import ConfigurationLoader
from perch.errors import MissingConfigurationError, RouteResolutionError
from perch.routing.route import Route

logger = logging.getLogger("perch.subject")

# Separator between compound key values in a URL segment
KEY_SEPARATOR = "|"


def normalize_primary_key(primary_key: Any) -> list[str]:
    """Return *primary_key* as an ordered field list.

    ``"code"`` becomes ``["code"]``; lists and tuples are copied as lists.
    """
    if isinstance(primary_key, (list, tuple)):
        return list(primary_key)
    return [primary_key]


@dataclass(frozen=True, slots=True)
class Ancestor:
    """One resolved entry of the chain.

    Attributes:
        name: Entity name, as it appears in the URL.
        key: Primary-key field -> route value, in declared key order.
        locale: Translation bundle the entity declares, if any.
    """

    name: str
    key: Mapping[str, str]
    locale: str | None = None

    @property
    def key_segment(self) -> str:
        """Key values joined the way they appear in a URL segment."""
        return KEY_SEPARATOR.join(str(v) for v in self.key.values())


class AncestorChain(Mapping[str, Mapping[str, str]]):
    """Ordered, read-only mapping of ancestor name -> key mapping.

    Iteration order is hierarchy order, outermost first.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: tuple[Ancestor, ...] = ()) -> None:
        self._entries: dict[str, Ancestor] = {a.name: a for a in entries}

    def __getitem__(self, name: str) -> Mapping[str, str]:
        return self._entries[name].key

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"AncestorChain({dict(self.items())!r})"

    def key_segment(self, name: str) -> str:
        """Joined key values for ancestor *name*."""
        return self._entries[name].key_segment

    @property
    def locales(self) -> dict[str, str]:
        """Ancestor name -> declared locale bundle, for ancestors that have one."""
        return {a.name: a.locale for a in self._entries.values() if a.locale}


class AncestorResolver:
    """Resolves a route's ancestor markers into an ``AncestorChain``.

    Usage::

        resolver = AncestorResolver(FileConfigurationLoader(ctx))
        chain = resolver.resolve(route)
        chain["country"]  # {"code": "IT"}
    """

    __slots__ = ("_loader",)

    def __init__(self, loader: ConfigurationLoader) -> None:
        self._loader = loader

    def resolve(self, route: Route) -> AncestorChain:
        """Resolve every ancestor marker in *route*.

        Raises ``RouteResolutionError`` when a declared primary-key field
        has no value among the route parameters.
        """
        entries: list[Ancestor] = []
        seen: set[str] = set()
        for name in route.ancestor_names():
            if name in seen:
                continue
            seen.add(name)
            entries.append(self._resolve_one(name, route.parameters))
        if entries:
            logger.debug("Resolved ancestors %s", [a.name for a in entries])
        return AncestorChain(tuple(entries))

    def _resolve_one(self, name: str, parameters: Mapping[str, str]) -> Ancestor:
        configuration = self._loader.load(name)
        declared = (configuration.get("ORM") or {}).get("primaryKey")
        if not declared:
            raise MissingConfigurationError(name, "ORM.primaryKey")
        primary_key = normalize_primary_key(declared)
        key: dict[str, str] = {}
        for field in primary_key:
            if field not in parameters:
                raise RouteResolutionError(name, field)
            key[field] = parameters[field]
        return Ancestor(name=name, key=key, locale=configuration.get("locale") or None)
