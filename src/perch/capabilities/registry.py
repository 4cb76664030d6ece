"""Capability registry: per-subject bookkeeping of active capabilities.

Mirrors a compiled lookup table: ``build_registry()`` instantiates the
subject's capability classes once at construction, in declaration order,
and the registry answers presence queries and records each capability's
declared dependencies and injections as the composer collects them.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from perch.errors import ConfigurationError

if TYPE_CHECKING:
    from perch.capabilities.base import Capability
    from perch.subject import Subject


class CapabilityRegistry:
    """Ordered set of active capabilities plus their declared contracts."""

    __slots__ = ("_capabilities", "_dependencies", "_injections")

    def __init__(self, capabilities: Iterable[Capability] = ()) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._dependencies: dict[str, frozenset[str]] = {}
        self._injections: dict[str, frozenset[str]] = {}
        for capability in capabilities:
            if capability.name in self._capabilities:
                msg = f"Duplicate capability name: {capability.name!r}"
                raise ConfigurationError(msg)
            self._capabilities[capability.name] = capability

    # -- Presence --

    def has(self, name: str) -> bool:
        return name in self._capabilities

    def get(self, name: str) -> Capability | None:
        """Look up an active capability by name. Returns ``None`` if inactive."""
        return self._capabilities.get(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._capabilities)

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._capabilities.values())

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    # -- Declared contracts --

    def declare_dependencies(self, name: str, dependencies: Iterable[str]) -> None:
        self._dependencies[name] = frozenset(dependencies)

    def declare_injections(self, name: str, injections: Iterable[str]) -> None:
        self._injections[name] = frozenset(injections)

    def dependencies(self, name: str) -> frozenset[str]:
        return self._dependencies.get(name, frozenset())

    def injections(self, name: str) -> frozenset[str]:
        return self._injections.get(name, frozenset())

    def missing_dependencies(self, name: str) -> list[str]:
        """Declared dependencies of *name* that are not active, sorted."""
        return sorted(d for d in self.dependencies(name) if d not in self._capabilities)


def build_registry(subject: Subject, classes: Iterable[type[Capability]]) -> CapabilityRegistry:
    """Instantiate *classes* bound to *subject* and register them in order.

    Raises ``ConfigurationError`` for a class without a descriptor or for
    two classes sharing a capability name.
    """
    capabilities: list[Capability] = []
    for cls in classes:
        if getattr(cls, "descriptor", None) is None:
            msg = f"Capability class {cls.__name__} has no descriptor"
            raise ConfigurationError(msg)
        capabilities.append(cls(subject))
    return CapabilityRegistry(capabilities)
