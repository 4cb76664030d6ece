"""Capability base class and descriptor.

A capability is an optional, named bundle of behavior a subject opts into
by listing its class::

    class Country(Subject):
        capabilities = (DatabaseCapability, ORMCapability)

Each capability class carries a ``CapabilityDescriptor`` naming the other
capabilities it depends on and the collaborators that must be injected
into the subject before an action runs. Lifecycle hooks default to no-ops;
a capability overrides only the ones it needs:

- ``declare_dependencies()``  construction, before anything else
- ``on_route(route)``         construction
- ``on_configure(config)``    construction, returns the (possibly new) configuration
- ``declare_injections()``    just before the action
- ``on_init()``               just before the action, after the contract checks
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from perch.config import Configuration
    from perch.routing.route import Route
    from perch.subject import Subject


@dataclass(frozen=True, slots=True)
class CapabilityDescriptor:
    """Static contract of a capability.

    Attributes:
        name: Identifier other capabilities use to depend on this one.
        dependencies: Capabilities that must also be active on the subject.
        injections: Names that must be injected (bound and truthy) on the
            subject by dispatch time.
    """

    name: str
    dependencies: frozenset[str] = frozenset()
    injections: frozenset[str] = frozenset()


class Capability:
    """Base for capabilities. One instance per subject, bound at construction."""

    descriptor: ClassVar[CapabilityDescriptor]

    __slots__ = ("subject",)

    def __init__(self, subject: Subject) -> None:
        self.subject = subject

    @property
    def name(self) -> str:
        return self.descriptor.name

    def declare_dependencies(self) -> frozenset[str]:
        return self.descriptor.dependencies

    def declare_injections(self) -> frozenset[str]:
        return self.descriptor.injections

    def on_route(self, route: Route) -> None:
        """Read what the capability needs from the route."""

    def on_configure(self, configuration: Configuration) -> Configuration:
        """Read and optionally normalize configuration.

        Return *configuration* unchanged, or a new value built with
        ``Configuration.with_subject()``. Never mutate it.
        """
        return configuration

    def on_init(self) -> None:
        """Prepare for the action. Collaborators are injected by now."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} of {self.subject.name!r}>"
