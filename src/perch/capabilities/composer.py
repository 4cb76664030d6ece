"""Capability composer: runs lifecycle hooks and enforces contracts.

Construction time, in this order:

1. ``check_dependencies``: every capability's declared dependencies must
   be active. Fails before any route or configuration processing.
2. ``process_route``: ``on_route`` hooks.
3. ``process_configuration``: ``on_configure`` hooks; each returns the
   configuration the next one sees.

Dispatch time, immediately before the handler runs:

4. ``check_injections``: declared injections must be bound and truthy.
5. ``initialize``: ``on_init`` hooks.

Hooks for one event run once per active capability, in declaration order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from perch.errors import CompositionError

if TYPE_CHECKING:
    from perch.config import Configuration
    from perch.routing.route import Route
    from perch.subject import Subject

logger = logging.getLogger("perch.capabilities")


def check_dependencies(subject: Subject) -> None:
    """Record and verify every active capability's dependencies.

    Raises ``CompositionError`` naming the subject, the capability and the
    first missing dependency.
    """
    registry = subject.registry
    for capability in registry:
        registry.declare_dependencies(capability.name, capability.declare_dependencies())
        missing = registry.missing_dependencies(capability.name)
        if missing:
            raise CompositionError(subject.name, capability.name, missing[0])
    logger.debug("Subject %r capabilities %s", subject.name, registry.names)


def process_route(subject: Subject, route: Route) -> None:
    for capability in subject.registry:
        capability.on_route(route)


def process_configuration(subject: Subject, configuration: Configuration) -> Configuration:
    """Thread *configuration* through every ``on_configure`` hook."""
    for capability in subject.registry:
        configuration = capability.on_configure(configuration)
    return configuration


def check_injections(subject: Subject) -> None:
    """Record and verify every active capability's injections.

    Raises ``CompositionError`` naming the subject, the capability and the
    first property that is unbound or falsy.
    """
    registry = subject.registry
    for capability in registry:
        registry.declare_injections(capability.name, capability.declare_injections())
        for name in sorted(registry.injections(capability.name)):
            if not subject.injected(name):
                raise CompositionError(subject.name, capability.name, name, kind="injection")


def initialize(subject: Subject) -> None:
    for capability in subject.registry:
        logger.debug("Initializing capability %r of %r", capability.name, subject.name)
        capability.on_init()
