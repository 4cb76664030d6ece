"""Capabilities: optional behavior a subject composes by listing classes.

Usage::

    from perch.capabilities import DatabaseCapability, ORMCapability

    class Region(Subject):
        capabilities = (DatabaseCapability, ORMCapability)

        def execList(self):  # noqa: N802
            return self.capability("ORM").get(order={"name": "ASC"})
"""

from perch.capabilities.base import Capability, CapabilityDescriptor
from perch.capabilities.database import DatabaseCapability
from perch.capabilities.orm import MultiLanguage, ORMCapability, ORMParameters
from perch.capabilities.registry import CapabilityRegistry, build_registry

__all__ = [
    "Capability",
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "DatabaseCapability",
    "MultiLanguage",
    "ORMCapability",
    "ORMParameters",
    "build_registry",
]
