"""Route frozen dataclass.

A ``Route`` is what the outer URL router hands to perch: the parameters
extracted from the URL and the static properties configured for the
matched route. Perch never mutates it; normalizations produce a new
``Route`` through ``with_parameter()``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

# Ordinal ancestor markers: ancestor0, ancestor1, ...
ANCESTOR_PARAM_RE = re.compile(r"^ancestor\d+$")


@dataclass(frozen=True, slots=True)
class Route:
    """URL parameters plus static per-route properties.

    ``parameters`` may contain ancestor markers (``ancestor0``...),
    primary-key field values, and optionally ``action``, ``subject``,
    ``language`` and ``area``. ``properties`` may fix ``action`` or
    ``subject`` regardless of the URL.
    """

    parameters: Mapping[str, str] = field(default_factory=dict)
    properties: Mapping[str, Any] = field(default_factory=dict)

    def parameter(self, name: str, default: str | None = None) -> str | None:
        return self.parameters.get(name, default)

    def with_parameter(self, name: str, value: str) -> Route:
        """Return a new route with *name* set to *value* in its parameters."""
        return replace(self, parameters={**self.parameters, name: value})

    def ancestor_names(self) -> Iterator[str]:
        """Yield ancestor entity names in marker discovery order."""
        for name, value in self.parameters.items():
            if ANCESTOR_PARAM_RE.match(name):
                yield value
