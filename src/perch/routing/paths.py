"""Path building from the current hierarchical position.

Handlers call these to build redirect and link targets. Every builder is a
pure function of the route parameters and the ancestor chain, so repeated
calls within a request return the same segments.

Configured action URLs use the same ``{name}`` placeholder syntax as route
paths::

    "edit/{key}"          -> "edit/IT|LOM"       (whole key, pipe-joined)
    "*{code}/{year}/show" -> "<subject path>/IT/2024/show"  (single fields)

A leading ``*`` anchors the template at the subject path; without it the
template is anchored at the area.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from perch.errors import ConfigurationError
from perch.routing.ancestors import KEY_SEPARATOR, AncestorChain

# Leading marker: anchor a configured URL at the subject, not the area
SUBJECT_ANCHOR = "*"

# Segment shown in place of a key when linking back to a listing
LIST_SEGMENT = "list"

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

# Placeholder standing for the whole key
WHOLE_KEY = "key"


def render_url_template(
    template: str, key: Any = None, key_fields: Sequence[str] | None = None
) -> str:
    """Substitute key placeholders in *template*.

    ``{key}`` is replaced by the whole key (compound values joined with
    ``|``); ``{<field>}`` by a single field of a compound key. When *key*
    is ``None`` the template is returned unchanged.

    *key_fields* is the declared key order used to join ``{key}``; every
    declared field must be present in a mapping *key*. Without it the
    mapping's own order is used.

    Raises ``ConfigurationError`` for a placeholder the key cannot fill, a
    missing declared field, or a key field named ``key``.
    """
    if key is None:
        return template
    if isinstance(key, Mapping):
        if WHOLE_KEY in key:
            msg = f"Key field {WHOLE_KEY!r} clashes with the {{{WHOLE_KEY}}} placeholder"
            raise ConfigurationError(msg)
        order = list(key_fields) if key_fields else list(key)
        missing = [name for name in order if name not in key]
        if missing:
            msg = f"Key {dict(key)!r} lacks declared key field(s) {missing}"
            raise ConfigurationError(msg)
        values = {name: str(value) for name, value in key.items()}
        values[WHOLE_KEY] = KEY_SEPARATOR.join(values[name] for name in order)
    else:
        values = {WHOLE_KEY: str(key)}

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            msg = (
                f"URL template {template!r} has placeholder {{{name}}} "
                f"but the key only provides {sorted(values)}"
            )
            raise ConfigurationError(msg)
        return values[name]

    return _PLACEHOLDER_RE.sub(substitute, template)


@dataclass(frozen=True, slots=True)
class PathBuilder:
    """Builds area, subject, action and ancestor paths.

    Usage::

        paths = PathBuilder(route.parameters, chain)
        paths.to_subject()            # ["it", "admin", "country", "IT", "region"]
        paths.to_action("edit")       # "/it/admin/country/IT/region/edit"
        paths.to_ancestor("country")  # ["it", "admin", "country", "list"]
    """

    parameters: Mapping[str, str] = field(default_factory=dict)
    ancestors: AncestorChain = field(default_factory=AncestorChain)

    def to_area(self, language: str | None = None) -> list[str]:
        """Language (override, else route parameter) then area, when present."""
        path: list[str] = []
        if language:
            path.append(language)
        elif self.parameters.get("language"):
            path.append(self.parameters["language"])
        if self.parameters.get("area"):
            path.append(self.parameters["area"])
        return path

    def to_subject(self, language: str | None = None) -> list[str]:
        """Area path, every ancestor with its key, then the subject segment."""
        path = self.to_area(language)
        for name in self.ancestors:
            path.append(name)
            path.append(self.ancestors.key_segment(name))
        if self.parameters.get("subject"):
            path.append(self.parameters["subject"])
        return path

    def to_action(
        self,
        action: str,
        url_template: str | None = None,
        key: Any = None,
        key_fields: Sequence[str] | None = None,
    ) -> str:
        """URL of *action*, or of a configured *url_template*.

        Without a template the URL is absolute (leading ``/``). Configured
        templates are joined to the subject path (``*`` prefix) or to the
        area path as written, with no leading slash added.
        """
        if not url_template:
            return "/{}/{}".format("/".join(self.to_subject()), action)
        template = render_url_template(url_template, key, key_fields)
        if template.startswith(SUBJECT_ANCHOR):
            return "{}/{}".format("/".join(self.to_subject()), template[len(SUBJECT_ANCHOR) :])
        return "{}/{}".format("/".join(self.to_area()), template)

    def to_ancestor(self, last: str) -> list[str]:
        """Path back to the listing of ancestor *last*.

        Ancestors before *last* keep their keys; *last* itself is followed
        by ``list`` and the walk stops there.
        """
        path = self.to_area()
        for name in self.ancestors:
            path.append(name)
            if name == last:
                path.append(LIST_SEGMENT)
                break
            path.append(self.ancestors.key_segment(name))
        return path
