"""Subjects: the unit that handles one request.

A subject is a named domain entity acting as controller. One instance is
built per request, normally through ``Subject.factory()``, and dispatched
once with ``exec_action()``::

    class Region(Subject):
        capabilities = (DatabaseCapability, ORMCapability)

        def execList(self):  # noqa: N802
            return self.capability("ORM").get(order={"name": "ASC"})

    subject = Subject.factory("region", http, config, route, context=ctx)
    subject.inject("query_builder", SQLQueryBuilder())
    subject.exec_action()

Construction, in order:

1. capabilities are instantiated and their dependencies verified;
2. the route is processed: ancestors resolved (and their translations
   loaded), the ``subject`` property copied into the parameters, the action
   taken from the route properties or parameters, ``on_route`` hooks run;
3. the configuration is processed: the subject's own translations loaded,
   ``on_configure`` hooks run and the resulting configuration stored.

Dispatch resolves the handler first, then checks injections and runs
``on_init`` hooks, then calls the handler. Errors raised by the handler
propagate unchanged.
"""

from __future__ import annotations

import importlib
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

from perch.capabilities import composer
from perch.capabilities.base import Capability
from perch.capabilities.registry import build_registry
from perch.config import Configuration, ConfigurationLoader, FileConfigurationLoader
from perch.context import RequestContext
from perch.errors import (
    ConfigurationError,
    NoActionError,
    SubjectNotFoundError,
    UnhandledActionError,
)
from perch.routing.ancestors import AncestorChain, AncestorResolver
from perch.routing.paths import PathBuilder
from perch.routing.route import Route
from perch.translations import Bundle, TranslationLoader

logger = logging.getLogger("perch.subject")

# Prefix of action handler methods: "list-items" -> execListItems
HANDLER_PREFIX = "exec"

_ACTION_SEPARATOR_RE = re.compile(r"[-_](.)")


def sanitize_action(action: str) -> str:
    """Turn an action slug into the CamelCase part of a handler name.

    ``"list-items"`` -> ``"ListItems"``, ``"edit_profile"`` -> ``"EditProfile"``.
    """
    camel = _ACTION_SEPARATOR_RE.sub(lambda m: m.group(1).upper(), action)
    return camel[:1].upper() + camel[1:]


def handler_name(action: str) -> str:
    """Method name handling *action*: ``"edit-profile"`` -> ``"execEditProfile"``."""
    return HANDLER_PREFIX + sanitize_action(action)


def build_class_name(subject_name: str) -> str:
    """Class name for a subject slug: ``"region-stats"`` -> ``"RegionStats"``."""
    return "".join(part[:1].upper() + part[1:] for part in subject_name.split("-"))


def resolve_subject_class(subject_name: str, namespace: str) -> type[Subject]:
    """Import the subject class for *subject_name* from module *namespace*.

    Raises ``ConfigurationError`` when no namespace is configured and
    ``SubjectNotFoundError`` when the module has no such ``Subject`` class.
    """
    if not namespace:
        msg = "RequestContext.namespace is not set; cannot locate subject classes"
        raise ConfigurationError(msg)
    class_name = build_class_name(subject_name)
    module = importlib.import_module(namespace)
    cls = getattr(module, class_name, None)
    if not (isinstance(cls, type) and issubclass(cls, Subject)):
        raise SubjectNotFoundError(subject_name, f"{namespace}.{class_name}")
    return cls


@dataclass(frozen=True, slots=True)
class HTTPBundle:
    """The transport layer's request, response and stream objects, passed through as is."""

    request: Any = None
    response: Any = None
    stream: Any = None


def _as_configuration(configuration: Configuration | Mapping[str, Any] | None) -> Configuration:
    if isinstance(configuration, Configuration):
        return configuration
    return Configuration(dict(configuration or {}))


class Subject:
    """Base class for request-handling subjects.

    Subclasses list their capabilities and define ``exec<Action>`` methods.
    Set ``record`` to a dataclass to receive ORM rows as typed records.
    """

    capabilities: ClassVar[tuple[type[Capability], ...]] = ()
    record: ClassVar[type | None] = None

    def __init__(
        self,
        name: str,
        http: HTTPBundle | None,
        configuration: Configuration | Mapping[str, Any] | None,
        route: Route,
        *,
        context: RequestContext,
        loader: ConfigurationLoader | None = None,
        translator: TranslationLoader | None = None,
    ) -> None:
        self.name = name
        self.http = http or HTTPBundle()
        self.context = context
        self.action: str | None = None
        self.ancestors = AncestorChain()
        self.subjects: dict[str, Subject] = {}
        self.translations: dict[str, Bundle] = {}
        self._injections: dict[str, Any] = {}
        self._loader = loader or FileConfigurationLoader(context)
        self._translator = translator or TranslationLoader()

        self.registry = build_registry(self, self.capabilities)
        composer.check_dependencies(self)
        self.route = self._process_route(route)
        self.configuration = self._process_configuration(_as_configuration(configuration))
        logger.debug(
            "Built subject %r (action=%r, ancestors=%s)", name, self.action, list(self.ancestors)
        )

    @classmethod
    def factory(
        cls,
        name: str,
        http: HTTPBundle | None,
        configuration: Configuration | Mapping[str, Any] | None,
        route: Route,
        *,
        context: RequestContext,
        loader: ConfigurationLoader | None = None,
    ) -> Subject:
        """Load *name*'s entity configuration and build its subject class.

        The entity configuration becomes ``subjects.<name>`` of the
        configuration handed to the new subject; the class is looked up in
        ``context.namespace``.
        """
        loader = loader or FileConfigurationLoader(context)
        configuration = _as_configuration(configuration).replace_subject(name, loader.load(name))
        subject_cls = resolve_subject_class(name, context.namespace)
        return subject_cls(name, http, configuration, route, context=context, loader=loader)

    # -- Construction steps --

    def _process_route(self, route: Route) -> Route:
        self.ancestors = AncestorResolver(self._loader).resolve(route)
        for ancestor, locale in self.ancestors.locales.items():
            self.load_application_translations(ancestor, locale)

        if route.properties.get("subject"):
            route = route.with_parameter("subject", route.properties["subject"])

        # Static route action first, URL action otherwise
        if route.properties.get("action"):
            self.action = route.properties["action"]
        elif route.parameter("action"):
            self.action = route.parameter("action")

        composer.process_route(self, route)
        return route

    def _process_configuration(self, configuration: Configuration) -> Configuration:
        locale = configuration.subject(self.name).get("locale")
        if locale:
            self.load_application_translations(self.name, locale)
        return composer.process_configuration(self, configuration)

    # -- Capabilities and injections --

    def has_capability(self, name: str) -> bool:
        return self.registry.has(name)

    def capability(self, name: str) -> Any:
        """Return the active capability *name*.

        Raises ``KeyError`` if the subject does not use it.
        """
        capability = self.registry.get(name)
        if capability is None:
            msg = f"Subject {self.name!r} has no active capability {name!r}"
            raise KeyError(msg)
        return capability

    def inject(self, name: str, value: Any) -> None:
        """Bind a collaborator (e.g. ``query_builder``) required by a capability."""
        self._injections[name] = value

    def injected(self, name: str, default: Any = None) -> Any:
        return self._injections.get(name, default)

    def inject_subject(self, subject: Subject) -> None:
        """Make another subject available as ``self.subjects[subject.name]``."""
        self.subjects[subject.name] = subject

    # -- Dispatch --

    def set_action(self, action: str) -> None:
        self.action = action

    def exec_action(self) -> Any:
        """Run the handler for the current action and return its result.

        Raises ``NoActionError`` if no action was resolved and
        ``UnhandledActionError`` if the subject has no handler for it.
        Contract violations raise ``CompositionError``; anything the
        handler raises propagates unchanged.
        """
        if not self.action:
            raise NoActionError(self.name)
        handler = getattr(self, handler_name(self.action), None)
        if not callable(handler):
            raise UnhandledActionError(self.context.area, self.name, self.action)
        composer.check_injections(self)
        composer.initialize(self)
        logger.debug("Dispatching %r to %s.%s", self.action, type(self).__name__, handler.__name__)
        return handler()

    # -- Translations --

    def load_translations(self, key: str, path: str | Path) -> None:
        """Parse the bundle at *path* into ``translations[key]``.

        Raises ``TranslationNotFoundError`` if the file does not exist.
        """
        self.translations[key] = self._translator.load(path)

    def load_application_translations(self, key: str, relative_path: str | Path) -> None:
        """Load a bundle stored under the application's active-language locales."""
        self.load_translations(key, self.context.locales_dir / relative_path)

    # -- Paths --

    @property
    def paths(self) -> PathBuilder:
        return PathBuilder(self.route.parameters, self.ancestors)

    def path_to_area(self, language: str | None = None) -> list[str]:
        return self.paths.to_area(language)

    def path_to_subject(self, language: str | None = None) -> list[str]:
        return self.paths.to_subject(language)

    def path_to_action(self, action: str, url_template: str | None = None, key: Any = None) -> str:
        """URL of *action*; a compound *key* is joined in the ORM's declared key order."""
        return self.paths.to_action(action, url_template, key, self._key_fields())

    def _key_fields(self) -> tuple[str, ...] | None:
        orm = self.registry.get("ORM")
        if orm is None or orm.parameters is None:
            return None
        return orm.primary_key

    def path_to_ancestor(self, last: str) -> list[str]:
        return self.paths.to_ancestor(last)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} action={self.action!r}>"
