"""Perch: subject dispatch with composable capabilities.

A subject is a named domain entity acting as controller for one request.
It opts into capabilities (database access, ORM), resolves the chain of
ancestor entities it is nested under, dispatches the requested action to an
``exec<Action>`` method and builds hierarchical paths back to itself.

Basic usage::

    from perch import Route, RequestContext, Subject
    from perch.capabilities import DatabaseCapability, ORMCapability
    from perch.data import SQLQueryBuilder

    class Country(Subject):
        capabilities = (DatabaseCapability, ORMCapability)

        def execList(self):  # noqa: N802
            return self.capability("ORM").get(order={"name": "ASC"})

    ctx = RequestContext(application="backoffice", language="en", namespace="app.subjects")
    subject = Subject.factory("country", None, config, Route({"action": "list"}), context=ctx)
    subject.inject("query_builder", SQLQueryBuilder())
    rows = subject.exec_action()

PostgreSQL support (``pip install perch[pg]``) uses asyncpg.
"""

__version__ = "0.1.0"
__all__ = [
    "CompositionError",
    "Configuration",
    "ConfigurationError",
    "HTTPBundle",
    "KeyMismatchError",
    "MissingConfigurationError",
    "NoActionError",
    "PerchError",
    "RequestContext",
    "Route",
    "RouteResolutionError",
    "Subject",
    "SubjectNotFoundError",
    "TranslationNotFoundError",
    "UnhandledActionError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` cheap while providing a clean top-level API.
    """
    if name in ("Subject", "HTTPBundle"):
        from perch import subject as _subject

        return getattr(_subject, name)

    if name == "Configuration":
        from perch.config import Configuration

        return Configuration

    if name == "RequestContext":
        from perch.context import RequestContext

        return RequestContext

    if name == "Route":
        from perch.routing.route import Route

        return Route

    if name in __all__:
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
