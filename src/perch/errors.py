"""Perch exception hierarchy.

Shared across the composer, resolver, dispatcher and capabilities so every
module raises and catches the same types. Each error keeps the identifying
pieces of its message as attributes (subject, capability, field, action) so
the transport layer can build a diagnostic without parsing strings.
"""


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when static setup is invalid (bad URL templates, class names)."""


class CompositionError(PerchError):
    """A capability dependency or injection contract is violated.

    ``missing`` is either the name of a required capability (checked at
    construction) or the name of a required injected collaborator (checked
    just before the action runs).
    """

    def __init__(self, subject: str, capability: str, missing: str, *, kind: str = "capability") -> None:
        self.subject = subject
        self.capability = capability
        self.missing = missing
        self.kind = kind
        if kind == "capability":
            detail = f"but required capability {missing!r} is not active"
        else:
            detail = f"but {missing!r} has not been injected"
        super().__init__(f"Subject {subject!r} uses capability {capability!r} {detail}")


class RouteResolutionError(PerchError):
    """The route names an ancestor but lacks one of its primary-key fields."""

    def __init__(self, ancestor: str, field: str) -> None:
        self.ancestor = ancestor
        self.field = field
        super().__init__(
            f"Route contains {ancestor!r} as ancestor but no parameter "
            f"for its primary key field {field!r}"
        )


class MissingConfigurationError(PerchError):
    """A required entity configuration section or key is absent."""

    def __init__(self, subject: str, field: str) -> None:
        self.subject = subject
        self.field = field
        super().__init__(f"Missing {field} in {subject!r} subject configuration")


class KeyMismatchError(PerchError):
    """A key lookup value does not cover every declared primary-key field."""

    def __init__(self, table: str, field: str) -> None:
        self.table = table
        self.field = field
        super().__init__(
            f"Missing value for field {field!r} in where clause "
            f"for table {table!r} primary key"
        )


class NoActionError(PerchError):
    """Dispatch was requested but no action was ever resolved."""

    def __init__(self, subject: str) -> None:
        self.subject = subject
        super().__init__(f"No action defined for subject {subject!r}")


class UnhandledActionError(PerchError):
    """The resolved action has no handler method on the subject."""

    def __init__(self, area: str | None, subject: str, action: str) -> None:
        self.area = area
        self.subject = subject
        self.action = action
        where = f"{area} " if area else ""
        super().__init__(f"No method for handling {where}{subject} {action}")


class TranslationNotFoundError(PerchError):
    """A translation bundle path does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Translation file not found into path {path}")


class SubjectNotFoundError(PerchError):
    """The factory could not find a class for the subject name."""

    def __init__(self, subject: str, class_name: str) -> None:
        self.subject = subject
        self.class_name = class_name
        super().__init__(f"No class {class_name!r} found for subject {subject!r}")
