"""Per-request context.

``RequestContext`` carries the values that identify where a request lives:
the application, the active language and area, the filesystem root the
application's private files sit under, and the module namespace its
subject classes are imported from. It is immutable and handed explicitly
to every component that needs it. Nothing in perch reads process globals.

Usage::

    ctx = RequestContext(
        application="backoffice",
        language="it",
        area="admin",
        root=Path("/srv/app"),
        namespace="backoffice.subjects",
    )
    ctx.configurations_dir  # /srv/app/private/backoffice/configurations
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Immutable identity of the current request."""

    application: str
    language: str
    area: str | None = None
    root: Path = Path()
    namespace: str = ""

    @property
    def private_dir(self) -> Path:
        """``<root>/private/<application>``."""
        return Path(self.root) / "private" / self.application

    @property
    def configurations_dir(self) -> Path:
        """Directory holding one JSON configuration per entity."""
        return self.private_dir / "configurations"

    @property
    def locales_dir(self) -> Path:
        """Translation directory for the active language."""
        return self.private_dir / "locales" / self.language
