"""Data layer error hierarchy."""

from perch.errors import PerchError


class DataError(PerchError):
    """Base for all perch.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class ConnectionError(DataError):  # noqa: A001
    """Raised when a database connection cannot be established."""


class QueryError(DataError):
    """Raised when a SQL statement fails.

    ``sqlstate`` carries the driver's SQLSTATE code when it reports one
    (PostgreSQL does, SQLite does not).
    """

    def __init__(self, message: str, *, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate
