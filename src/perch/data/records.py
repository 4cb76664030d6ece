"""Record classes: typed rows for subjects that declare ``record``.

A subject's ``record`` dataclass describes one row of its view::

    @dataclass(frozen=True, slots=True)
    class RegionRecord:
        country: str
        code: str
        population: int
        founded: datetime.date | None = None

``RecordType`` reads the annotations once and converts in the two
directions the ORM needs:

- rows coming back from the driver become record instances, with SQLite's
  loosely typed values converted to the annotated types;
- key values coming in from the URL (always strings) are converted to the
  key fields' types before they are bound. ``/region/7`` then compares
  ``7``, not ``"7"``, against an integer column; PostgreSQL rejects the
  string outright.

Columns the record does not declare are ignored, so ``SELECT *`` against a
wide view works with a narrow record class.
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import functools
import types
import typing
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Generic, TypeAlias, TypeVar

from perch.data.errors import DataError

Converter: TypeAlias = Callable[[Any], Any]

T = TypeVar("T")

_TRUE = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE = frozenset({"0", "f", "false", "n", "no", "off"})


def _to_bool(value: Any) -> bool:
    if not isinstance(value, str):
        return bool(value)
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    msg = f"not a boolean: {value!r}"
    raise ValueError(msg)


def _to_date(value: Any) -> datetime.date:
    return datetime.date.fromisoformat(str(value))


def _to_datetime(value: Any) -> datetime.datetime:
    return datetime.datetime.fromisoformat(str(value))


def _to_decimal(value: Any) -> decimal.Decimal:
    return decimal.Decimal(str(value))


_CONVERTERS: dict[type, Converter] = {
    bool: _to_bool,
    int: int,
    float: float,
    str: str,
    decimal.Decimal: _to_decimal,
    datetime.date: _to_date,
    datetime.datetime: _to_datetime,
}


def _target(annotation: Any) -> type | None:
    """Convertible type behind *annotation*, unwrapping ``X | None``."""
    if typing.get_origin(annotation) in (types.UnionType, typing.Union):
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) != 1:
            return None
        annotation = members[0]
    return annotation if annotation in _CONVERTERS else None


class RecordType(Generic[T]):
    """Conversion table for one record dataclass.

    Obtain instances through ``record_type()``, which builds each table once.
    """

    __slots__ = ("_targets", "cls")

    def __init__(self, cls: type[T]) -> None:
        if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
            msg = f"Record class {cls!r} must be a dataclass"
            raise TypeError(msg)
        # Resolves string annotations from modules using postponed evaluation
        hints = typing.get_type_hints(cls)
        self.cls = cls
        self._targets: dict[str, type | None] = {
            f.name: _target(hints.get(f.name, f.type)) for f in dataclasses.fields(cls)
        }

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self._targets)

    def convert(self, field: str, value: Any) -> Any:
        """Convert *value* to the annotated type of *field*.

        ``None``, values already of the right type and fields with no
        convertible annotation pass through. Raises ``DataError`` when the
        value cannot be read as the field's type.
        """
        target = self._targets.get(field)
        if target is None or value is None or isinstance(value, target):
            return value
        try:
            return _CONVERTERS[target](value)
        except (ValueError, TypeError, decimal.InvalidOperation) as exc:
            msg = (
                f"{self.cls.__name__}.{field}: cannot convert {value!r} "
                f"to {target.__name__}"
            )
            raise DataError(msg) from exc

    def from_row(self, row: Mapping[str, Any]) -> T:
        """Build a record from a row. Missing required fields raise ``TypeError``."""
        values = {name: self.convert(name, v) for name, v in row.items() if name in self._targets}
        return self.cls(**values)

    def from_rows(self, rows: Iterable[Mapping[str, Any]]) -> list[T]:
        return [self.from_row(row) for row in rows]

    def convert_key(self, key: Mapping[str, Any]) -> dict[str, Any]:
        """Convert key values to their fields' types, keeping key order.

        Fields the record does not declare pass through unchanged.
        """
        return {name: self.convert(name, value) for name, value in key.items()}


@functools.cache
def record_type(cls: type) -> RecordType[Any]:
    """The cached ``RecordType`` of *cls*."""
    return RecordType(cls)
