"""Shared type aliases used across perch modules."""

from collections.abc import Iterable, Mapping
from typing import Any, TypeAlias

# A key lookup value: a bare scalar (first key field) or a field mapping
KeyLookup: TypeAlias = Any

# Record filters: field -> value, or field -> (operator, value)
Conditions: TypeAlias = Mapping[str, Any]

# Ordering: field -> direction mapping, or (field, direction) pairs
Ordering: TypeAlias = Mapping[str, str] | Iterable[tuple[str, str]]

# A fetched row
Record: TypeAlias = Any
