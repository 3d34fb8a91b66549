"""Type definitions for the json_tables library."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ShapeKind(Enum):
    """How a schema field encodes references to other types."""

    SINGLE = "single"
    ARRAY = "array-of-ids-or-objects"
    MULTI_TARGET = "array-of-multi-target"


@dataclass(frozen=True)
class RefTarget:
    """One referencing sub-field of the items of a multi-target array."""

    field: str
    type_name: str


@dataclass
class RefDescriptor:
    """Reference shape of a single schema field.

    ``type_name`` is set for the ``single`` and ``array-of-ids-or-objects``
    shapes. A multi-target descriptor carries one ``RefTarget`` per item
    sub-field instead, since every sub-field may point at a different type.

    The Walker synthesizes ``single`` descriptors for each target of a
    multi-target array; those carry the sub-field name in ``target``.
    """

    field: str
    kind: ShapeKind
    type_name: str | None = None
    targets: list[RefTarget] = field(default_factory=list)
    target: str | None = None

    def get_target(self, name: str) -> RefTarget | None:
        """Get a multi-target entry by sub-field name."""
        for t in self.targets:
            if t.field == name:
                return t
        return None


@dataclass
class ValidationResult:
    """Outcome of validating a value against a composed schema."""

    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


class SchemaValidationError(ValueError):
    """Raised when a value violates one or more schema rules."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UnknownFieldError(KeyError):
    """Raised when assigning a field that the type's schema does not declare."""

    def __init__(self, field_name: str, type_name: str) -> None:
        self.field_name = field_name
        self.type_name = type_name
        super().__init__(f"Unknown field '{field_name}' in schema '{type_name}'")

    def __str__(self) -> str:
        return self.args[0]


def is_id(value: Any) -> bool:
    """Check if a stored reference value is a resolved (numeric) id."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)
