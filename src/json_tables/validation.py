"""Schema validation of records and field values."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from jsonschema import Draft202012Validator

from json_tables.schema import SchemaRegistry
from json_tables.types import SchemaValidationError, UnknownFieldError, ValidationResult

ValidateFunc = Callable[[Any], ValidationResult]


class Validator:
    """Validates values against type schemas composed with all registered types.

    Every registered type is made available under ``$defs`` of the checked
    schema so that ``$ref``s resolve across types. Compiled validators are
    cached per (type, field) and dropped whenever the registry changes.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry
        self._cache: dict[tuple[str, str | None], ValidateFunc] = {}
        self._generation = registry.generation

    def _compose(self, type_name: str, field_name: str | None) -> dict[str, Any]:
        schema = self.registry.get_schema_or_raise(type_name)
        if field_name is None:
            root = schema
        else:
            root = schema["properties"].get(field_name)
            if root is None:
                raise UnknownFieldError(field_name, type_name)
        composed = self.registry.canonical_refs(root)
        composed["$defs"] = self.registry.get_defs_schema()
        return composed

    def get_validator(self, type_name: str, field_name: str | None = None) -> ValidateFunc:
        """Get a validation function for a whole type or one of its fields.

        Args:
            type_name: Name of the registered type.
            field_name: Optional field whose sub-schema to validate against.

        Returns:
            A function mapping a value to a ValidationResult.

        Raises:
            KeyError: If the type is not registered.
            UnknownFieldError: If the field is not declared by the type.
        """
        if self._generation != self.registry.generation:
            self._cache.clear()
            self._generation = self.registry.generation

        key = (type_name, field_name)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        composed = self._compose(type_name, field_name)
        Draft202012Validator.check_schema(composed)
        checker = Draft202012Validator(composed)

        def validate(data: Any) -> ValidationResult:
            errors = [f"{error.json_path}: {error.message}" for error in checker.iter_errors(data)]
            return ValidationResult(valid=not errors, errors=errors)

        self._cache[key] = validate
        return validate

    def validate(self, type_name: str, data: Any, throwing: bool = True) -> ValidationResult:
        """Validate a record (or a bare id) against a type's schema.

        Raises:
            SchemaValidationError: If validation fails and ``throwing`` is set.
        """
        result = self.get_validator(type_name)(data)
        if not result.valid and throwing:
            raise SchemaValidationError(result.errors)
        return result

    def validate_field(
        self, type_name: str, field_name: str, value: Any, throwing: bool = True
    ) -> ValidationResult:
        """Validate a single field value against its sub-schema."""
        result = self.get_validator(type_name, field_name)(value)
        if not result.valid and throwing:
            raise SchemaValidationError(result.errors)
        return result
