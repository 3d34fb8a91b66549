"""JSON Tables - A schema-validated, file-based store of typed JSON records."""

from json_tables.config import StorageConfig
from json_tables.entity import Entity
from json_tables.refs import iter_refs, map_refs
from json_tables.schema import SchemaRegistry
from json_tables.storage import JsonStorage
from json_tables.types import (
    RefDescriptor,
    RefTarget,
    SchemaValidationError,
    ShapeKind,
    UnknownFieldError,
    ValidationResult,
)
from json_tables.validation import Validator

__all__ = [
    # Main API
    "JsonStorage",
    "StorageConfig",
    "Entity",
    # Schemas
    "SchemaRegistry",
    "RefDescriptor",
    "RefTarget",
    "ShapeKind",
    "map_refs",
    "iter_refs",
    # Validation
    "Validator",
    "ValidationResult",
    "SchemaValidationError",
    "UnknownFieldError",
]

__version__ = "0.1.0"
