"""Flat-file storage of typed JSON records."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from json_tables.config import StorageConfig
from json_tables.entity import Entity
from json_tables.refs import iter_refs, map_refs
from json_tables.schema import SchemaRegistry
from json_tables.types import RefDescriptor, ValidationResult, is_id
from json_tables.validation import ValidateFunc, Validator

logger = logging.getLogger(__name__)

# predicate(entity, index, records) -> keep?
SearchPredicate = Callable[[Entity, int, list], bool]


def _empty_store() -> dict[str, Any]:
    return {"id": 0, "data": []}


class JsonStorage:
    """Stores every record type as a JSON array in its own file.

    Each data file has the shape ``{"id": <counter>, "data": [...]}`` where
    the counter is the highest id ever assigned. Every operation reads the
    whole file and every mutation rewrites it; a missing file is an empty
    store. No locking is done, so concurrent writers overwrite each other.
    """

    def __init__(
        self,
        config: StorageConfig | Mapping[str, Any] | None = None,
        registry: SchemaRegistry | None = None,
    ) -> None:
        """Initialize the storage.

        Args:
            config: Storage options, as a StorageConfig or a plain mapping.
            registry: Schema registry to use; a new one is created if omitted.
        """
        if config is None:
            config = StorageConfig()
        elif not isinstance(config, StorageConfig):
            config = StorageConfig.from_mapping(config)
        self.config = config
        self.registry = registry if registry is not None else SchemaRegistry()
        self.validator = Validator(self.registry)

        if config.schema is not None and config.schema.is_dir():
            self.registry.load_directory(config.schema)

    # -- schemas -----------------------------------------------------------

    def add_schema(self, type_name: str, schema: dict[str, Any]) -> JsonStorage:
        """Register a type's schema with the underlying registry."""
        self.registry.add_schema(type_name, schema)
        return self

    def get_schema(self, type_name: str) -> dict[str, Any] | None:
        return self.registry.get_schema(type_name)

    def get_schema_fields(self, type_name: str) -> dict[str, str] | None:
        return self.registry.get_schema_fields(type_name)

    def get_schema_refs(self, type_name: str) -> list[RefDescriptor] | None:
        return self.registry.get_schema_refs(type_name)

    def get_validator(self, type_name: str, field_name: str | None = None) -> ValidateFunc:
        return self.validator.get_validator(type_name, field_name)

    def validate(self, type_name: str, data: Any, throwing: bool = True) -> ValidationResult:
        """Validate data against a type's schema.

        Raises:
            SchemaValidationError: If validation fails and ``throwing`` is set.
        """
        return self.validator.validate(type_name, data, throwing)

    # -- files -------------------------------------------------------------

    def get_data_file(self, type_name: str) -> Path:
        """Get the path of a type's data file."""
        if self.config.path is None:
            raise ValueError("No data path configured for this storage")
        return self.config.path / f"{type_name}.json"

    def _read(self, type_name: str) -> dict[str, Any]:
        path = self.get_data_file(type_name)
        if not path.exists():
            return _empty_store()
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _write(self, type_name: str, value: dict[str, Any]) -> None:
        path = self.get_data_file(type_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json(value))
        logger.debug("Rewrote %s (%d records)", path, len(value["data"]))

    def to_json(self, value: Any) -> str:
        """Encode a value compactly, or indented when debugging."""
        if self.config.debug:
            return json.dumps(value, indent=2)
        return json.dumps(value, separators=(",", ":"))

    # -- reads -------------------------------------------------------------

    def load(self, type_name: str, record_id: Any) -> dict[str, Any] | None:
        """Load a record by id.

        Returns:
            The record, or None if no record has that id.
        """
        for record in self._read(type_name)["data"]:
            if record.get("id") == record_id:
                return record
        return None

    def search(self, type_name: str, predicate: SearchPredicate | None = None) -> list[Entity]:
        """Get every record of a type as an Entity, optionally filtered.

        Args:
            type_name: Type to scan.
            predicate: Called in store order as ``predicate(entity, index,
                records)``; only entities it accepts are returned.

        Returns:
            Matching entities in store order.
        """
        records = self._read(type_name)["data"]
        entities = [Entity(self, type_name, record) for record in records]
        if predicate is None:
            return entities
        return [entity for i, entity in enumerate(entities) if predicate(entity, i, records)]

    def get(self, type_name: str, record_id: Any = None) -> Entity:
        """Get an Entity for a type, lazily bound to ``record_id`` if given."""
        return Entity(self, type_name, record_id=record_id)

    def create(self, type_name: str, data: dict[str, Any]) -> Entity:
        """Validate data and bind it to a new, unsaved Entity."""
        return Entity(self, type_name).create(data)

    # -- writes ------------------------------------------------------------

    def save(self, type_name: str, record: dict[str, Any]) -> JsonStorage:
        """Validate and persist a record, cascading into inlined references.

        Every inlined referenced record is saved first and replaced by its
        id. The record is then updated in place if it carries an id, or
        appended with the next id otherwise. The record is mutated: it gains
        its id and its nested references become ids.

        Raises:
            SchemaValidationError: If the record violates its schema.
        """
        if not isinstance(record, dict):
            raise TypeError(f"Cannot save {type(record).__name__} as a '{type_name}' record")
        self.validate(type_name, record)

        def persist(value: Any, index: int | None, descriptor: RefDescriptor) -> Any:
            if is_id(value):
                return value
            self.save(descriptor.type_name, value)
            return value["id"]

        map_refs(self.registry, type_name, record, persist)

        if record.get("id") is not None:
            self._update(type_name, record)
        else:
            self._create(type_name, record)
        return self

    def _update(self, type_name: str, record: dict[str, Any]) -> None:
        value = self._read(type_name)
        data = value["data"]
        for i, existing in enumerate(data):
            if existing.get("id") == record["id"]:
                data[i] = record
                break
        else:
            data.append(record)
        if value["id"] < record["id"]:
            value["id"] = record["id"]
        self._write(type_name, value)
        logger.debug("Updated %s #%s", type_name, record["id"])

    def _create(self, type_name: str, record: dict[str, Any]) -> None:
        value = self._read(type_name)
        value["id"] += 1
        record["id"] = value["id"]
        value["data"].append(record)
        self._write(type_name, value)
        logger.debug("Created %s #%s", type_name, record["id"])

    def delete(self, type_name: str, record_id: Any, recursive: bool = False) -> JsonStorage:
        """Remove a record by id; deleting a missing record is a no-op.

        When ``recursive`` is set, every record referenced by this one is
        deleted first, recursively. Each (type, id) is visited once, so
        reference cycles terminate.
        """
        self._delete(type_name, record_id, recursive, set())
        return self

    def _delete(
        self,
        type_name: str,
        record_id: Any,
        recursive: bool,
        visited: set[tuple[str, Any]],
    ) -> None:
        key = (type_name, record_id)
        if key in visited:
            return
        visited.add(key)

        if recursive:
            record = self.load(type_name, record_id)
            if record is None:
                return
            for value, _, descriptor in iter_refs(self.registry, type_name, record):
                if is_id(value):
                    logger.debug("Cascading delete %s -> %s #%s", type_name, descriptor.type_name, value)
                    self._delete(descriptor.type_name, value, True, visited)
                elif isinstance(value, dict) and value.get("id") is not None:
                    self._delete(descriptor.type_name, value["id"], True, visited)

        value = self._read(type_name)
        data = value["data"]
        for i, existing in enumerate(data):
            if existing.get("id") == record_id:
                del data[i]
                break
        else:
            return
        self._write(type_name, value)
        logger.debug("Deleted %s #%s", type_name, record_id)

    def cut(self, type_name: str, record: dict[str, Any]) -> dict[str, Any]:
        """Drop fields the schema does not declare, including in inlined references."""
        properties = self.registry.get_schema_or_raise(type_name)["properties"]
        for name in list(record):
            if name not in properties:
                del record[name]

        def trim(value: Any, index: int | None, descriptor: RefDescriptor) -> Any:
            if isinstance(value, dict):
                return self.cut(descriptor.type_name, value)
            return value

        return map_refs(self.registry, type_name, record, trim)
