"""Schema registry for json_tables types."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any

from json_tables.types import RefDescriptor, RefTarget, ShapeKind

logger = logging.getLogger(__name__)

# Accepted top-level type of every registered schema: a full record, or the
# bare id of a record that is only referenced.
RECORD_OR_ID = ["object", "number"]

DEFS_PREFIX = "#/$defs/"


def _has_type(descriptor: dict[str, Any], type_name: str) -> bool:
    declared = descriptor.get("type")
    if isinstance(declared, list):
        return type_name in declared
    return declared == type_name


class SchemaRegistry:
    """Registry of the schema of every record type.

    Schemas are JSON-Schema shaped objects whose ``properties`` map field
    names to field descriptors. Reference shapes derived from a schema are
    computed on first use and cached until the type is registered again.
    """

    def __init__(self) -> None:
        self._schemas: dict[str, dict[str, Any]] = {}
        self._refs: dict[str, list[RefDescriptor]] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        """Counter bumped on every registration, used to expire derived caches."""
        return self._generation

    def add_schema(self, type_name: str, schema: dict[str, Any]) -> SchemaRegistry:
        """Register or replace the schema of a type.

        The stored schema is a normalized copy: fields declared under
        ``fields`` are moved to ``properties``, an ``id: number`` property is
        added, and the accepted top-level type becomes "object or number".

        Args:
            type_name: Name of the record type.
            schema: Schema document for the type.

        Returns:
            The registry, for chaining.
        """
        normalized = copy.deepcopy(schema)
        if "properties" not in normalized and "fields" in normalized:
            normalized["properties"] = normalized.pop("fields")
        properties = normalized.setdefault("properties", {})
        properties["id"] = {"type": "number"}
        normalized["type"] = list(RECORD_OR_ID)
        normalized.setdefault("additionalProperties", False)

        self._schemas[type_name] = normalized
        self._refs.pop(type_name, None)
        self._generation += 1
        logger.debug("Registered schema for type %r (%d fields)", type_name, len(properties))
        return self

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._schemas

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._schemas)

    def get_schema(self, type_name: str) -> dict[str, Any] | None:
        """Get the normalized schema of a type, or None if not registered."""
        return self._schemas.get(type_name)

    def get_schema_or_raise(self, type_name: str) -> dict[str, Any]:
        """Get the normalized schema of a type, raising if not registered."""
        schema = self._schemas.get(type_name)
        if schema is None:
            raise KeyError(f"Schema '{type_name}' not found")
        return schema

    def get_schema_fields(self, type_name: str) -> dict[str, str] | None:
        """Map every non-reference field with a declared type to that type.

        Returns:
            Field name to type name, or None if the type is not registered.
        """
        schema = self.get_schema(type_name)
        if schema is None:
            return None
        refs = {d.field for d in self.get_schema_refs(type_name) or []}
        fields: dict[str, str] = {}
        for name, descriptor in schema["properties"].items():
            if name in refs:
                continue
            if isinstance(descriptor.get("type"), str):
                fields[name] = descriptor["type"]
        return fields

    def get_schema_refs(self, type_name: str) -> list[RefDescriptor] | None:
        """Get the reference descriptors of a type's fields.

        A field with a direct ``$ref`` is ``single``. An array field whose
        items carry a ``$ref`` is ``array-of-ids-or-objects``. An array field
        whose items are objects becomes one ``array-of-multi-target``
        descriptor holding a target for every item sub-field with a ``$ref``.

        Returns:
            The cached descriptors, or None if the type is not registered.
        """
        if type_name in self._refs:
            return self._refs[type_name]
        schema = self.get_schema(type_name)
        if schema is None:
            return None

        refs: list[RefDescriptor] = []
        for name, descriptor in schema["properties"].items():
            if isinstance(descriptor.get("$ref"), str):
                refs.append(RefDescriptor(
                    field=name,
                    kind=ShapeKind.SINGLE,
                    type_name=self.get_ref_type(descriptor["$ref"]),
                ))
                continue
            if not _has_type(descriptor, "array"):
                continue
            items = descriptor.get("items")
            if not isinstance(items, dict):
                continue
            if isinstance(items.get("$ref"), str):
                refs.append(RefDescriptor(
                    field=name,
                    kind=ShapeKind.ARRAY,
                    type_name=self.get_ref_type(items["$ref"]),
                ))
            elif _has_type(items, "object"):
                targets = [
                    RefTarget(field=sub, type_name=self.get_ref_type(sub_desc["$ref"]))
                    for sub, sub_desc in items.get("properties", {}).items()
                    if isinstance(sub_desc.get("$ref"), str)
                ]
                if targets:
                    refs.append(RefDescriptor(
                        field=name,
                        kind=ShapeKind.MULTI_TARGET,
                        targets=targets,
                    ))

        self._refs[type_name] = refs
        return refs

    def get_ref(self, type_name: str, field_name: str) -> RefDescriptor | None:
        """Get the reference descriptor of one field, or None for plain fields."""
        for descriptor in self.get_schema_refs(type_name) or []:
            if descriptor.field == field_name:
                return descriptor
        return None

    @staticmethod
    def get_ref_type(ref: str) -> str:
        """Extract the referenced type name from a ``$ref`` path.

        ``/Author``, ``#/definitions/Author``, ``#/$defs/Author`` and a bare
        ``Author`` all name the type ``Author``.
        """
        return ref.rstrip("/").rsplit("/", 1)[-1]

    def canonical_refs(self, node: Any) -> Any:
        """Return a copy of a schema node with type references pointing into ``$defs``."""
        if isinstance(node, list):
            return [self.canonical_refs(item) for item in node]
        if not isinstance(node, dict):
            return node
        result = {key: self.canonical_refs(value) for key, value in node.items()}
        ref = node.get("$ref")
        if isinstance(ref, str) and self.get_ref_type(ref) in self._schemas:
            result["$ref"] = DEFS_PREFIX + self.get_ref_type(ref)
        return result

    def get_defs_schema(self) -> dict[str, dict[str, Any]]:
        """Get every registered schema as a shared definition.

        Each copy accepts either a full record or a bare numeric id, and its
        references point at sibling definitions, so the mapping can be used
        directly as the ``$defs`` of a composed schema.
        """
        return {name: self.canonical_refs(schema) for name, schema in self._schemas.items()}

    def load_directory(self, directory: Path | str) -> list[str]:
        """Register every schema document found in a directory.

        Each ``*.json`` file holds ``{"type": <name>, "schema": {...}}``.
        Files are registered in name order.

        Args:
            directory: Directory holding the schema documents.

        Returns:
            Names of the registered types.
        """
        directory = Path(directory)
        registered: list[str] = []
        for path in sorted(directory.glob("*.json")):
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
            if (
                not isinstance(document, dict)
                or not isinstance(document.get("type"), str)
                or not isinstance(document.get("schema"), dict)
            ):
                raise ValueError(
                    f"Schema document {path} must be an object with a 'type' string and a 'schema' object"
                )
            self.add_schema(document["type"], document["schema"])
            registered.append(document["type"])
        logger.debug("Loaded %d schema(s) from %s", len(registered), directory)
        return registered
