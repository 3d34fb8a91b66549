"""Generic traversal of the reference fields of a record."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from json_tables.schema import SchemaRegistry
from json_tables.types import RefDescriptor, ShapeKind

# mapper(value, index, descriptor) -> replacement value
RefMapper = Callable[[Any, int | None, RefDescriptor], Any]


def _target_descriptor(descriptor: RefDescriptor, sub_field: str, type_name: str) -> RefDescriptor:
    return RefDescriptor(
        field=descriptor.field,
        kind=ShapeKind.SINGLE,
        type_name=type_name,
        target=sub_field,
    )


def map_refs(
    registry: SchemaRegistry,
    type_name: str,
    record: dict[str, Any],
    mapper: RefMapper,
) -> dict[str, Any]:
    """Apply a mapper to every reference-bearing value of a record.

    ``single`` fields are mapped once, with index None; a null or absent
    value removes the field instead. Arrays of references are mapped per
    element. Multi-target arrays are mapped per element and per target
    sub-field, with a ``single`` descriptor naming that target's type.

    The record is mutated in place and returned.

    Args:
        registry: Registry providing the type's reference descriptors.
        type_name: Type of the record.
        record: Record to traverse.
        mapper: Called as ``mapper(value, index, descriptor)``; its result
            replaces the value.

    Returns:
        The same record.
    """
    for descriptor in registry.get_schema_refs(type_name) or []:
        name = descriptor.field
        if descriptor.kind is ShapeKind.SINGLE:
            if record.get(name) is None:
                record.pop(name, None)
                continue
            record[name] = mapper(record[name], None, descriptor)

        elif descriptor.kind is ShapeKind.ARRAY:
            values = record.get(name)
            if not isinstance(values, list):
                continue
            for i, value in enumerate(values):
                values[i] = mapper(value, i, descriptor)

        else:
            elements = record.get(name)
            if not isinstance(elements, list):
                continue
            for i, element in enumerate(elements):
                if not isinstance(element, dict):
                    continue
                for target in descriptor.targets:
                    if element.get(target.field) is None:
                        element.pop(target.field, None)
                        continue
                    element[target.field] = mapper(
                        element[target.field],
                        i,
                        _target_descriptor(descriptor, target.field, target.type_name),
                    )
    return record


def iter_refs(
    registry: SchemaRegistry,
    type_name: str,
    record: dict[str, Any],
) -> Iterator[tuple[Any, int | None, RefDescriptor]]:
    """Yield ``(value, index, descriptor)`` for every reference of a record.

    Uses the same dispatch as :func:`map_refs` without changing the record.
    """
    found: list[tuple[Any, int | None, RefDescriptor]] = []

    def collect(value: Any, index: int | None, descriptor: RefDescriptor) -> Any:
        found.append((value, index, descriptor))
        return value

    shallow = dict(record)
    for descriptor in registry.get_schema_refs(type_name) or []:
        if descriptor.kind is ShapeKind.MULTI_TARGET and isinstance(shallow.get(descriptor.field), list):
            shallow[descriptor.field] = [
                dict(e) if isinstance(e, dict) else e for e in shallow[descriptor.field]
            ]
        elif descriptor.kind is ShapeKind.ARRAY and isinstance(shallow.get(descriptor.field), list):
            shallow[descriptor.field] = list(shallow[descriptor.field])
    map_refs(registry, type_name, shallow, collect)
    yield from found
