"""Entity handle over a stored JSON record."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from json_tables.types import RefDescriptor, ShapeKind, UnknownFieldError, is_id

if TYPE_CHECKING:
    from json_tables.storage import JsonStorage


class Entity:
    """Schema-aware view over one record of a type.

    An Entity is bound either to a record or to a record id that is loaded on
    first access. Reference fields are dereferenced into further entities
    when read. Nothing is persisted until :meth:`save`.

    Entities are disposable: two entities over the same stored id do not see
    each other's unsaved changes.
    """

    def __init__(
        self,
        storage: JsonStorage,
        type_name: str,
        data: dict[str, Any] | None = None,
        record_id: Any = None,
    ) -> None:
        self.storage = storage
        self.type_name = type_name
        self._data = data
        self._record_id = record_id
        self._entities: dict[str, Entity] = {}

    @property
    def data(self) -> dict[str, Any] | None:
        """The bound record, loading it by id on first access."""
        if self._data is None and self._record_id is not None:
            self._data = self.storage.load(self.type_name, self._record_id)
        return self._data

    @property
    def id(self) -> Any:
        """The record id, or None before the record is first saved."""
        if self._data is None:
            return self._record_id
        return self._data.get("id")

    @property
    def refs(self) -> list[RefDescriptor]:
        return self.storage.registry.get_schema_refs(self.type_name) or []

    @property
    def fields(self) -> dict[str, str]:
        return self.storage.registry.get_schema_fields(self.type_name) or {}

    def load(self, record_id: Any) -> Entity:
        """Rebind this entity to the stored record with the given id."""
        self._record_id = record_id
        self._data = self.storage.load(self.type_name, record_id)
        self._entities = {}
        return self

    def create(self, data: dict[str, Any]) -> Entity:
        """Validate raw data and bind it to this entity."""
        self.storage.validate(self.type_name, data)
        self._data = data
        self._record_id = None
        self._entities = {}
        return self

    def save(self) -> Entity:
        """Persist the bound record, cascading into inlined references."""
        if self.data is None:
            raise ValueError(f"No record bound to this '{self.type_name}' entity")
        self.storage.save(self.type_name, self._data)
        return self

    def delete(self, recursive: bool = False) -> Entity:
        """Delete the stored record, and its references if ``recursive``."""
        self.storage.delete(self.type_name, self.id, recursive)
        return self

    def _materialize(self, type_name: str, value: Any) -> Entity | None:
        """Wrap a reference value, loading it if it is an id.

        Returns None when the value is null or no record has that id.
        """
        if value is None:
            return None
        if is_id(value):
            loaded = self.storage.load(type_name, value)
            if loaded is None:
                return None
            return Entity(self.storage, type_name, loaded)
        return Entity(self.storage, type_name, value)

    def get(self, field_name: str, index: int | None = None, target: str | None = None) -> Any:
        """Read a field, dereferencing references into entities.

        Args:
            field_name: Field to read.
            index: Element of an array-of-references field to read.
            target: Sub-field to extract from each referenced record, or the
                target of a multi-target array.

        Returns:
            The plain value for non-reference fields. For a ``single``
            reference, an Entity, or None when the reference is null or its
            record does not exist. For an array of references, a list of
            entities, the entity at ``index``, or with ``target`` the raw
            ``target`` value of each referenced record. For a multi-target
            array, the entity referenced by ``target`` of the element at
            ``index``, or the raw ``target`` value of every element when
            ``index`` is omitted.
        """
        record = self.data or {}
        descriptor = self.storage.registry.get_ref(self.type_name, field_name)
        if descriptor is None:
            return record.get(field_name)

        if descriptor.kind is ShapeKind.SINGLE:
            if record.get(field_name) is None:
                return None
            if field_name not in self._entities:
                entity = self._materialize(descriptor.type_name, record[field_name])
                if entity is None:
                    return None
                self._entities[field_name] = entity
            return self._entities[field_name]

        elements = record.get(field_name)
        if elements is None:
            return None

        if descriptor.kind is ShapeKind.ARRAY:
            if index is not None:
                return self._materialize(descriptor.type_name, elements[index])
            entities = [self._materialize(descriptor.type_name, value) for value in elements]
            if target is None:
                return entities
            return [
                entity.data.get(target) if entity is not None else None
                for entity in entities
            ]

        if target is None:
            return elements if index is None else elements[index]
        ref_target = descriptor.get_target(target)
        if ref_target is None:
            raise KeyError(f"Field '{field_name}' of '{self.type_name}' has no reference target '{target}'")
        if index is not None:
            return self._materialize(ref_target.type_name, elements[index].get(target))
        return [element.get(target) for element in elements]

    def set(self, field_name: str, value: Any) -> Entity:
        """Validate and assign a field; nothing is persisted until save.

        Assigning None to a ``single`` reference removes the reference.

        Raises:
            UnknownFieldError: If the schema does not declare the field.
            SchemaValidationError: If the value violates the field's schema.
        """
        schema = self.storage.registry.get_schema_or_raise(self.type_name)
        if field_name not in schema["properties"]:
            raise UnknownFieldError(field_name, self.type_name)

        record = self.data
        if record is None:
            record = self._data = {}

        descriptor = self.storage.registry.get_ref(self.type_name, field_name)
        if value is None and descriptor is not None and descriptor.kind is ShapeKind.SINGLE:
            record.pop(field_name, None)
        else:
            self.storage.validator.validate_field(self.type_name, field_name, value)
            record[field_name] = value
        self._entities.pop(field_name, None)
        return self

    def to_dict(self) -> dict[str, Any] | None:
        """Return the bound record."""
        return self.data

    def __repr__(self) -> str:
        return f"Entity({self.type_name!r}, {self.id!r})"
