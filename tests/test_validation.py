"""Tests for schema validation."""

import pytest

from json_tables import (
    SchemaRegistry,
    SchemaValidationError,
    UnknownFieldError,
    ValidationResult,
    Validator,
)


@pytest.fixture
def registry():
    reg = SchemaRegistry()
    reg.add_schema("Author", {
        "properties": {"name": {"type": "string"}},
        "required": ["name"],
    })
    reg.add_schema("Book", {
        "properties": {
            "title": {"type": "string"},
            "pages": {"type": "integer", "minimum": 1},
            "author": {"$ref": "/Author"},
            "related": {"type": "array", "items": {"$ref": "/Book"}},
        },
    })
    return reg


@pytest.fixture
def validator(registry):
    return Validator(registry)


class TestValidate:
    """Tests for whole-record validation."""

    def test_valid_record(self, validator):
        """Test validating a valid record."""
        result = validator.validate("Book", {"title": "X", "pages": 10})
        assert result.valid
        assert result.errors == []

    def test_invalid_record_raises(self, validator):
        """Test that an invalid record raises."""
        with pytest.raises(SchemaValidationError, match="is not of type 'string'") as exc_info:
            validator.validate("Book", {"title": 5})
        assert len(exc_info.value.errors) == 1
        assert isinstance(exc_info.value, ValueError)

    def test_messages_are_combined(self, validator):
        """Test that all messages are joined in the error."""
        with pytest.raises(SchemaValidationError) as exc_info:
            validator.validate("Book", {"title": 5, "pages": 0})
        assert len(exc_info.value.errors) == 2
        assert str(exc_info.value) == "; ".join(exc_info.value.errors)

    def test_non_throwing_result(self, validator):
        """Test the structured result of non-raising validation."""
        result = validator.validate("Book", {"title": 5}, throwing=False)
        assert isinstance(result, ValidationResult)
        assert not result.valid
        assert not result
        assert result.errors[0].startswith("$.title:")

    def test_unknown_property_rejected(self, validator):
        """Test that undeclared properties are rejected."""
        result = validator.validate("Book", {"title": "X", "isbn": "123"}, throwing=False)
        assert not result.valid
        assert "isbn" in result.errors[0]

    def test_bare_id_is_accepted(self, validator):
        """Test that a bare id validates as a record."""
        assert validator.validate("Book", 3).valid

    def test_reference_as_id_or_object(self, validator):
        """Test that references accept ids and records."""
        assert validator.validate("Book", {"author": 1}).valid
        assert validator.validate("Book", {"author": {"name": "A"}}).valid
        assert validator.validate("Book", {"related": [1, {"title": "Y"}]}).valid

    def test_nested_reference_is_validated(self, validator):
        """Test that inlined references are validated against their type."""
        result = validator.validate("Book", {"author": {"name": 5}}, throwing=False)
        assert not result.valid
        result = validator.validate("Book", {"author": {}}, throwing=False)
        assert "'name' is a required property" in result.errors[0]

    def test_reference_rejects_string(self, validator):
        """Test that a string is not a valid reference."""
        assert not validator.validate("Book", {"author": "A"}, throwing=False).valid

    def test_unknown_type(self, validator):
        """Test that validating an unknown type raises."""
        with pytest.raises(KeyError):
            validator.validate("Nope", {})


class TestFieldValidator:
    """Tests for single-field validation."""

    def test_scalar_field(self, validator):
        """Test validating a scalar field value."""
        assert validator.validate_field("Book", "title", "X").valid
        with pytest.raises(SchemaValidationError):
            validator.validate_field("Book", "title", 5)

    def test_reference_field(self, validator):
        """Test validating a reference field value."""
        assert validator.validate_field("Book", "author", 2).valid
        assert validator.validate_field("Book", "author", {"name": "A"}).valid
        assert not validator.validate_field("Book", "author", {"nick": "A"}, throwing=False).valid

    def test_unknown_field(self, validator):
        """Test that an undeclared field has no validator."""
        with pytest.raises(UnknownFieldError):
            validator.get_validator("Book", "isbn")


class TestValidatorCache:
    """Tests for compiled validator caching."""

    def test_cached_per_type_and_field(self, validator):
        """Test that validators are cached per type and field."""
        assert validator.get_validator("Book") is validator.get_validator("Book")
        assert validator.get_validator("Book", "title") is validator.get_validator("Book", "title")
        assert validator.get_validator("Book") is not validator.get_validator("Book", "title")

    def test_registration_expires_cache(self, registry, validator):
        """Test that registering a type drops cached validators."""
        before = validator.get_validator("Book")
        registry.add_schema("Publisher", {"properties": {"name": {"type": "string"}}})
        assert validator.get_validator("Book") is not before

    def test_types_registered_later_resolve(self, registry, validator):
        """Test references to a type registered after the validator was built."""
        registry.add_schema("Review", {"properties": {"book": {"$ref": "/Book"}}})
        assert validator.validate("Review", {"book": {"title": "X"}}).valid
        assert not validator.validate("Review", {"book": {"title": 1}}, throwing=False).valid
