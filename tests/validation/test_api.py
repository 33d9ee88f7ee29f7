"""Tests for the public validation entry points."""

from dataclasses import dataclass
from typing import Annotated

import pytest

from vetted.core.config import Settings
from vetted.core.errors import ErrorCode, Err, Ok
from vetted.core.validation import (
    Integer,
    SchemaRegistry,
    SchemaValidator,
    String,
    Violation,
    ViolationList,
    default_registry,
    record,
    validate,
    validate_all,
    validate_batch,
    validated,
)


@dataclass
class Item:
    name: Annotated[str, String(length=(2, 10))]
    qty: Annotated[int, Integer(size=(1, 99))]


class TestFunctionalApi:
    """Test validate, validate_all and validate_batch."""

    def test_schema_defaults_to_type(self, registry):
        """Without an explicit schema the value's class is used."""
        assert validate(Item("ok", 1), registry=registry) == Ok(None)
        assert registry.is_compiled(Item)

    def test_explicit_schema_key(self, registry):
        """Mappings are validated against a registered key."""
        registry.register("item", record("Item").field("name", String(length=(2, 10))))

        violation = validate({"name": "x"}, "item", registry=registry).unwrap_err()
        assert isinstance(violation, Violation)
        assert violation.field_path == "name"

    def test_validate_is_fail_fast(self, registry):
        """validate reports only the first violation."""
        violation = validate(Item("x", 0), registry=registry).unwrap_err()
        assert violation.field_path == "name"

    def test_validate_all_collects(self, registry):
        """validate_all reports every violation in declaration order."""
        violations = validate_all(Item("x", 0), registry=registry).unwrap_err()

        assert isinstance(violations, ViolationList)
        assert [v.field_path for v in violations] == ["name", "qty"]

    def test_max_errors_from_settings(self):
        """MAX_ERRORS caps collect-all results."""
        registry = SchemaRegistry(settings=Settings(MAX_ERRORS=1))
        assert len(validate_all(Item("x", 0), registry=registry).unwrap_err()) == 1

    def test_batch(self, registry):
        """Batch validation reports failing indices with their violations."""
        items = [Item("ok", 1), Item("x", 1), Item("fine", 5), Item("y", 0)]

        failures = validate_batch(items, Item, registry=registry).unwrap_err()

        assert [index for index, _ in failures] == [1, 3]
        assert len(failures[1][1]) == 2

    def test_batch_all_valid(self, registry):
        """A batch with no failures is Ok."""
        assert validate_batch([Item("ok", 1), Item("ok", 2)], Item, registry=registry) == Ok(None)

    def test_batch_max_failures(self, registry):
        """max_failures stops the batch early."""
        items = [Item("x", 1)] * 5

        failures = validate_batch(items, Item, registry=registry, max_failures=2).unwrap_err()
        assert [index for index, _ in failures] == [0, 1]

    def test_default_registry(self):
        """Without a registry argument the process-wide registry is used."""

        @dataclass
        class Slot:
            code: Annotated[str, String(length=2)]

        try:
            assert isinstance(validate(Slot("abc")), Err)
            assert default_registry.is_compiled(Slot)
        finally:
            default_registry.clear()


class TestSchemaValidator:
    """Test the bound validator."""

    def test_reuses_tree(self, registry):
        """The bound validator resolves one tree through the registry."""
        validator = SchemaValidator(Item, registry)

        assert validator.tree is validator.tree
        assert validator.tree is registry.get_or_compile(Item)

    def test_explicit_max_errors(self, registry):
        """An explicit max_errors overrides the settings."""
        validator = SchemaValidator(Item, registry, max_errors=1)
        assert len(validator.validate_all(Item("x", 0)).unwrap_err()) == 1

    def test_repr(self, registry):
        """repr names the schema."""
        assert repr(SchemaValidator(Item, registry)) == "SchemaValidator('Item')"
        assert repr(SchemaValidator("item", registry)) == "SchemaValidator('item')"

    def test_results_convert_to_app_errors(self, registry):
        """Failures map onto the shared error taxonomy."""
        validator = SchemaValidator(Item, registry)

        single = validator.validate(Item("ok", 0)).unwrap_err().to_app_error()
        assert single.code is ErrorCode.E2003_OUT_OF_RANGE
        assert single.metadata["field"] == "qty"

        many = validator.validate_all(Item("x", 0)).unwrap_err().to_app_error()
        assert many.code is ErrorCode.E2000_VALIDATION_GENERIC
        assert many.metadata["error_count"] == 2


class TestValidatedDecorator:
    """Test decorator-based registration."""

    def test_registers_lazily(self, registry):
        """The decorator registers without compiling."""

        @validated(registry=registry)
        @dataclass
        class Tag:
            label: Annotated[str, String(length=(1, 5))]

        assert registry.is_registered(Tag)
        assert not registry.is_compiled(Tag)
        assert isinstance(validate(Tag("too-long"), registry=registry), Err)
        assert registry.is_compiled(Tag)

    def test_with_source(self, registry):
        """An explicit source replaces the derived tree."""

        @validated(registry=registry, source=record("Code").field("value", String(starts_with="C")))
        @dataclass
        class Code:
            value: str

        assert validate(Code("C1"), registry=registry) == Ok(None)
        assert validate(Code("X1"), registry=registry).unwrap_err().constraint == "starts_with"

    def test_returns_class(self, registry):
        """The decorated class is returned unchanged."""

        @dataclass
        class Plain:
            value: Annotated[int, Integer()]

        assert validated(registry=registry)(Plain) is Plain


@pytest.mark.parametrize("value", [Item("ok", 1), Item("abcdefghij", 99)])
def test_valid_items(registry, value):
    """Boundary values pass."""
    assert validate_all(value, registry=registry) == Ok(None)
