"""Tests for rule tree evaluation in fail-fast and collect-all modes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, NamedTuple, Optional

import pytest

from vetted.core.errors import Err, ErrorCode, Ok
from vetted.core.validation import (
    Check,
    Each,
    FieldPlan,
    Float,
    Integer,
    Maybe,
    Message,
    Nested,
    SchemaValidator,
    String,
    StringFormat,
    TupleOf,
    record,
    union,
    validate,
    validate_all,
)


@dataclass
class Address:
    street: Annotated[str, String(length=(1, None))]
    zip: Annotated[str, String(length=5)]


@dataclass
class Customer:
    name: Annotated[str, String(length=(3, 50))]
    age: Annotated[int, Integer(size=(0, 150))]
    email: Annotated[str, String(format=StringFormat.EMAIL)]
    address: Annotated[Address, Nested(Address)]


@dataclass
class Profile:
    nickname: Annotated[Optional[str], Maybe(String(length=(2, None)))] = None
    deleted_at: Annotated[Optional[str], Maybe()] = None


@dataclass
class Shape:
    point: Annotated[tuple[int, str, float], TupleOf(Integer(), String(length=(3, None)), Float())]
    tags: Annotated[list[str], Each(String(length=(2, None)))] = field(default_factory=list)


@dataclass
class Active:
    reason: str


@dataclass
class Inactive:
    pass


@dataclass
class Suspended:
    reason: Annotated[str, String(length=(1, 100))]


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Pair(NamedTuple):
    left: Annotated[int, Integer(size=(0, 9))]
    right: Annotated[int, Integer(size=(0, 9))]


def _valid_customer() -> Customer:
    return Customer(name="Alice", age=30, email="alice@example.com", address=Address("Main St", "12345"))


def _invalid_customer() -> Customer:
    return Customer(name="Al", age=200, email="nope", address=Address("Main St", "bad"))


class TestModes:
    """Test fail-fast against collect-all over the same tree."""

    def test_valid_value(self, registry):
        """A valid value yields Ok in both modes."""
        assert validate(_valid_customer(), registry=registry) == Ok(None)
        assert validate_all(_valid_customer(), registry=registry) == Ok(None)

    def test_fail_fast_reports_first_field(self, registry):
        """Fail-fast returns the first failing field in declaration order."""
        result = validate(_invalid_customer(), registry=registry)

        assert isinstance(result, Err)
        violation = result.unwrap_err()
        assert violation.field_path == "name"
        assert violation.message == "expected `name` to be a string with length in 3..=50, got length 2"

    def test_collect_all_reports_every_field_in_order(self, registry):
        """Collect-all returns every failing field, nested ones depth-first."""
        violations = validate_all(_invalid_customer(), registry=registry).unwrap_err()

        assert [v.field_path for v in violations] == ["name", "age", "email", "address.zip"]
        assert violations.first == validate(_invalid_customer(), registry=registry).unwrap_err()

    def test_idempotent(self, registry):
        """Validating twice yields identical verdicts."""
        value = _invalid_customer()
        assert validate_all(value, registry=registry) == validate_all(value, registry=registry)
        assert validate(value, registry=registry) == validate(value, registry=registry)

    def test_max_errors(self, registry):
        """A collect-all cap truncates in discovery order."""
        violations = SchemaValidator(Customer, registry, max_errors=2).validate_all(_invalid_customer()).unwrap_err()
        assert [v.field_path for v in violations] == ["name", "age"]

    def test_max_errors_from_settings(self, settings):
        """The cap defaults to the registry's settings."""
        from vetted.core.validation import SchemaRegistry

        registry = SchemaRegistry(settings=settings.model_copy(update={"MAX_ERRORS": 1}))
        assert len(validate_all(_invalid_customer(), registry=registry).unwrap_err()) == 1


class TestPaths:
    """Test path construction during descent."""

    def test_nested_path(self, registry):
        """Nested record fields render as dotted paths."""
        value = _valid_customer()
        value.address = Address("Main St", "bad")

        assert validate(value, registry=registry).unwrap_err().field_path == "address.zip"

    def test_tuple_position(self, registry):
        """Only the failing tuple position is reported, as an index segment."""
        violations = validate_all(Shape(point=(1, "ab", 2.0)), registry=registry).unwrap_err()

        assert [v.field_path for v in violations] == ["point.1"]

    def test_iterable_element(self, registry):
        """Iterable elements are reported with bracketed indices."""
        violations = validate_all(Shape(point=(1, "abc", 2.0), tags=["ok", "x"]), registry=registry).unwrap_err()

        assert [v.field_path for v in violations] == ["tags[1]"]

    def test_mapping_input(self, registry):
        """Record trees read mappings by key."""
        registry.register("login", record("Login").field("user", String(length=(3, None))).build())
        violation = validate({"user": "ab"}, "login", registry=registry).unwrap_err()

        assert violation.field_path == "user"

    def test_named_tuple_record(self, registry):
        """NamedTuple fields are read by attribute."""
        assert validate(Pair(1, 2), registry=registry) == Ok(None)
        assert validate(Pair(1, 20), registry=registry).unwrap_err().field_path == "right"


class TestIterable:
    """Test iterable length and element handling."""

    @pytest.fixture
    def tree(self):
        return record("Post").field("tags", Each(String(length=(2, None)), length=(1, 3))).build()

    def test_length_precedes_elements_fail_fast(self, registry, tree):
        """Fail-fast stops at the length check."""
        registry.register("post", tree)
        violation = validate({"tags": ["a", "b", "c", "d"]}, "post", registry=registry).unwrap_err()

        assert violation.field_path == "tags"
        assert violation.constraint == "length[1..=3]"

    def test_collect_all_reports_length_and_elements(self, registry, tree):
        """Collect-all reports the length violation and every bad element."""
        registry.register("post", tree)
        violations = validate_all({"tags": ["a", "ok", "b", "cd"]}, "post", registry=registry).unwrap_err()

        assert [v.field_path for v in violations] == ["tags", "tags[0]", "tags[2]"]

    def test_list_of_nested_records(self, registry):
        """Nested rules inside Each extend element paths."""
        registry.register("book", record("Book").field("addresses", Each(Nested(Address))).build())
        value = {"addresses": [Address("A", "12345"), Address("", "12345")]}

        assert validate(value, "book", registry=registry).unwrap_err().field_path == "addresses[1].street"


class TestOption:
    """Test Option semantics in trees."""

    def test_absent_values_pass(self, registry):
        """None passes both an inner rule and a must-be-absent rule."""
        assert validate_all(Profile(), registry=registry) == Ok(None)

    def test_present_value_checked_at_same_path(self, registry):
        """A present value is checked without an extra path segment."""
        violation = validate(Profile(nickname="x"), registry=registry).unwrap_err()

        assert violation.field_path == "nickname"
        assert violation.constraint == "length[2..]"

    def test_present_value_fails_must_be_absent(self, registry):
        """A present value fails must-be-absent."""
        violation = validate(Profile(deleted_at="2024-01-01"), registry=registry).unwrap_err()

        assert violation.field_path == "deleted_at"
        assert violation.code is ErrorCode.E2006_UNEXPECTED_VALUE


class TestMissingKeys:
    """Test mapping values with absent keys."""

    @staticmethod
    def _account(registry):
        registry.register("account", record("Account")
            .field("email", String(format=StringFormat.EMAIL))
            .field("nickname", Maybe(String(length=(2, None))))
            .field("referrer", Maybe())
            .field("plan", String(length=(1, None)), message="plan is required")
            .build())

    def test_absent_options_pass(self, registry):
        """An absent key under an Option reads as None."""
        self._account(registry)
        assert validate_all({"email": "a@b.co", "plan": "free"}, "account", registry=registry) == Ok(None)

    def test_absent_required_fields_are_violations(self, registry):
        """An absent key under any other plan is a missing-field violation."""
        self._account(registry)
        violations = validate_all({"nickname": "x"}, "account", registry=registry).unwrap_err()

        assert [v.field_path for v in violations] == ["email", "nickname", "plan"]
        assert violations[0].code is ErrorCode.E2001_REQUIRED_FIELD_MISSING
        assert violations[0].observed == "missing"
        assert violations[0].message == "expected `email` to be present, got missing"
        assert violations[2].message == "plan is required"

    def test_missing_field_stops_fail_fast(self, registry):
        """Fail-fast stops at the first missing field."""
        self._account(registry)
        assert validate({}, "account", registry=registry).unwrap_err().field_path == "email"

    def test_required_option(self, registry):
        """A required Option reports an absent key as required."""
        registry.register("token", record("Token").field("value", Maybe(String(), required=True)).build())

        violation = validate({}, "token", registry=registry).unwrap_err()
        assert violation.code is ErrorCode.E2001_REQUIRED_FIELD_MISSING
        assert violation.field_path == "value"


class TestMessages:
    """Test message precedence."""

    @staticmethod
    def _violation(registry, rule_message, plan_message):
        key = ("code", rule_message, plan_message)
        registry.register(key, record("Voucher").field(
            "code", String(length=(3, None), message=rule_message), message=plan_message).build())
        return validate({"code": "ab"}, key, registry=registry).unwrap_err()

    def test_rule_message_wins(self, registry):
        """The rule's own message beats the plan message."""
        assert self._violation(registry, "M1", "M2").message == "M1"

    def test_plan_message_next(self, registry):
        """Without a rule message the plan message applies."""
        assert self._violation(registry, None, "M2").message == "M2"

    def test_generated_default_last(self, registry):
        """Without either, the generated default describes the failure."""
        assert self._violation(registry, None, None).message == (
            "expected `code` to be a string with length in 3.., got length 2")

    def test_plan_message_covers_every_rule(self, registry):
        """In collect-all mode the plan message applies to each failing rule."""
        registry.register("pin", record("Pin").field(
            "pin", String(length=4), Check(str.isdigit, name="digits"), message="invalid pin").build())
        violations = validate_all({"pin": "12a"}, "pin", registry=registry).unwrap_err()

        assert [v.message for v in violations] == ["invalid pin", "invalid pin"]
        assert [v.constraint for v in violations] == ["length[4]", "custom[digits]"]

    def test_annotated_message_marker(self, registry):
        """Message in Annotated metadata is the plan message."""

        @dataclass
        class Score:
            value: Annotated[int, Integer(size=(0, 10)), Message("score must be 0-10")]

        assert validate(Score(11), registry=registry).unwrap_err().message == "score must be 0-10"

    def test_each_item_and_length_messages(self, registry):
        """Each routes its length and item messages separately."""
        registry.register("tags", record("Tags").field(
            "tags", Each(String(length=(2, None)), length=(0, 1), length_message="too many", item_message="bad tag"),
            message="plan").build())
        violations = validate_all({"tags": ["a", "b"]}, "tags", registry=registry).unwrap_err()

        assert [(v.field_path, v.message) for v in violations] == [
            ("tags", "too many"), ("tags[0]", "bad tag"), ("tags[1]", "bad tag")]

    def test_tuple_composite_message(self, registry):
        """The nearest composite message beats the plan message."""
        registry.register("pair", record("PairBox").field(
            "pair", TupleOf(Integer(size=(0, None)), Integer(size=(0, None), message="bad y"), message="bad pair"),
            message="plan").build())
        violations = validate_all({"pair": (-1, -1)}, "pair", registry=registry).unwrap_err()

        assert [v.message for v in violations] == ["bad pair", "bad y"]

    def test_plan_message_does_not_cross_nested(self, registry):
        """Outer plan messages stay at their level; nested trees keep their own messages."""
        registry.register("home", record("Home").field("address", Nested(Address), message="bad home").build())
        violation = validate({"address": Address("Main", "bad")}, "home", registry=registry).unwrap_err()

        assert violation.message == "expected `address.zip` to be a string with length exactly 5, got length 3"

    def test_nested_rule_message_applies(self, registry):
        """A message on the Nested rule itself covers the nested tree."""
        registry.register("home2", record("Home").field("address", Nested(Address, message="bad address")).build())
        violation = validate({"address": Address("Main", "bad")}, "home2", registry=registry).unwrap_err()

        assert violation.message == "bad address"
        assert violation.field_path == "address.zip"


class TestUnions:
    """Test tagged-union dispatch."""

    @pytest.fixture
    def status(self, registry):
        registry.register("status", union("Status")
            .positional(Active, FieldPlan.of(String(length=(1, 100))))
            .unit(Inactive)
            .build())
        registry.register("account", record("Account").field("status", Nested("status")).build())
        return registry

    def test_unit_variant_always_passes(self, status):
        """A payload-free variant succeeds regardless of other variants' rules."""
        assert validate({"status": Inactive()}, "account", registry=status) == Ok(None)

    def test_active_variant_checked(self, status):
        """The active variant's payload rules run, with positional segments."""
        violation = validate({"status": Active("")}, "account", registry=status).unwrap_err()

        assert violation.field_path == "status.0"
        assert violation.message == "expected `status.0` to be a string with length in 1..=100, got length 0"

    def test_unknown_tag_raises(self, status):
        """A tag without a variant is a construction defect."""
        with pytest.raises(LookupError):
            validate({"status": Suspended("x")}, "account", registry=status)

    def test_class_union_key(self, registry):
        """A union of annotated classes dispatches on the value's class."""
        assert validate(Inactive(), Suspended | Inactive, registry=registry) == Ok(None)
        violation = validate(Suspended(""), Suspended | Inactive, registry=registry).unwrap_err()

        assert violation.field_path == "reason"

    def test_enum_members(self, registry):
        """Enum schemas dispatch on the member."""
        assert validate(Color.RED, registry=registry) == Ok(None)

    def test_enum_member_payload(self, registry):
        """Enum members can carry payload rules read from their value."""
        registry.register("color", union("Color")
            .positional(Color.RED, FieldPlan.of(String(length=(5, None))))
            .unit(Color.GREEN)
            .build())

        assert validate(Color.GREEN, "color", registry=registry) == Ok(None)
        violation = validate(Color.RED, "color", registry=registry).unwrap_err()
        assert violation.field_path == "0"


class TestRecursion:
    """Test recursive schemas through the registry."""

    def test_recursive_tree(self, registry):
        """A tree may reference itself through its registry key."""

        @dataclass
        class Node:
            label: str
            children: list

        registry.register(Node, lambda: record("Node")
            .field("label", String(length=(1, None)))
            .field("children", Each(Nested(Node)))
            .build())
        tree = Node("root", [Node("a", []), Node("b", [Node("", [])])])

        assert validate(tree, registry=registry).unwrap_err().field_path == "children[1].children[0].label"


class TestCustomChecks:
    """Test custom predicates inside trees."""

    def test_failure_message(self, registry):
        """Failing predicates produce a default message naming the check."""
        registry.register("even", record("Even").field("n", Check(lambda v: v % 2 == 0, name="even")).build())

        assert validate({"n": 3}, "even", registry=registry).unwrap_err().message == (
            "expected `n` to be accepted by custom check `even`, got 3")

    def test_predicate_fault_propagates(self, registry):
        """A raising predicate escapes the validation call."""
        registry.register("div", record("Div").field("n", Check(lambda v: 1 / v > 0)).build())

        with pytest.raises(ZeroDivisionError):
            validate_all({"n": 0}, "div", registry=registry)
