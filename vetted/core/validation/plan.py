"""Field Plans and Rule Trees

A FieldPlan is the ordered rule sequence for one field plus an optional
plan-wide message. A rule tree is the compiled, immutable schema for one
type:

- RecordTree: ordered (field name, FieldPlan) pairs
- UnionTree: ordered (tag, VariantPlan) pairs; only the active variant runs

Trees are built once by the schema front-end and shared read-only by every
validation call afterwards.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Union

from .rules import Maybe, Rule, Skip, as_rules


@dataclass(frozen=True, slots=True)
class FieldPlan:
    """Ordered rules for one field and the message covering all of them."""
    rules: tuple[Rule, ...] = ()
    message: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "rules", as_rules(self.rules))

    @classmethod
    def of(cls, *rules: Rule, message: str | None = None) -> FieldPlan:
        return cls(rules, message)

    @property
    def is_empty(self) -> bool: return not self.rules

    @property
    def admits_absence(self) -> bool:
        """A missing field passes when every rule is an option or a skip."""
        return all(isinstance(r, (Maybe, Skip)) for r in self.rules)

    def __iter__(self) -> Iterator[Rule]: return iter(self.rules)


class _Missing:
    """Marker for a mapping key that is not present."""
    __slots__ = ()

    def __repr__(self) -> str: return "MISSING"


MISSING = _Missing()


def read_field(value: Any, name: str) -> Any:
    """Item access for mappings, attribute access otherwise.

    An absent mapping key reads as MISSING; the evaluator treats it as
    None for plans that admit absence and as a missing field otherwise.
    """
    if isinstance(value, Mapping): return value.get(name, MISSING)
    return getattr(value, name)


@dataclass(frozen=True, slots=True)
class RecordTree:
    """Schema for a record type: fields evaluated in declaration order."""
    name: str
    fields: tuple[tuple[str, FieldPlan], ...]

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple((n, p) for n, p in self.fields))

    @property
    def field_names(self) -> tuple[str, ...]: return tuple(n for n, _ in self.fields)

    def plan_for(self, name: str) -> FieldPlan:
        for field_name, plan in self.fields:
            if field_name == name: return plan
        raise KeyError(name)

    def payload(self, value: Any) -> Iterator[tuple[str, Any, FieldPlan]]:
        for name, plan in self.fields:
            yield name, read_field(value, name), plan


class PayloadShape(str, Enum):
    UNIT = "unit"
    NAMED = "named"
    POSITIONAL = "positional"


@dataclass(frozen=True, slots=True)
class VariantPlan:
    """Payload layout and plans for one union variant.

    Named payloads address fields by name; positional payloads by index,
    read from tuples directly and from other values in dataclass field order.
    """
    shape: PayloadShape = PayloadShape.UNIT
    fields: tuple[tuple[str | int, FieldPlan], ...] = ()

    @classmethod
    def unit(cls) -> VariantPlan: return cls()

    @classmethod
    def named(cls, **plans: FieldPlan) -> VariantPlan:
        return cls(PayloadShape.NAMED, tuple(plans.items()))

    @classmethod
    def positional(cls, *plans: FieldPlan) -> VariantPlan:
        return cls(PayloadShape.POSITIONAL, tuple(enumerate(plans)))

    def payload(self, value: Any) -> Iterator[tuple[str | int, Any, FieldPlan]]:
        match self.shape:
            case PayloadShape.UNIT:
                return
            case PayloadShape.NAMED:
                for name, plan in self.fields:
                    yield name, read_field(value, name), plan
            case PayloadShape.POSITIONAL:
                items = _positional_items(value)
                for index, plan in self.fields:
                    yield index, items[index], plan


def _positional_items(value: Any) -> tuple[Any, ...]:
    if isinstance(value, tuple): return value
    if dataclasses.is_dataclass(value):
        return tuple(getattr(value, f.name) for f in dataclasses.fields(value))
    if isinstance(value, Enum): return value.value if isinstance(value.value, tuple) else (value.value,)
    raise TypeError(f"Cannot read a positional payload from {type(value).__name__}")


def default_tag(value: Any) -> Any:
    """Enum members are their own tag; everything else is tagged by its class."""
    return value if isinstance(value, Enum) else type(value)


@dataclass(frozen=True, slots=True)
class UnionTree:
    """Schema for a tagged union: dispatch on the value's tag."""
    name: str
    variants: tuple[tuple[Any, VariantPlan], ...]
    tag_of: Callable[[Any], Any] = field(default=default_tag, compare=False)

    def __post_init__(self):
        variants = self.variants.items() if isinstance(self.variants, Mapping) else self.variants
        object.__setattr__(self, "variants", tuple(variants))

    @property
    def tags(self) -> tuple[Any, ...]: return tuple(t for t, _ in self.variants)

    def variant_for(self, value: Any) -> VariantPlan:
        tag = self.tag_of(value)
        for variant_tag, plan in self.variants:
            if variant_tag == tag: return plan
        raise LookupError(f"{self.name} has no variant for tag {tag!r}")


RuleTree = Union[RecordTree, UnionTree]


def plan_from(spec: FieldPlan | Rule | Iterable[Rule] | None) -> FieldPlan:
    """Normalize builder input into a FieldPlan."""
    return spec if isinstance(spec, FieldPlan) else FieldPlan(as_rules(spec))
