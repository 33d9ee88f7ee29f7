"""Schema Front-End

Turns schema declarations into rule trees, and checks them once:

- Builders: ``record(name).field(...)`` and ``union(name).unit(...)``
- Annotation reader: ``Annotated[str, String(length=(3, 50))]`` on
  dataclasses, pydantic models, NamedTuples, TypedDicts and plain
  annotated classes
- ``compile_tree``: runs every rule's schema-time check against the
  registry's format matcher

Type compatibility between a rule and the declared field type is checked
here, so the evaluator can trust the tree it is handed.
"""
from __future__ import annotations

import collections.abc
import dataclasses
import types
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    TYPE_CHECKING, Annotated, Any, ClassVar, Iterable, NotRequired, Required, Union,
    get_args, get_origin, get_type_hints,
)

from pydantic import BaseModel

from vetted.core.errors import (
    arity_mismatch,
    incompatible_rule,
    schema_error,
    unknown_schema,
    unsupported_union,
)
from vetted.core.logging import frontend_logger
from .formats import FormatMatcher
from .plan import (
    FieldPlan, RecordTree, RuleTree, UnionTree, VariantPlan,
    default_tag, plan_from,
)
from .rules import (
    Boolean, Check, CompileContext, Each, Equals, Float, Integer,
    Maybe, Nested, Rule, Skip, String, TupleOf,
)

if TYPE_CHECKING:
    from .registry import SchemaRegistry

NoneType = type(None)

PRIMITIVES = (str, int, float, bool, bytes)


@dataclass(frozen=True, slots=True)
class Message:
    """``Annotated`` marker carrying the plan-wide message for a field."""
    text: str


# ============================================================================
# Type helpers
# ============================================================================

def _strip(tp: Any) -> Any:
    while get_origin(tp) in (Annotated, Required, NotRequired): tp = get_args(tp)[0]
    return tp


def _is_union(tp: Any) -> bool: return get_origin(tp) in (Union, types.UnionType)


def _optional_inner(tp: Any) -> Any | None:
    """``X`` for ``X | None``; None when the union does not admit None."""
    args = get_args(tp)
    if NoneType not in args: return None
    rest = tuple(a for a in args if a is not NoneType)
    return rest[0] if len(rest) == 1 else Union[rest]


def type_name(tp: Any) -> str:
    tp = _strip(tp)
    if isinstance(tp, type) and not get_args(tp): return tp.__name__
    return repr(tp).replace("typing.", "")


def _split_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    while get_origin(tp) in (Required, NotRequired): tp = get_args(tp)[0]
    if get_origin(tp) is Annotated: return get_args(tp)[0], tuple(tp.__metadata__)
    return tp, ()


# ============================================================================
# Compatibility
# ============================================================================

_LEAF_TYPES: dict[type, type] = {String: str, Integer: int, Float: float, Boolean: bool}


def check_compatible(rule: Rule, declared: Any, schema: str, field: str) -> None:
    """Raise SchemaError if ``rule`` cannot apply to a field declared as ``declared``."""
    declared = _strip(declared)
    if declared is Any or isinstance(rule, (Check, Skip, Nested)): return

    if _is_union(declared):
        if (inner := _optional_inner(declared)) is None:
            raise unsupported_union(field, type_name(declared), origin=schema)
        if isinstance(rule, Maybe):
            for r in rule.inner: check_compatible(r, inner, schema, field)
            return
        if isinstance(rule, Equals) and rule.expected is None: return
        raise incompatible_rule(field, rule.constraint_name, type_name(declared), origin=schema)

    origin = get_origin(declared) or declared
    if not isinstance(origin, type): return

    match rule:
        case Maybe():
            raise incompatible_rule(field, rule.constraint_name, type_name(declared), origin=schema)
        case Equals():
            if not isinstance(rule.expected, origin):
                raise incompatible_rule(field, rule.constraint_name, type_name(declared), origin=schema)
        case TupleOf():
            if not issubclass(origin, tuple):
                raise incompatible_rule(field, rule.constraint_name, type_name(declared), origin=schema)
            _check_tuple(rule, get_args(declared), schema, field)
        case Each():
            if not issubclass(origin, collections.abc.Iterable) or issubclass(origin, (str, bytes, collections.abc.Mapping)):
                raise incompatible_rule(field, rule.constraint_name, type_name(declared), origin=schema)
            args = get_args(declared)
            homogeneous = len(args) == 1 or (origin is tuple and len(args) == 2 and args[1] is Ellipsis)
            element = args[0] if args and homogeneous else Any
            for r in rule.item: check_compatible(r, element, schema, f"{field}[]")
        case _:
            if (expected := _LEAF_TYPES.get(type(rule))) is None: return
            if not issubclass(origin, expected) or (expected is int and issubclass(origin, bool)):
                raise incompatible_rule(field, rule.constraint_name, type_name(declared), origin=schema)


def _check_tuple(rule: TupleOf, args: tuple[Any, ...], schema: str, field: str) -> None:
    if not args: return
    if len(args) == 2 and args[1] is Ellipsis: slots = (args[0],) * len(rule.positions)
    elif len(args) != len(rule.positions):
        raise arity_mismatch(field, len(rule.positions), len(args), origin=schema)
    else: slots = args
    for index, (rules, declared) in enumerate(zip(rule.positions, slots)):
        for r in rules: check_compatible(r, declared, schema, f"{field}.{index}")


# ============================================================================
# Builders
# ============================================================================

class RecordBuilder:
    """Fluent construction of a RecordTree.

    Usage:
        tree = (record("User")
            .field("name", String(length=(3, 50)), declared=str)
            .field("age", Integer(size=(0, 150)), message="age is out of range")
            .build())
    """

    __slots__ = ("name", "_fields")

    def __init__(self, name: str):
        self.name, self._fields = name, []

    def field(self, name: str, *rules: Rule | FieldPlan, message: str | None = None,
              declared: Any = None) -> RecordBuilder:
        if any(existing == name for existing, _ in self._fields):
            raise ValueError(f"Field {name!r} already declared on {self.name}")
        plan = rules[0] if len(rules) == 1 and isinstance(rules[0], FieldPlan) else FieldPlan(rules, message)
        if declared is not None:
            for rule in plan.rules: check_compatible(rule, declared, self.name, name)
        self._fields.append((name, plan))
        return self

    def build(self) -> RecordTree:
        return RecordTree(self.name, tuple(self._fields))


class UnionBuilder:
    """Fluent construction of a UnionTree.

    Usage:
        tree = (union("Status")
            .positional(Active, FieldPlan.of(String(length=(1, 100))))
            .unit(Inactive)
            .build())
    """

    __slots__ = ("name", "tag_of", "_variants")

    def __init__(self, name: str, tag_of=default_tag):
        self.name, self.tag_of, self._variants = name, tag_of, []

    def _add(self, tag: Any, variant: VariantPlan) -> UnionBuilder:
        if any(existing == tag for existing, _ in self._variants):
            raise ValueError(f"Variant {tag!r} already declared on {self.name}")
        self._variants.append((tag, variant))
        return self

    def unit(self, tag: Any) -> UnionBuilder: return self._add(tag, VariantPlan.unit())

    def named(self, tag: Any, **plans: FieldPlan | Rule | Iterable[Rule]) -> UnionBuilder:
        return self._add(tag, VariantPlan.named(**{k: plan_from(v) for k, v in plans.items()}))

    def positional(self, tag: Any, *plans: FieldPlan | Rule | Iterable[Rule]) -> UnionBuilder:
        return self._add(tag, VariantPlan.positional(*(plan_from(p) for p in plans)))

    def build(self) -> UnionTree:
        return UnionTree(self.name, tuple(self._variants), self.tag_of)


def record(name: str) -> RecordBuilder: return RecordBuilder(name)


def union(name: str, tag_of=default_tag) -> UnionBuilder: return UnionBuilder(name, tag_of)


# ============================================================================
# Compilation
# ============================================================================

def _compile_plan(plan: FieldPlan, ctx: CompileContext) -> FieldPlan:
    return FieldPlan(tuple(rule.compile(ctx) for rule in plan.rules), plan.message)


def _tag_label(tag: Any) -> str:
    if isinstance(tag, Enum): return tag.name
    return getattr(tag, "__name__", None) or str(tag)


def compile_tree(tree: RuleTree, matcher: FormatMatcher) -> RuleTree:
    """Run schema-time checks on every rule and bind the format matcher."""
    if isinstance(tree, RecordTree):
        return RecordTree(tree.name, tuple(
            (name, _compile_plan(plan, CompileContext(tree.name, name, matcher))) for name, plan in tree.fields))

    variants = []
    for tag, variant in tree.variants:
        label = _tag_label(tag)
        fields = tuple((key, _compile_plan(plan, CompileContext(tree.name, f"{label}.{key}", matcher)))
            for key, plan in variant.fields)
        variants.append((tag, replace(variant, fields=fields)))
    return replace(tree, variants=tuple(variants))


# ============================================================================
# Annotation reader
# ============================================================================

def _is_pydantic_model(cls: Any) -> bool:
    return isinstance(cls, type) and issubclass(cls, BaseModel)


def declared_fields(cls: type) -> list[tuple[str, Any, tuple[Any, ...]]]:
    """(name, declared type, Annotated metadata) for each field, in declaration order."""
    if _is_pydantic_model(cls):
        return [(name, info.annotation, tuple(info.metadata)) for name, info in cls.model_fields.items()]

    try: hints = get_type_hints(cls, localns={cls.__name__: cls}, include_extras=True)
    except (NameError, TypeError) as e:
        raise schema_error(f"Cannot resolve annotations of {cls.__name__}: {e}",
            schema=cls.__name__, origin=cls.__name__, cause=e) from e

    if dataclasses.is_dataclass(cls): names = [f.name for f in dataclasses.fields(cls)]
    else: names = [n for n, tp in hints.items() if get_origin(_strip(tp)) is not ClassVar and not n.startswith("_")]
    return [(name, *_split_annotated(hints[name])) for name in names]


def _plan_for(cls_name: str, name: str, declared: Any, metadata: tuple[Any, ...],
              registry: SchemaRegistry) -> FieldPlan:
    rules: list[Rule] = []
    message: str | None = None
    for item in metadata:
        match item:
            case Rule(): rules.append(item)
            case FieldPlan(): rules.extend(item.rules); message = item.message or message
            case Message(text=text): message = text

    for rule in rules: check_compatible(rule, declared, cls_name, name)
    if rules: return FieldPlan(tuple(rules), message)

    base = _strip(declared)
    inner = _optional_inner(base) if _is_union(base) else None
    if isinstance(inner, type) and registry.is_registered(inner):
        return FieldPlan((Maybe(Nested(inner)),), message)
    if isinstance(base, type) and registry.is_registered(base):
        return FieldPlan((Nested(base),), message)

    if base in PRIMITIVES and registry.settings.WARN_UNRULED_FIELDS:
        frontend_logger().warning("field_without_rules", schema=cls_name, field=name, declared=type_name(base))
    return FieldPlan((), message)


def _record_from(cls: type, registry: SchemaRegistry) -> RecordTree:
    return RecordTree(cls.__name__, tuple(
        (name, _plan_for(cls.__name__, name, declared, metadata, registry))
        for name, declared, metadata in declared_fields(cls)))


def _variant_from(member: Any, registry: SchemaRegistry) -> VariantPlan:
    if not isinstance(member, type) or member is NoneType:
        raise unsupported_union("$", type_name(member), origin=type_name(member))
    if registry.is_registered(member) and isinstance(tree := registry.get_or_compile(member), RecordTree):
        fields = tree.fields
    else: fields = _record_from(member, registry).fields
    if not fields: return VariantPlan.unit()
    return VariantPlan.named(**dict(fields))


def derive_tree(key: Any, registry: SchemaRegistry) -> RuleTree:
    """Build a rule tree from a type's annotations.

    - ``Enum`` subclass: one unit variant per member
    - ``A | B`` union: one named (or unit) variant per member class
    - any other class: a record of its annotated fields
    """
    if isinstance(key, type) and issubclass(key, Enum):
        return UnionTree(key.__name__, tuple((member, VariantPlan.unit()) for member in key))

    if _is_union(key):
        members = get_args(key)
        name = " | ".join(type_name(m) for m in members)
        return UnionTree(name, tuple((m, _variant_from(m, registry)) for m in members))

    if isinstance(key, type) and key.__module__ != "builtins": return _record_from(key, registry)
    raise unknown_schema(key)


__all__ = [
    "Message",
    "RecordBuilder",
    "UnionBuilder",
    "record",
    "union",
    "check_compatible",
    "compile_tree",
    "declared_fields",
    "derive_tree",
    "type_name",
]
