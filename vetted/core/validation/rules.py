"""Rule Catalogue

One typed constraint per rule, each an immutable frozen dataclass with an
optional overriding message. Leaf rules answer ``evaluate(value)`` with
``None`` on success or an Expectation describing the mismatch. Composite
rules (Maybe, TupleOf, Each) additionally describe how to descend into
their children; Nested defers to another schema through the registry.

Features:
- Inclusive bounds with open ends (``3..=50``, ``3..``, ``..=50``) and
  half-open ranges (``3..50``)
- Direct numeric predicates for sign classes and float kinds (no epsilon)
- Exact integer arithmetic for steps
- Schema-time checks via ``compile(context)``: empty bounds, zero step,
  disabled or malformed formats
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Iterable, Iterator
import math
import re
import sys

from vetted.core.errors import (
    ErrorCode,
    format_unavailable,
    invalid_bounds,
    invalid_pattern,
    invalid_step,
)
from .formats import DEFAULT_MATCHER, FormatMatcher, FormatSpec, Pattern, StringFormat, format_name
from .path import PathSegment


def render_value(value: Any, limit: int = 50) -> str:
    """Short printable form of an offending value."""
    text = repr(value)
    return text[:limit] + ("..." if len(text) > limit else "")


@dataclass(frozen=True, slots=True)
class Expectation:
    """Structured description of a violated constraint."""
    constraint: str
    requirement: str
    observed: str
    code: ErrorCode = ErrorCode.E2005_CONSTRAINT_VIOLATION
    expected: Any = None

    def describe(self, path: str) -> str:
        """Generated default message for a violation at ``path``."""
        return f"expected `{path}` to be {self.requirement}, got {self.observed}"


# ============================================================================
# Bounds
# ============================================================================

@dataclass(frozen=True, slots=True)
class Bounds:
    """Numeric interval, inclusive on both ends unless a side is open."""
    min: int | float | None = None
    max: int | float | None = None
    exclusive_max: bool = False

    @classmethod
    def exact(cls, value: int | float) -> Bounds: return cls(value, value)

    @classmethod
    def of(cls, spec: Bounds | int | float | tuple | range | None) -> Bounds | None:
        """Accept ``5``, ``(3, 50)``, ``(3, None)``, ``range(3, 50)`` or a Bounds."""
        if spec is None or isinstance(spec, Bounds): return spec
        if isinstance(spec, bool): raise TypeError("Bounds cannot be built from a bool")
        if isinstance(spec, (int, float)): return cls.exact(spec)
        if isinstance(spec, range):
            if spec.step != 1: raise ValueError(f"Bounds range must have step 1, got {spec.step}")
            return cls(spec.start, spec.stop, exclusive_max=True)
        if isinstance(spec, tuple) and len(spec) == 2: return cls(spec[0], spec[1])
        raise TypeError(f"Cannot interpret {spec!r} as bounds")

    @property
    def is_exact(self) -> bool:
        return self.min is not None and self.min == self.max and not self.exclusive_max

    @property
    def is_empty(self) -> bool:
        if self.min is None or self.max is None: return False
        return self.min >= self.max if self.exclusive_max else self.min > self.max

    def contains(self, value: int | float) -> bool:
        # Written as negated comparisons so NaN never satisfies a bound
        if self.min is not None and not value >= self.min: return False
        if self.max is not None:
            return value < self.max if self.exclusive_max else value <= self.max
        return True

    def phrase(self) -> str:
        return f"exactly {self.min}" if self.is_exact else f"in {self}"

    def __str__(self) -> str:
        if self.is_exact: return str(self.min)
        low = "" if self.min is None else str(self.min)
        if self.max is None: return f"{low}.."
        return f"{low}..{'' if self.exclusive_max else '='}{self.max}"


class Sign(str, Enum):
    """Sign class for integers and floats."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NON_POSITIVE = "non-positive"
    NON_NEGATIVE = "non-negative"

    def holds(self, value: int | float) -> bool:
        match self:
            case Sign.POSITIVE: return value > 0
            case Sign.NEGATIVE: return value < 0
            case Sign.NON_POSITIVE: return value <= 0
            case Sign.NON_NEGATIVE: return value >= 0


class FloatKind(str, Enum):
    """IEEE-754 classification of a float."""
    FINITE = "finite"
    INFINITE = "infinite"
    NAN = "NaN"
    NORMAL = "normal"
    SUBNORMAL = "subnormal"

    def holds(self, value: float) -> bool:
        match self:
            case FloatKind.FINITE: return math.isfinite(value)
            case FloatKind.INFINITE: return math.isinf(value)
            case FloatKind.NAN: return math.isnan(value)
            case FloatKind.NORMAL:
                return math.isfinite(value) and value != 0 and abs(value) >= sys.float_info.min
            case FloatKind.SUBNORMAL:
                return value != 0 and abs(value) < sys.float_info.min


@dataclass(frozen=True, slots=True)
class CompileContext:
    """Where a rule is being compiled, for schema error reporting."""
    schema: str
    field: str
    matcher: FormatMatcher = DEFAULT_MATCHER

    def at(self, segment: str | int) -> CompileContext:
        return replace(self, field=f"{self.field}.{segment}")


def _check_bounds(bounds: Bounds | None, ctx: CompileContext) -> None:
    if bounds is not None and bounds.is_empty:
        raise invalid_bounds(ctx.field, bounds.min, bounds.max, origin=ctx.schema)


@dataclass(frozen=True, slots=True)
class Descent:
    """One child visit requested by a composite rule."""
    segment: PathSegment | None
    value: Any
    rules: tuple[Rule, ...]
    message: str | None


# ============================================================================
# Base
# ============================================================================

class Rule(ABC):
    """Base class for rules.

    Rules are immutable. ``evaluate`` reports this rule's own check;
    ``descend`` lists child values for composite rules.
    """
    __slots__ = ()

    @property
    @abstractmethod
    def constraint_name(self) -> str:
        """Human-readable constraint name for error output."""

    @abstractmethod
    def evaluate(self, value: Any) -> Expectation | None:
        """Check the value. Returns None on success."""

    def descend(self, value: Any) -> Iterator[Descent]:
        return iter(())

    def own_message(self, expectation: Expectation) -> str | None:
        """Message attached to this rule for one of its own expectations."""
        return self.message  # type: ignore[attr-defined]

    def compile(self, ctx: CompileContext) -> Rule:
        """Schema-time check. Returns the rule ready for evaluation."""
        return self

    def with_message(self, message: str) -> Rule: return replace(self, message=message)


def as_rules(spec: Rule | Iterable[Rule] | None) -> tuple[Rule, ...]:
    """Normalize a rule or a sequence of rules into a tuple."""
    if spec is None: return ()
    if isinstance(spec, Rule): return (spec,)
    rules = tuple(spec)
    for rule in rules:
        if not isinstance(rule, Rule): raise TypeError(f"Expected a Rule, got {type(rule).__name__}")
    return rules


# ============================================================================
# String
# ============================================================================

@dataclass(frozen=True, slots=True)
class String(Rule):
    """String constraints. Checked in order: length, format, prefix, suffix, substring."""
    length: Bounds | None = None
    format: FormatSpec | None = None
    starts_with: str | None = None
    ends_with: str | None = None
    includes: str | None = None
    message: str | None = field(default=None, kw_only=True)
    matcher: FormatMatcher | None = field(default=None, kw_only=True, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "length", Bounds.of(self.length))
        if isinstance(self.format, str) and not isinstance(self.format, StringFormat):
            object.__setattr__(self, "format", StringFormat(self.format.lower()))

    @property
    def constraint_name(self) -> str:
        parts = []
        if self.length is not None: parts.append(f"length[{self.length}]")
        if self.format is not None: parts.append(f"format[{self.format.label}]")
        if self.starts_with is not None: parts.append("starts_with")
        if self.ends_with is not None: parts.append("ends_with")
        if self.includes is not None: parts.append("includes")
        return f"string[{', '.join(parts)}]" if parts else "string"

    def compile(self, ctx: CompileContext) -> String:
        _check_bounds(self.length, ctx)
        if self.format is not None:
            if not ctx.matcher.supports(self.format):
                raise format_unavailable(ctx.field, format_name(self.format), origin=ctx.schema)
            try: ctx.matcher.prepare(self.format)
            except re.error as e:
                raise invalid_pattern(ctx.field, getattr(self.format, "regex", ""), e, origin=ctx.schema) from e
        return replace(self, matcher=ctx.matcher)

    def evaluate(self, value: Any) -> Expectation | None:
        if self.length is not None and not self.length.contains(size := len(value)):
            return Expectation(f"length[{self.length}]", f"a string with length {self.length.phrase()}",
                f"length {size}", ErrorCode.E2003_OUT_OF_RANGE, expected=str(self.length))

        if self.format is not None and not (self.matcher or DEFAULT_MATCHER).matches(self.format, value):
            return Expectation(f"format[{self.format.label}]", f"a string matching format {self.format.label}",
                render_value(value), ErrorCode.E2002_INVALID_FORMAT, expected=self.format.label)

        if self.starts_with is not None and not value.startswith(self.starts_with):
            return Expectation("starts_with", f"a string starting with {self.starts_with!r}",
                render_value(value), ErrorCode.E2002_INVALID_FORMAT, expected=self.starts_with)

        if self.ends_with is not None and not value.endswith(self.ends_with):
            return Expectation("ends_with", f"a string ending with {self.ends_with!r}",
                render_value(value), ErrorCode.E2002_INVALID_FORMAT, expected=self.ends_with)

        if self.includes is not None and self.includes not in value:
            return Expectation("includes", f"a string including {self.includes!r}",
                render_value(value), ErrorCode.E2002_INVALID_FORMAT, expected=self.includes)

        return None


# ============================================================================
# Numeric
# ============================================================================

@dataclass(frozen=True, slots=True)
class Integer(Rule):
    """Integer constraints. Checked in order: size, sign, step."""
    size: Bounds | None = None
    sign: Sign | None = None
    step: int | None = None
    message: str | None = field(default=None, kw_only=True)

    def __post_init__(self):
        object.__setattr__(self, "size", Bounds.of(self.size))

    @property
    def constraint_name(self) -> str:
        parts = [p for p in (
            f"size[{self.size}]" if self.size is not None else None,
            f"sign[{self.sign.value}]" if self.sign is not None else None,
            f"step[{self.step}]" if self.step is not None else None,
        ) if p]
        return f"integer[{', '.join(parts)}]" if parts else "integer"

    def compile(self, ctx: CompileContext) -> Integer:
        _check_bounds(self.size, ctx)
        if self.step is not None and self.step == 0:
            raise invalid_step(ctx.field, self.step, origin=ctx.schema)
        return self

    def evaluate(self, value: Any) -> Expectation | None:
        if self.size is not None and not self.size.contains(value):
            return Expectation(f"size[{self.size}]", f"an integer {self.size.phrase()}", str(value),
                ErrorCode.E2003_OUT_OF_RANGE, expected=str(self.size))

        if self.sign is not None and not self.sign.holds(value):
            return Expectation(f"sign[{self.sign.value}]", f"a {self.sign.value} integer", str(value),
                expected=self.sign.value)

        if self.step is not None and value % self.step != 0:
            return Expectation(f"step[{self.step}]", f"an integer multiple of {self.step}", str(value),
                expected=self.step)

        return None


@dataclass(frozen=True, slots=True)
class Float(Rule):
    """Float constraints. Checked in order: size, sign, kind."""
    size: Bounds | None = None
    sign: Sign | None = None
    kind: FloatKind | None = None
    message: str | None = field(default=None, kw_only=True)

    def __post_init__(self):
        object.__setattr__(self, "size", Bounds.of(self.size))

    @property
    def constraint_name(self) -> str:
        parts = [p for p in (
            f"size[{self.size}]" if self.size is not None else None,
            f"sign[{self.sign.value}]" if self.sign is not None else None,
            f"kind[{self.kind.value}]" if self.kind is not None else None,
        ) if p]
        return f"float[{', '.join(parts)}]" if parts else "float"

    def compile(self, ctx: CompileContext) -> Float:
        _check_bounds(self.size, ctx)
        return self

    def evaluate(self, value: Any) -> Expectation | None:
        if self.size is not None and not self.size.contains(value):
            return Expectation(f"size[{self.size}]", f"a float {self.size.phrase()}", repr(value),
                ErrorCode.E2003_OUT_OF_RANGE, expected=str(self.size))

        if self.sign is not None and not self.sign.holds(value):
            return Expectation(f"sign[{self.sign.value}]", f"a {self.sign.value} float", repr(value),
                expected=self.sign.value)

        if self.kind is not None and not self.kind.holds(value):
            return Expectation(f"kind[{self.kind.value}]", f"a {self.kind.value} float", repr(value),
                expected=self.kind.value)

        return None


# ============================================================================
# Literal, Custom, Boolean, Skip
# ============================================================================

@dataclass(frozen=True, slots=True)
class Equals(Rule):
    """Strict equality: same type and equal value."""
    expected: Any
    message: str | None = field(default=None, kw_only=True)

    @property
    def constraint_name(self) -> str: return f"literal[{self.expected!r}]"

    def evaluate(self, value: Any) -> Expectation | None:
        if type(value) is type(self.expected) and value == self.expected: return None
        return Expectation(self.constraint_name, f"equal to {self.expected!r}", render_value(value),
            ErrorCode.E2006_UNEXPECTED_VALUE, expected=self.expected)


@dataclass(frozen=True, slots=True)
class Check(Rule):
    """Opaque predicate ``value -> bool``.

    Exceptions raised by the predicate propagate to the caller, and so
    does a non-bool outcome (as TypeError). Neither becomes a violation.
    """
    predicate: Callable[[Any], bool]
    name: str | None = None
    message: str | None = field(default=None, kw_only=True)

    @property
    def label(self) -> str: return self.name or getattr(self.predicate, "__name__", "custom")

    @property
    def constraint_name(self) -> str: return f"custom[{self.label}]"

    def evaluate(self, value: Any) -> Expectation | None:
        outcome = self.predicate(value)
        if not isinstance(outcome, bool):
            raise TypeError(f"Custom check {self.label!r} returned {type(outcome).__name__}, expected bool")
        if outcome: return None
        return Expectation(self.constraint_name, f"accepted by custom check `{self.label}`", render_value(value),
            ErrorCode.E2007_CUSTOM_CHECK_FAILED, expected=self.label)


@dataclass(frozen=True, slots=True)
class Boolean(Rule):
    """Boolean fields carry no constraints; use Equals(True) to pin a value."""
    message: str | None = field(default=None, kw_only=True)

    @property
    def constraint_name(self) -> str: return "boolean"

    def evaluate(self, value: Any) -> Expectation | None: return None


@dataclass(frozen=True, slots=True)
class Skip(Rule):
    """Field is intentionally left unvalidated."""
    message: str | None = field(default=None, kw_only=True)

    @property
    def constraint_name(self) -> str: return "skip"

    def evaluate(self, value: Any) -> Expectation | None: return None


# ============================================================================
# Composite
# ============================================================================

@dataclass(frozen=True, slots=True)
class Maybe(Rule):
    """Optional value.

    ``Maybe()`` requires the value to be absent. ``Maybe(rules)`` applies
    the rules to a present value at the same path; ``None`` passes unless
    ``required=True``.
    """
    inner: tuple[Rule, ...] = ()
    required: bool = False
    message: str | None = field(default=None, kw_only=True)

    def __post_init__(self):
        object.__setattr__(self, "inner", as_rules(self.inner))

    @property
    def must_be_absent(self) -> bool: return not self.inner and not self.required

    @property
    def constraint_name(self) -> str:
        if self.must_be_absent: return "absent"
        inner = ", ".join(r.constraint_name for r in self.inner)
        return f"option[{inner}]" + ("!" if self.required else "")

    def compile(self, ctx: CompileContext) -> Maybe:
        return replace(self, inner=tuple(r.compile(ctx) for r in self.inner))

    def evaluate(self, value: Any) -> Expectation | None:
        if value is None:
            if not self.required: return None
            return Expectation("required", "present", "None", ErrorCode.E2001_REQUIRED_FIELD_MISSING)
        if self.must_be_absent:
            return Expectation("absent", "absent", render_value(value), ErrorCode.E2006_UNEXPECTED_VALUE)
        return None

    def descend(self, value: Any) -> Iterator[Descent]:
        if value is not None and self.inner:
            yield Descent(None, value, self.inner, self.message)


@dataclass(frozen=True, slots=True)
class TupleOf(Rule):
    """Per-position rule sequences matched 1:1 with tuple slots."""
    positions: tuple[tuple[Rule, ...], ...]
    message: str | None = None

    def __init__(self, *positions: Rule | Iterable[Rule], message: str | None = None):
        object.__setattr__(self, "positions", tuple(as_rules(p) for p in positions))
        object.__setattr__(self, "message", message)

    @property
    def constraint_name(self) -> str:
        return f"tuple[{len(self.positions)}]"

    def with_message(self, message: str) -> TupleOf: return TupleOf(*self.positions, message=message)

    def compile(self, ctx: CompileContext) -> TupleOf:
        compiled = [tuple(r.compile(ctx.at(i)) for r in rules) for i, rules in enumerate(self.positions)]
        return TupleOf(*compiled, message=self.message)

    def evaluate(self, value: Any) -> Expectation | None: return None

    def descend(self, value: Any) -> Iterator[Descent]:
        for index, (rules, item) in enumerate(zip(self.positions, value)):
            yield Descent(PathSegment.position(index), item, rules, self.message)


@dataclass(frozen=True, slots=True)
class Each(Rule):
    """Collection length plus rules applied to every element.

    The length check runs first and is reported at the collection's own
    path; elements are reported at ``[i]``.
    """
    item: tuple[Rule, ...]
    length: Bounds | None = None
    message: str | None = None
    length_message: str | None = None
    item_message: str | None = None

    def __init__(self, *item: Rule, length: Bounds | int | tuple | range | None = None,
                 message: str | None = None, length_message: str | None = None,
                 item_message: str | None = None):
        object.__setattr__(self, "item", as_rules(item))
        object.__setattr__(self, "length", Bounds.of(length))
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "length_message", length_message)
        object.__setattr__(self, "item_message", item_message)

    @property
    def constraint_name(self) -> str:
        inner = ", ".join(r.constraint_name for r in self.item)
        size = f"length[{self.length}], " if self.length is not None else ""
        return f"iterable[{size}{inner}]"

    def own_message(self, expectation: Expectation) -> str | None:
        return self.length_message or self.message

    def with_message(self, message: str) -> Each:
        return Each(*self.item, length=self.length, message=message,
            length_message=self.length_message, item_message=self.item_message)

    def compile(self, ctx: CompileContext) -> Each:
        _check_bounds(self.length, ctx)
        element_ctx = replace(ctx, field=f"{ctx.field}[]")
        return Each(*(r.compile(element_ctx) for r in self.item), length=self.length, message=self.message,
            length_message=self.length_message, item_message=self.item_message)

    def evaluate(self, value: Any) -> Expectation | None:
        if self.length is not None and not self.length.contains(size := len(value)):
            return Expectation(f"length[{self.length}]", f"an iterable with length {self.length.phrase()}",
                f"length {size}", ErrorCode.E2003_OUT_OF_RANGE, expected=str(self.length))
        return None

    def descend(self, value: Any) -> Iterator[Descent]:
        message = self.item_message or self.message
        for index, element in enumerate(value):
            yield Descent(PathSegment.element(index), element, self.item, message)


@dataclass(frozen=True, slots=True)
class Nested(Rule):
    """Defer to another schema, looked up by key in the registry at evaluation time."""
    target: Any
    message: str | None = field(default=None, kw_only=True)

    @property
    def constraint_name(self) -> str:
        return f"nested[{getattr(self.target, '__name__', self.target)}]"

    def evaluate(self, value: Any) -> Expectation | None: return None
