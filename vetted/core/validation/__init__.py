"""Declarative Validation Engine

Rule trees are the single source of truth for what a valid value looks
like. They are built once per type, cached in a registry, and evaluated
by one depth-first walk in either fail-fast or collect-all mode.

Key Features:
- Typed rules: String, Integer, Float, Maybe, TupleOf, Equals, Each,
  Check, Nested, Boolean, Skip
- Per-rule, per-composite and per-field messages with generated defaults
- Tagged-union dispatch for class unions and Enums
- Structured violations with stable field paths (``user.email``,
  ``point.1``, ``tags[1]``)
- Annotated front-end for dataclasses, pydantic models and plain classes
- Thread-safe compile-once registry

Usage:
    from vetted.core.validation import String, Integer, Message, validate_all

    @dataclass
    class User:
        name: Annotated[str, String(length=(3, 50))]
        age: Annotated[int, Integer(size=(0, 150)), Message("age is out of range")]

    match validate_all(User(name="al", age=200)):
        case Ok(_): ...
        case Err(violations): print(violations.render())
"""

# Rules
from .rules import (
    Rule,
    Bounds,
    Sign,
    FloatKind,
    Expectation,
    CompileContext,
    String,
    Integer,
    Float,
    Maybe,
    TupleOf,
    Equals,
    Each,
    Check,
    Nested,
    Boolean,
    Skip,
    render_value,
)

# String formats
from .formats import (
    StringFormat,
    Pattern,
    FormatMatcher,
    RegexFormatMatcher,
    DEFAULT_MATCHER,
)

# Paths and violations
from .path import PathSegment, SegmentKind, FieldPath, render_path
from .errors import (
    ValidationMode,
    Violation,
    ViolationList,
    ViolationAccumulator,
    FailFastAccumulator,
    CollectAllAccumulator,
    create_accumulator,
)

# Trees
from .plan import (
    FieldPlan,
    RecordTree,
    UnionTree,
    VariantPlan,
    PayloadShape,
    RuleTree,
)

# Front-end, registry, evaluation
from .builder import Message, record, union, compile_tree, derive_tree
from .registry import SchemaRegistry, default_registry
from .evaluator import Evaluator
from .api import SchemaValidator, validate, validate_all, validate_batch, validated

__all__ = [
    # Rules
    "Rule",
    "Bounds",
    "Sign",
    "FloatKind",
    "Expectation",
    "CompileContext",
    "String",
    "Integer",
    "Float",
    "Maybe",
    "TupleOf",
    "Equals",
    "Each",
    "Check",
    "Nested",
    "Boolean",
    "Skip",
    "render_value",
    # Formats
    "StringFormat",
    "Pattern",
    "FormatMatcher",
    "RegexFormatMatcher",
    "DEFAULT_MATCHER",
    # Paths and violations
    "PathSegment",
    "SegmentKind",
    "FieldPath",
    "render_path",
    "ValidationMode",
    "Violation",
    "ViolationList",
    "ViolationAccumulator",
    "FailFastAccumulator",
    "CollectAllAccumulator",
    "create_accumulator",
    # Trees
    "FieldPlan",
    "RecordTree",
    "UnionTree",
    "VariantPlan",
    "PayloadShape",
    "RuleTree",
    # Front-end
    "Message",
    "record",
    "union",
    "compile_tree",
    "derive_tree",
    # Registry and evaluation
    "SchemaRegistry",
    "default_registry",
    "Evaluator",
    "SchemaValidator",
    "validate",
    "validate_all",
    "validate_batch",
    "validated",
]
