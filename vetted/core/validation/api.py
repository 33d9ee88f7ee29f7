"""Validation Entry Points

Validate-don't-throw semantics at every call site:
- ``validate``: fail-fast, at most one Violation
- ``validate_all``: collect-all, a non-empty ViolationList in discovery order
- ``validate_batch``: collect-all over many values of one schema

Violations travel inside ``Err``; only schema compilation raises
(``SchemaError``), and a custom predicate's own exceptions propagate.
"""
from __future__ import annotations

from typing import Any, Callable, Generic, Iterable, TypeVar, overload

from vetted.core.errors import Err, Ok, Result
from .errors import CollectAllAccumulator, FailFastAccumulator, Violation, ViolationList
from .evaluator import Evaluator
from .plan import RuleTree
from .registry import SchemaRegistry, TreeSource, default_registry

T = TypeVar("T")

_UNSET: Any = object()


# ============================================================================
# Bound Validators
# ============================================================================

class SchemaValidator(Generic[T]):
    """Validator bound to one schema key.

    The tree is compiled on first use through the registry and shared
    afterwards.

    Usage:
        user_validator = SchemaValidator(User)
        match user_validator.validate(user):
            case Ok(_): ...
            case Err(violation): print(violation.field_path, violation.message)
    """

    __slots__ = ("schema", "registry", "max_errors", "_evaluator")

    def __init__(self, schema: type[T] | Any, registry: SchemaRegistry | None = None, *,
                 max_errors: int | None = _UNSET):
        self.schema = schema
        self.registry = registry or default_registry
        self.max_errors = self.registry.settings.MAX_ERRORS if max_errors is _UNSET else max_errors
        self._evaluator = Evaluator(self.registry)

    @property
    def tree(self) -> RuleTree: return self.registry.get_or_compile(self.schema)

    def validate(self, value: T) -> Result[None, Violation]:
        """Fail-fast: the first violation in declaration order, depth-first."""
        accumulator = self._evaluator.run(self.tree, value, FailFastAccumulator())
        return Err(accumulator.violation) if accumulator.violation is not None else Ok(None)

    def validate_all(self, value: T) -> Result[None, ViolationList]:
        """Collect-all: every violation, in discovery order."""
        accumulator = self._evaluator.run(self.tree, value, CollectAllAccumulator(max_errors=self.max_errors))
        violations = accumulator.get_violations()
        return Err(ViolationList(violations)) if violations else Ok(None)

    def validate_batch(self, values: Iterable[T], *,
                       max_failures: int | None = None) -> Result[None, list[tuple[int, ViolationList]]]:
        """Collect-all over a batch. Returns Err with (index, violations) pairs for failing items.

        Usage:
            match SchemaValidator(User).validate_batch(users):
                case Ok(_): store(users)
                case Err(failures):
                    for idx, violations in failures: log.warning("invalid_user", index=idx, errors=violations.render())
        """
        failures: list[tuple[int, ViolationList]] = []
        for index, value in enumerate(values):
            if max_failures is not None and len(failures) >= max_failures: break
            if isinstance(result := self.validate_all(value), Err): failures.append((index, result.error))
        return Err(failures) if failures else Ok(None)

    def __repr__(self) -> str:
        return f"SchemaValidator({getattr(self.schema, '__name__', self.schema)!r})"


# ============================================================================
# Functional API
# ============================================================================

def validate(value: Any, schema: Any = None, *, registry: SchemaRegistry | None = None) -> Result[None, Violation]:
    """Fail-fast validation. ``schema`` defaults to ``type(value)``.

    Usage:
        result = validate(user)
        if result.is_err():
            return error_response(result.unwrap_err().to_app_error())
    """
    return SchemaValidator(type(value) if schema is None else schema, registry).validate(value)


def validate_all(value: Any, schema: Any = None, *,
                 registry: SchemaRegistry | None = None) -> Result[None, ViolationList]:
    """Collect-all validation. ``schema`` defaults to ``type(value)``."""
    return SchemaValidator(type(value) if schema is None else schema, registry).validate_all(value)


def validate_batch(values: Iterable[Any], schema: Any, *, registry: SchemaRegistry | None = None,
                   max_failures: int | None = None) -> Result[None, list[tuple[int, ViolationList]]]:
    """Collect-all validation of many values against one schema."""
    return SchemaValidator(schema, registry).validate_batch(values, max_failures=max_failures)


# ============================================================================
# Decorator-based Registration
# ============================================================================

@overload
def validated(cls: type[T], /) -> type[T]: ...
@overload
def validated(*, registry: SchemaRegistry | None = None, source: TreeSource = None) -> Callable[[type[T]], type[T]]: ...


def validated(cls=None, /, *, registry=None, source=None):
    """Class decorator registering a schema, compiled lazily on first use.

    Registered classes are picked up as implicit Nested rules when another
    schema declares a field of that type without rules.

    Usage:
        @validated
        @dataclass
        class Address:
            zip: Annotated[str, String(length=5)]
    """
    def decorator(target: type[T]) -> type[T]:
        (registry or default_registry).register(target, source)
        return target
    return decorator if cls is None else decorator(cls)
