"""Validation Error System

Structured violations with field paths, constraints and observed values.
Supports both fail-fast and collect-all accumulation modes, driven by one
evaluator walk.

Error Format:
{
    "error": {
        "type": "validation_error",
        "mode": "collect_all",
        "error_count": 2,
        "errors": [
            {
                "field": "user.email",
                "constraint": "format[Email]",
                "code": "E2002_INVALID_FORMAT",
                "value": "'invalid-email'",
                "message": "expected `user.email` to be a string matching format Email, got 'invalid-email'"
            }
        ]
    }
}
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Sequence

from vetted.core.errors import AppError, ErrorCode
from .path import FieldPath, render_path
from .rules import Expectation


class ValidationMode(str, Enum):
    FAIL_FAST = "fail_fast"
    COLLECT_ALL = "collect_all"


@dataclass(frozen=True, slots=True)
class Violation:
    """One described validation failure.

    - path: segments from the validated root to the offending value
    - expectation: the violated constraint
    - observed: printable summary of the offending value
    - message: resolved display string (rule, composite or plan message, or the generated default)
    """
    path: FieldPath
    expectation: Expectation
    observed: str
    message: str

    @property
    def field_path(self) -> str: return render_path(self.path)

    @property
    def constraint(self) -> str: return self.expectation.constraint

    @property
    def code(self) -> ErrorCode: return self.expectation.code

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for structured output."""
        return {"field": self.field_path, "constraint": self.constraint, "code": self.code.name,
            "value": self.observed, "message": self.message}

    def to_app_error(self) -> AppError:
        """Convert to AppError for the shared error taxonomy."""
        return AppError(code=self.code, message=f"{self.field_path}: {self.message}",
            metadata={"field": self.field_path, "constraint": self.constraint, "value": self.observed})

    def __str__(self) -> str: return self.message


class ViolationList(Sequence[Violation]):
    """Non-empty ordered sequence of violations, in discovery order."""

    __slots__ = ("_violations",)

    def __init__(self, violations: Sequence[Violation]):
        if not violations: raise ValueError("ViolationList requires at least one violation")
        self._violations = tuple(violations)

    def __getitem__(self, index):
        return self._violations[index]

    def __len__(self) -> int: return len(self._violations)

    def __iter__(self) -> Iterator[Violation]: return iter(self._violations)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ViolationList): return self._violations == other._violations
        return NotImplemented

    def __hash__(self) -> int: return hash(self._violations)

    def __repr__(self) -> str: return f"ViolationList({list(self._violations)!r})"

    def __str__(self) -> str:
        if len(self) == 1: return str(self.first)
        return f"{len(self)} violations: " + "; ".join(v.message for v in self)

    @property
    def first(self) -> Violation: return self._violations[0]

    def by_path(self) -> dict[str, list[Violation]]:
        """Group violations by rendered field path."""
        result: dict[str, list[Violation]] = {}
        for v in self._violations: result.setdefault(v.field_path, []).append(v)
        return result

    def for_path(self, field_path: str) -> list[Violation]:
        return [v for v in self._violations if v.field_path == field_path]

    def render(self) -> str:
        return "\n".join(v.message for v in self._violations)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for structured output."""
        return {"error": {"type": "validation_error", "mode": ValidationMode.COLLECT_ALL.value,
            "error_count": len(self), "errors": [v.to_dict() for v in self._violations]}}

    def to_app_error(self) -> AppError:
        """Convert to AppError for the shared error taxonomy."""
        if len(self) == 1: return self.first.to_app_error()
        return AppError(code=ErrorCode.E2000_VALIDATION_GENERIC, message=f"Validation failed: {len(self)} errors",
            metadata={"validation_mode": ValidationMode.COLLECT_ALL.value, "error_count": len(self),
                "errors": [v.to_dict() for v in self._violations]})


# ============================================================================
# Accumulators
# ============================================================================

class ViolationAccumulator(ABC):
    """Abstract base for violation accumulation strategies."""

    @abstractmethod
    def add(self, violation: Violation) -> bool:
        """Add a violation. Returns True if the walk should continue, False if it should stop."""

    @abstractmethod
    def get_violations(self) -> list[Violation]:
        """Get accumulated violations in discovery order."""

    @property
    @abstractmethod
    def mode(self) -> ValidationMode:
        """Get the accumulation mode."""

    def has_violations(self) -> bool: return bool(self.get_violations())


@dataclass
class FailFastAccumulator(ViolationAccumulator):
    """Fail-fast accumulator: stops on first violation."""
    _violation: Violation | None = None

    @property
    def mode(self) -> ValidationMode: return ValidationMode.FAIL_FAST

    def add(self, violation: Violation) -> bool:
        if self._violation is None: self._violation = violation
        return False

    def get_violations(self) -> list[Violation]: return [self._violation] if self._violation else []

    @property
    def violation(self) -> Violation | None: return self._violation


@dataclass
class CollectAllAccumulator(ViolationAccumulator):
    """Collect-all accumulator: gathers every violation, up to max_errors when set."""
    _violations: list[Violation] = field(default_factory=list)
    max_errors: int | None = None

    @property
    def mode(self) -> ValidationMode: return ValidationMode.COLLECT_ALL

    def add(self, violation: Violation) -> bool:
        if self.max_errors is None or len(self._violations) < self.max_errors: self._violations.append(violation)
        return self.max_errors is None or len(self._violations) < self.max_errors

    def get_violations(self) -> list[Violation]: return self._violations.copy()

    def clear(self) -> None: self._violations.clear()


def create_accumulator(mode: ValidationMode, max_errors: int | None = None) -> ViolationAccumulator:
    """Factory for creating accumulators based on mode."""
    return FailFastAccumulator() if mode == ValidationMode.FAIL_FAST else CollectAllAccumulator(max_errors=max_errors)
