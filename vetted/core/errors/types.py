"""Monadic Error Handling Types

Result/Either types for validation verdicts. A verdict is ``Ok(None)``
or ``Err(violation)``; schema construction failures are ``AppError``
values raised once through ``SchemaError``.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, NoReturn, TypeVar, Union, final
from uuid import uuid4

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.

    E20xx: Violations found in data
    E23xx: Schema construction errors
    E9xxx: Internal/Unknown errors
    """
    # Validation (E20xx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2005_CONSTRAINT_VIOLATION = 2005
    E2006_UNEXPECTED_VALUE = 2006
    E2007_CUSTOM_CHECK_FAILED = 2007

    # Schema construction (E23xx)
    E2300_SCHEMA_GENERIC = 2300
    E2301_INCOMPATIBLE_RULE = 2301
    E2302_INVALID_STEP = 2302
    E2303_FORMAT_UNAVAILABLE = 2303
    E2304_INVALID_PATTERN = 2304
    E2305_INVALID_BOUNDS = 2305
    E2306_ARITY_MISMATCH = 2306
    E2307_UNSUPPORTED_UNION = 2307
    E2308_UNKNOWN_SCHEMA = 2308

    # Internal (E9xxx)
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def category(self) -> str:
        code = self.value
        if 2300 <= code < 2400: return "schema"
        if 2000 <= code < 2100: return "validation"
        return "internal"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Where and when an error was produced."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""


@dataclass(frozen=True, slots=True)
class AppError:
    """Error value shared by violations and schema failures.

    - code: taxonomy entry
    - message: human-readable text
    - metadata: field, constraint and value details
    - cause: underlying exception, for schema errors raised from one
    """
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    @property
    def error_id(self) -> str: return f"{self.code.name}:{self.context.correlation_id}"

    def with_metadata(self, **kwargs) -> AppError:
        return replace(self, metadata={**self.metadata, **kwargs})

    def to_dict(self) -> dict:
        """Serialize error for structured output."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "origin": self.context.origin,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str: return f"[{self.code.name}] {self.message}"


class SchemaError(Exception):
    """A rule tree could not be compiled.

    Raised only by schema compilation; the registry caches the instance
    and re-raises it on every later lookup of the same schema.
    """

    def __init__(self, error: AppError):
        self.error = error
        super().__init__(str(error))

    @property
    def code(self) -> ErrorCode: return self.error.code


# ============================================================================
# Result
# ============================================================================

@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant. Validation returns ``Ok(None)``."""
    value: T

    def is_ok(self) -> bool: return True

    def is_err(self) -> bool: return False

    def unwrap(self) -> T: return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def unwrap_or(self, default: T) -> T: return self.value

    def map(self, f: Callable[[T], U]) -> Result[U, E]: return Ok(f(self.value))

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]: return self  # type: ignore

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]: return f(self.value)

    def match(self, ok: Callable[[T], U], err: Callable[[E], U]) -> U: return ok(self.value)


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant carrying a Violation, a ViolationList or batch failures."""
    error: E

    def is_ok(self) -> bool: return False

    def is_err(self) -> bool: return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_err(self) -> E: return self.error

    def unwrap_or(self, default: T) -> T: return default

    def map(self, f: Callable[[T], U]) -> Result[U, E]: return self  # type: ignore

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]: return Err(f(self.error))

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]: return self  # type: ignore

    def match(self, ok: Callable[[T], U], err: Callable[[E], U]) -> U: return err(self.error)


Result = Union[Ok[T], Err[E]]


def ok(value: T) -> Ok[T]: return Ok(value)


def err(error: E) -> Err[E]: return Err(error)
