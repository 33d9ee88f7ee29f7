"""Monadic Error Handling System

Result type and error taxonomy shared by the validation engine.

Key components:
- Result[T, E]: Monadic container for success/failure
- AppError: Base error type with full context
- ErrorCode: Hierarchical error code taxonomy
- SchemaError: Raised when a rule tree cannot be compiled
- Builder functions: Ergonomic schema error construction

Usage:
    from vetted.core.errors import Ok, Err

    match validate(user):
        case Ok(_):
            ...
        case Err(violation):
            log.warning("invalid_user", path=violation.field_path)
"""
from .types import (
    # Core types
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    SchemaError,
    # Constructors
    ok,
    err,
)

from .builders import (
    schema_error,
    incompatible_rule,
    invalid_step,
    format_unavailable,
    invalid_pattern,
    invalid_bounds,
    arity_mismatch,
    unsupported_union,
    unknown_schema,
)

__all__ = [
    # Core types
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "SchemaError",
    # Constructors
    "ok",
    "err",
    # Schema (E23xx)
    "schema_error",
    "incompatible_rule",
    "invalid_step",
    "format_unavailable",
    "invalid_pattern",
    "invalid_bounds",
    "arity_mismatch",
    "unsupported_union",
    "unknown_schema",
]
