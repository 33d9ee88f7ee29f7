"""Schema Error Builders

Ergonomic constructors for schema-construction errors. Each builder
creates an AppError with the appropriate code and wraps it in a
SchemaError ready to be raised by the compiling front-end.
"""
from .types import AppError, ErrorCode, ErrorContext, SchemaError


# =============================================================================
# Schema Construction Errors (E23xx)
# =============================================================================

def schema_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E2300_SCHEMA_GENERIC,
    schema: str | None = None,
    field: str | None = None,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> SchemaError:
    """Create schema construction error."""
    meta = {"schema": schema, "field": field, **metadata}
    return SchemaError(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
        cause=cause,
    ))


def incompatible_rule(
    field: str, rule: str, declared: str, origin: str = ""
) -> SchemaError:
    return schema_error(
        f"Rule {rule} cannot be applied to '{field}' declared as {declared}",
        code=ErrorCode.E2301_INCOMPATIBLE_RULE,
        field=field,
        rule=rule,
        declared=declared,
        origin=origin,
    )


def invalid_step(field: str, step: int, origin: str = "") -> SchemaError:
    return schema_error(
        f"Step for '{field}' must be non-zero, got {step}",
        code=ErrorCode.E2302_INVALID_STEP,
        field=field,
        step=step,
        origin=origin,
    )


def format_unavailable(field: str, format_name: str, origin: str = "") -> SchemaError:
    return schema_error(
        f"String format '{format_name}' used by '{field}' is not enabled",
        code=ErrorCode.E2303_FORMAT_UNAVAILABLE,
        field=field,
        format=format_name,
        origin=origin,
    )


def invalid_pattern(
    field: str, pattern: str, cause: Exception, origin: str = ""
) -> SchemaError:
    return schema_error(
        f"Pattern for '{field}' does not compile: {cause}",
        code=ErrorCode.E2304_INVALID_PATTERN,
        field=field,
        pattern=pattern,
        origin=origin,
        cause=cause,
    )


def invalid_bounds(
    field: str,
    min_val: int | float | None,
    max_val: int | float | None,
    origin: str = "",
) -> SchemaError:
    return schema_error(
        f"Bounds for '{field}' are empty: {min_val} exceeds {max_val}",
        code=ErrorCode.E2305_INVALID_BOUNDS,
        field=field,
        min=min_val,
        max=max_val,
        origin=origin,
    )


def arity_mismatch(
    field: str, expected: int, declared: int, origin: str = ""
) -> SchemaError:
    return schema_error(
        f"Tuple rule for '{field}' has {expected} positions but the type declares {declared}",
        code=ErrorCode.E2306_ARITY_MISMATCH,
        field=field,
        expected=expected,
        declared=declared,
        origin=origin,
    )


def unsupported_union(field: str, declared: str, origin: str = "") -> SchemaError:
    return schema_error(
        f"Field '{field}' is declared as union {declared}; only Optional unions carry rules",
        code=ErrorCode.E2307_UNSUPPORTED_UNION,
        field=field,
        declared=declared,
        origin=origin,
    )


def unknown_schema(key: object, origin: str = "") -> SchemaError:
    return schema_error(
        f"No schema registered or derivable for {key!r}",
        code=ErrorCode.E2308_UNKNOWN_SCHEMA,
        schema=getattr(key, "__name__", repr(key)),
        origin=origin,
    )
