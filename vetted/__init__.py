"""vetted: declarative field-rule validation."""
__version__ = "0.1.0"

from vetted.core.errors import Ok, Err, Result, AppError, ErrorCode, SchemaError
from vetted.core.validation import *  # noqa: F401,F403
from vetted.core.validation import __all__ as _validation_all

__all__ = ["__version__", "Ok", "Err", "Result", "AppError", "ErrorCode", "SchemaError", *_validation_all]
