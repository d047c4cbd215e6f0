"""Utils package."""

from .errors import APIError, ErrorCode, raise_error, log_error

__all__ = [
    "APIError",
    "ErrorCode",
    "raise_error",
    "log_error",
]
