"""Error handling utilities.

驗證錯誤一律 400、找不到資源 404、儲存 / 產出失敗 500；
呼叫端可用 ``status_code`` 覆寫預設值。
"""

from enum import Enum
from typing import Optional, Any, Dict
import logging


logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error code enumeration."""

    # Data validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_FIELD_FORMAT = "INVALID_FIELD_FORMAT"
    PRODUCT_ARRAYS_MISMATCH = "PRODUCT_ARRAYS_MISMATCH"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"

    # Template errors
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_INVALID = "TEMPLATE_INVALID"

    # Processing errors
    EXPORT_FAILED = "EXPORT_FAILED"
    STORE_ERROR = "STORE_ERROR"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Validation failed",
    ErrorCode.INVALID_REQUEST: "Invalid request",
    ErrorCode.MISSING_REQUIRED_FIELD: "Missing required field",
    ErrorCode.INVALID_FIELD_FORMAT: "Invalid field format",
    ErrorCode.PRODUCT_ARRAYS_MISMATCH: "Product arrays length mismatch",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.ACTIVITY_NOT_FOUND: "Activity not found",
    ErrorCode.TEMPLATE_NOT_FOUND: "Document template not found",
    ErrorCode.TEMPLATE_INVALID: "Document template is invalid",
    ErrorCode.EXPORT_FAILED: "Quotation export failed",
    ErrorCode.STORE_ERROR: "Store operation failed",
    ErrorCode.INTERNAL_ERROR: "Server Error",
    ErrorCode.SERVICE_UNAVAILABLE: "Service temporarily unavailable, please retry later",
}

# 未列出的錯誤代碼預設為 400
ERROR_STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ACTIVITY_NOT_FOUND: 404,
    ErrorCode.TEMPLATE_NOT_FOUND: 500,
    ErrorCode.TEMPLATE_INVALID: 500,
    ErrorCode.EXPORT_FAILED: 500,
    ErrorCode.STORE_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
}


class APIError(Exception):
    """Error carried up to the API layer and rendered as ErrorResponse."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        """
        Initialize APIError.

        Args:
            error_code: Error code from ErrorCode enum
            message: Custom error message (defaults to ERROR_MESSAGES)
            status_code: HTTP status code (defaults to ERROR_STATUS_CODES, else 400)
            details: Extra context, e.g. pydantic ``errors()``
        """
        self.error_code = error_code
        self.message = message or ERROR_MESSAGES.get(error_code, "An error occurred")
        self.status_code = status_code or ERROR_STATUS_CODES.get(error_code, 400)
        self.details = details
        super().__init__(self.message)

    @property
    def is_client_error(self) -> bool:
        return self.status_code < 500

    def __str__(self) -> str:
        return self.message


def raise_error(
    error_code: ErrorCode,
    message: Optional[str] = None,
    status_code: Optional[int] = None,
    details: Optional[Any] = None,
) -> None:
    """
    Raise an APIError.

    Raises:
        APIError: Always
    """
    raise APIError(
        error_code=error_code,
        message=message,
        status_code=status_code,
        details=details,
    )


def log_error(error: Exception, context: str = "") -> None:
    """
    Log an error with context.

    Client errors (4xx) are expected and logged at WARNING without a traceback.
    """
    if isinstance(error, APIError):
        log = logger.warning if error.is_client_error else logger.error
        log(
            f"APIError [{context}]: {error.error_code.value} ({error.status_code}) - {error.message}",
            extra={"details": error.details},
        )
    else:
        logger.error(f"Error [{context}]: {str(error)}", exc_info=True)
