"""Models package."""

from .quotation import LineItem, QuotationRequest
from .activity import ActivityRecord
from .account import CompanyAccount
from .change_event import ChangeEvent
from .responses import APIResponse, ErrorResponse, CachedResult

__all__ = [
    "LineItem",
    "QuotationRequest",
    "ActivityRecord",
    "CompanyAccount",
    "ChangeEvent",
    "APIResponse",
    "ErrorResponse",
    "CachedResult",
]
