"""API dependencies and injection."""

from typing import Annotated
from fastapi import Depends
import logging

from ..store import InMemoryStore, get_store
from ..services.activity_service import ActivityService
from ..services.excel_generator import QuotationWorkbookBuilder, get_quotation_builder


logger = logging.getLogger(__name__)


def get_store_dependency() -> InMemoryStore:
    """
    Dependency to get the in-memory store.

    Returns:
        InMemoryStore instance
    """
    return get_store()


def get_activity_service(
    store: InMemoryStore = Depends(get_store_dependency),
) -> ActivityService:
    """
    Dependency to get the activity service bound to the current store.

    Returns:
        ActivityService instance
    """
    return ActivityService(store)


def get_builder_dependency() -> QuotationWorkbookBuilder:
    """
    Dependency to get the quotation workbook builder.

    Returns:
        QuotationWorkbookBuilder instance
    """
    return get_quotation_builder()


# Type aliases for common dependencies
StoreDep = Annotated[InMemoryStore, Depends(get_store_dependency)]
ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]
BuilderDep = Annotated[QuotationWorkbookBuilder, Depends(get_builder_dependency)]
