"""Activity (history) record model.

一筆業務活動紀錄。產品相關欄位以字串儲存，多個產品以分隔符號串接：
description 使用 ``||``，其他欄位使用 ``,``。
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


REQUIRED_FIELDS = (
    "activity_reference_number",
    "account_reference_number",
    "status",
    "type_activity",
)

PRODUCT_FIELDS = (
    "product_category",
    "product_quantity",
    "product_amount",
    "product_description",
    "product_photo",
    "product_sku",
    "product_title",
)

PRODUCT_SEPARATOR = ","
DESCRIPTION_SEPARATOR = "||"


class ActivityRecord(BaseModel):
    """History 資料表的一筆紀錄."""

    id: Optional[int] = Field(None, description="Store 指派的流水號")

    # 必填
    activity_reference_number: str
    account_reference_number: str
    status: str
    type_activity: str

    # 負責人
    referenceid: Optional[str] = None
    tsm: Optional[str] = None
    manager: Optional[str] = None
    target_quota: Optional[Any] = None
    type_client: Optional[str] = None

    # 通話
    source: Optional[str] = None
    callback: Optional[str] = None
    call_status: Optional[str] = None
    call_type: Optional[str] = None

    # 產品（分隔字串）
    product_category: Optional[str] = None
    product_quantity: Optional[str] = None
    product_amount: Optional[str] = None
    product_description: Optional[str] = None
    product_photo: Optional[str] = None
    product_sku: Optional[str] = None
    product_title: Optional[str] = None

    # 專案 / 報價 / 訂單
    project_type: Optional[str] = None
    project_name: Optional[str] = None
    quotation_number: Optional[str] = None
    quotation_amount: Optional[Any] = None
    so_number: Optional[str] = None
    so_amount: Optional[Any] = None
    dr_number: Optional[str] = None
    actual_sales: Optional[Any] = None
    payment_terms: Optional[str] = None
    delivery_date: Optional[str] = None
    date_followup: Optional[str] = None
    remarks: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    date_created: Optional[str] = None
    date_updated: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """空字串一律存成 None."""
        if isinstance(v, str) and v == "":
            return None
        return v

    def product_lists(self) -> dict[str, list[str]]:
        """將產品欄位拆成 list（僅包含有值的欄位）."""
        lists = {}
        for name in PRODUCT_FIELDS:
            value = getattr(self, name)
            if not value:
                continue
            separator = DESCRIPTION_SEPARATOR if name == "product_description" else PRODUCT_SEPARATOR
            lists[name] = value.split(separator)
        return lists
