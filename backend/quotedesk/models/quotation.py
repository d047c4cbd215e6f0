"""Quotation request data model.

JSON payload 沿用前端既有的 camelCase 欄位名稱（referenceNo, telNo ...），
Python 端屬性一律為 snake_case，透過 pydantic alias 對應。
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, List


def _none_to_empty(value: Any) -> Any:
    """JSON null 的文字欄位視為空字串."""
    return "" if value is None else value


class LineItem(BaseModel):
    """報價單明細（一列一個產品）."""

    item_no: int = Field(..., alias="itemNo", description="ITEM NO 欄")
    qty: float = Field(0, alias="qty", description="QTY 欄")
    unit_price: float = Field(0, alias="unitPrice", description="UNIT PRICE 欄")
    total_amount: float = Field(0, alias="totalAmount", description="TOTAL AMOUNT 欄")
    reference_photo: str = Field("", alias="referencePhoto", description="參考圖片 URL（產出時下載）")
    description: str = Field("", description="產品描述（純文字或 HTML，可含 || 分隔）")

    text_fields_allow_null = field_validator("reference_photo", "description", mode="before")(_none_to_empty)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "itemNo": 1,
                "qty": 2,
                "unitPrice": 50,
                "totalAmount": 100,
                "referencePhoto": "https://cdn.example.com/products/led-150w.png",
                "description": "Color||Red||Wattage||150W",
            }
        },
    }


class QuotationRequest(BaseModel):
    """Excel 報價單產出請求."""

    reference_no: str = Field("", alias="referenceNo", description="報價單參考編號")
    date: str = Field("", description="顯示用日期")

    # 客戶資訊（不做格式驗證）
    company_name: str = Field("", alias="companyName")
    address: str = Field("")
    tel_no: str = Field("", alias="telNo")
    email: str = Field("")
    attention: str = Field("")
    subject: str = Field("")

    items: List[LineItem] = Field(default_factory=list, description="明細列，依輸入順序輸出")

    vat_type: str = Field("", alias="vatType", description="VAT 選項（如 VAT Inc）")
    total_price: float = Field(0, alias="totalPrice")

    # 業務代表（可選）
    sales_representative: str = Field("", alias="salesRepresentative")
    sales_email: str = Field("", alias="salesemail")
    sales_contact: str = Field("", alias="salescontact")

    text_fields_allow_null = field_validator(
        "reference_no",
        "date",
        "company_name",
        "address",
        "tel_no",
        "email",
        "attention",
        "subject",
        "vat_type",
        "sales_representative",
        "sales_email",
        "sales_contact",
        mode="before",
    )(_none_to_empty)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "referenceNo": "Q-100",
                "date": "10/17/2026",
                "companyName": "Acme Trading",
                "address": "Pasig City",
                "telNo": "+63 2 8123 4567",
                "email": "buyer@acme.example",
                "attention": "Juan Dela Cruz, Pasig City",
                "subject": "For Quotation",
                "items": [
                    {
                        "itemNo": 1,
                        "qty": 2,
                        "unitPrice": 50,
                        "totalAmount": 100,
                        "description": "Color||Red",
                        "referencePhoto": "",
                    }
                ],
                "vatType": "VAT Inc",
                "totalPrice": 100,
            }
        },
    }
