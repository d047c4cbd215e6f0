"""Company account model."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional


class CompanyAccount(BaseModel):
    """客戶公司帳號."""

    id: Optional[int] = Field(None, description="Store 指派的流水號")
    company_name: str = Field(..., description="公司名稱")
    owner_referenceid: str = Field(..., description="負責業務的 reference id")
    account_reference_number: Optional[str] = Field(None, description="帳號參考編號")

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: str) -> str:
        """驗證公司名稱不為空."""
        if not v or not v.strip():
            raise ValueError("company_name must not be blank")
        return v.strip()
