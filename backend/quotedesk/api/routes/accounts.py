"""Company account API routes."""

import logging
from typing import Optional
from fastapi import APIRouter, Query
from pydantic import BaseModel, Field, ValidationError

from ...api.dependencies import StoreDep
from ...models import APIResponse, CompanyAccount
from ...services.company_matcher import (
    check_duplicate,
    clean_company_name,
    contains_disallowed_abbreviation,
    validate_company_name,
)
from ...utils import ErrorCode, log_error, raise_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Accounts"])


class CreateAccountRequest(BaseModel):
    """Request model for registering an account."""
    company_name: str = Field(..., min_length=1)
    owner_referenceid: str = Field(..., min_length=1)
    account_reference_number: Optional[str] = None


@router.post(
    "/accounts",
    status_code=201,
    response_model=APIResponse,
    summary="新增客戶帳號",
)
async def create_account(request: CreateAccountRequest, store: StoreDep) -> dict:
    """新增客戶帳號（不檢查重複，請先呼叫 check-duplicate）."""
    name_error = validate_company_name(request.company_name)
    if name_error:
        raise_error(ErrorCode.VALIDATION_ERROR, name_error)

    try:
        account = CompanyAccount(**request.model_dump())
    except ValidationError as e:
        raise_error(ErrorCode.VALIDATION_ERROR, f"Invalid account: {e.errors()[0]['msg']}", details=e.errors())

    try:
        account = store.add_account(account)
        return {
            "success": True,
            "message": f"Account created: {account.company_name}",
            "data": account.model_dump(),
        }

    except Exception as e:
        log_error(e, context="Create account")
        raise


@router.get(
    "/accounts/check-duplicate",
    summary="檢查公司是否重複",
)
async def check_duplicate_account(
    store: StoreDep,
    company_name: str = Query(..., min_length=1),
    referenceid: Optional[str] = Query(None, description="查詢者的 reference id"),
) -> dict:
    """
    以正規化名稱 + 編輯距離找出可能重複的公司帳號.

    - **status**: none / own（只有自己的帳號相近）/ other（他人已擁有）
    - **name_error**: 名稱本身不可用時的訊息（此時不做重複比對）
    """
    try:
        normalized = clean_company_name(company_name)
        name_error = validate_company_name(company_name)
        accounts = [] if name_error else store.list_accounts()
        result = check_duplicate(company_name, referenceid, accounts)
        return {
            "exists": result.exists,
            "status": result.status,
            "message": result.message,
            "name_error": name_error,
            "normalized_name": normalized,
            "disallowed_abbreviation": contains_disallowed_abbreviation(normalized),
            "companies": [m.model_dump() for m in result.matches],
        }

    except Exception as e:
        log_error(e, context=f"Check duplicate: {company_name}")
        raise
