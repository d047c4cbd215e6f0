"""Quotation export API routes."""

import logging
from fastapi import APIRouter
from fastapi.responses import Response

from ...models import QuotationRequest
from ...api.dependencies import BuilderDep
from ...utils import log_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Quotation"])


@router.post(
    "/quotation",
    summary="產出 Excel 報價單",
    response_class=Response,
    responses={
        200: {
            "content": {"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": {}},
            "description": "XLSX 檔案",
        }
    },
)
async def create_quotation_excel(request: QuotationRequest, builder: BuilderDep) -> Response:
    """
    依請求內容產出報價單 Excel 並直接回傳檔案.

    - 每個明細的 referencePhoto 會在產出時下載；單張失敗只會略過該圖片
    - 產出或序列化失敗時回傳 500，不會回傳不完整的檔案
    """
    try:
        document = await builder.build(request)
    except Exception as e:
        log_error(e, context=f"Build quotation: {request.reference_no}")
        raise

    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": document.content_disposition},
    )
