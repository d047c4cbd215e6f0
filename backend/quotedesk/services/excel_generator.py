"""Excel generation service for sales quotations.

版面（由上而下依序寫入，寫完後不再回頭修改個別列）：
- 表頭：標題、Reference No / Date、客戶資訊 6 欄、說明文字
- 明細表：6 欄標題 + 每個明細一列（含參考圖片、描述表格）
- 結尾：VAT 單選、總金額、條款段落、簽名欄
- 最後統一設定欄寬，輸出為 bytes

條款等固定文字由 QuotationTemplateLoader 從 YAML 載入。
"""

import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional, Sequence
from urllib.parse import quote

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.drawing.spreadsheet_drawing import AnchorMarker, OneCellAnchor
from openpyxl.drawing.xdr import XDRPositiveSize2D
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.units import pixels_to_EMU
from openpyxl.worksheet.worksheet import Worksheet

from ..models import QuotationRequest, LineItem
from ..utils import APIError, ErrorCode, raise_error
from .description_parser import render_description
from .photo_fetcher import FetchedPhoto, PhotoFetcher, get_photo_fetcher
from .quotation_template import (
    QuotationTemplate,
    QuotationTemplateLoader,
    TemplateNotFoundError,
    TemplateParseError,
    get_template_loader,
)

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# 明細表欄位（1-indexed）
COL_ITEM_NO = 1
COL_QTY = 2
COL_PHOTO = 3
COL_DESCRIPTION = 4
COL_UNIT_PRICE = 5
COL_TOTAL = 6

# 圖片與儲存格邊界的間距
PHOTO_PADDING_PX = 4

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


@dataclass
class QuotationDocument:
    """產出的報價單檔案."""

    content: bytes
    filename: str
    media_type: str = XLSX_MEDIA_TYPE
    item_rows: list[int] = field(default_factory=list)
    photos_embedded: int = 0
    content_disposition: str = ""


def quotation_filename(reference_no: Optional[str]) -> str:
    """Suggested download name, e.g. ``Quotation_Q-100.xlsx``."""
    safe = _UNSAFE_FILENAME_CHARS.sub("_", (reference_no or "").strip()).strip("_")
    return f"Quotation_{safe or 'untitled'}.xlsx"


def content_disposition(reference_no: Optional[str]) -> str:
    """Attachment header value.

    ``filename`` 為 ASCII 安全名稱；``filename*``（RFC 5987）保留原始 referenceNo。
    """
    header = f"attachment; filename={quotation_filename(reference_no)}"
    reference = (reference_no or "").strip()
    if reference:
        header += f"; filename*=UTF-8''{quote(f'Quotation_{reference}.xlsx', safe='')}"
    return header


class _RowCursor:
    """依序往下寫入列的游標."""

    def __init__(self, ws: Worksheet):
        self.ws = ws
        self.row = 0

    def write(self, *values, font: Optional[Font] = None) -> int:
        self.row += 1
        for col_num, value in enumerate(values, 1):
            if value is None:
                continue
            cell = self.ws.cell(row=self.row, column=col_num, value=value)
            if font is not None:
                cell.font = font
        return self.row

    def skip(self, count: int = 1) -> None:
        self.row += count


class QuotationWorkbookBuilder:
    """Builds the quotation workbook for one request.

    Each call to :meth:`build` owns its own Workbook, so one builder can be
    shared between concurrent requests.
    """

    def __init__(
        self,
        template_loader: Optional[QuotationTemplateLoader] = None,
        photo_fetcher: Optional[PhotoFetcher] = None,
    ):
        """Initialize builder.

        Args:
            template_loader: 範本載入器，None 時使用全域單例
            photo_fetcher: 圖片下載器，None 時使用預設設定
        """
        self._template_loader = template_loader or get_template_loader()
        self._photo_fetcher = photo_fetcher or get_photo_fetcher()

    @property
    def template(self) -> QuotationTemplate:
        """目前範本；設定的範本與預設範本皆無法載入時回報 TEMPLATE_* (500)."""
        try:
            return self._template_loader.load_or_default()
        except TemplateNotFoundError as e:
            raise_error(ErrorCode.TEMPLATE_NOT_FOUND, str(e))
        except TemplateParseError as e:
            raise_error(ErrorCode.TEMPLATE_INVALID, str(e))

    async def build(self, request: QuotationRequest) -> QuotationDocument:
        """
        Download reference photos, then assemble and serialize the workbook.

        Args:
            request: Quotation request

        Returns:
            QuotationDocument with the XLSX bytes

        Raises:
            APIError: If the workbook cannot be assembled or serialized
        """
        photos = await self._photo_fetcher.fetch_all(
            [item.reference_photo for item in request.items]
        )
        return self.render(request, photos)

    def render(
        self,
        request: QuotationRequest,
        photos: Optional[Sequence[Optional[FetchedPhoto]]] = None,
    ) -> QuotationDocument:
        """
        Assemble and serialize the workbook from already-fetched photos.

        Raises:
            APIError: EXPORT_FAILED (500) on any assembly or serialization failure
        """
        try:
            wb, item_rows, embedded = self.build_workbook(request, photos)

            output = BytesIO()
            wb.save(output)
            content = output.getvalue()

        except APIError:
            raise
        except Exception as e:
            logger.error(f"Excel generation failed for {request.reference_no!r}: {e}", exc_info=True)
            raise_error(
                ErrorCode.EXPORT_FAILED,
                f"Excel generation failed: {e}",
            )

        filename = quotation_filename(request.reference_no)
        logger.info(
            f"Quotation built: {filename} ({len(request.items)} items, "
            f"{embedded} photos, {len(content)} bytes)"
        )
        return QuotationDocument(
            content=content,
            filename=filename,
            content_disposition=content_disposition(request.reference_no),
            item_rows=item_rows,
            photos_embedded=embedded,
        )

    def build_workbook(
        self,
        request: QuotationRequest,
        photos: Optional[Sequence[Optional[FetchedPhoto]]] = None,
    ) -> tuple[Workbook, list[int], int]:
        """
        Build the in-memory workbook.

        Args:
            request: Quotation request
            photos: 與 request.items 對應的圖片（None 表示不嵌入）

        Returns:
            (workbook, 明細列號列表, 成功嵌入的圖片數)
        """
        template = self.template
        photos = list(photos or [])

        wb = Workbook()
        ws = wb.active
        ws.title = template.sheet_name
        cursor = _RowCursor(ws)

        # 1. 表頭 + 明細表標題
        self._write_header(cursor, request, template)
        self._write_column_headers(cursor, template)

        # 2. 明細
        item_rows = []
        embedded = 0
        for idx, item in enumerate(request.items):
            row_num = self._write_item_row(cursor, item, template)
            item_rows.append(row_num)

            photo = photos[idx] if idx < len(photos) else None
            if photo is not None and self._embed_photo(ws, row_num, photo, template):
                embedded += 1

        # 3. 結尾（VAT、總金額、條款、簽名欄）
        self._write_trailer(cursor, request, template)

        # 4. 欄寬
        for col_num, column in enumerate(template.columns, 1):
            ws.column_dimensions[get_column_letter(col_num)].width = column.width

        return wb, item_rows, embedded

    def _write_header(self, cursor: _RowCursor, request: QuotationRequest, template: QuotationTemplate) -> None:
        """Title, reference block, customer block and intro sentence."""
        cursor.write(template.title, font=Font(bold=True, size=16))
        cursor.skip()
        cursor.write(f"Reference No: {request.reference_no}", f"Date: {request.date}")
        cursor.skip()

        contact_rows = (
            ("COMPANY NAME", request.company_name),
            ("ADDRESS", request.address),
            ("TEL NO", request.tel_no),
            ("EMAIL ADDRESS", request.email),
            ("ATTENTION", request.attention),
            ("SUBJECT", request.subject),
        )
        for label, value in contact_rows:
            cursor.write(f"{label}: {value}")

        cursor.skip()
        cursor.write(template.intro)
        cursor.skip()

    def _write_column_headers(self, cursor: _RowCursor, template: QuotationTemplate) -> None:
        """Create the item table header row with formatting."""
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF", size=11)
        header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

        row_num = cursor.write(*template.column_headers)
        for col_num in range(1, len(template.columns) + 1):
            cell = cursor.ws.cell(row=row_num, column=col_num)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = header_alignment
            cell.border = THIN_BORDER

        cursor.ws.row_dimensions[row_num].height = 25

    def _write_item_row(self, cursor: _RowCursor, item: LineItem, template: QuotationTemplate) -> int:
        """Write one line item; the photo column is left for the image anchor."""
        center_alignment = Alignment(horizontal="center", vertical="top", wrap_text=True)
        left_alignment = Alignment(horizontal="left", vertical="top", wrap_text=True)
        right_alignment = Alignment(horizontal="right", vertical="top")
        money_format = template.currency.number_format

        row_num = cursor.write(
            item.item_no,
            item.qty,
            None,
            render_description(item.description) or None,
            item.unit_price,
            item.total_amount,
        )
        ws = cursor.ws

        for col_num in range(COL_ITEM_NO, COL_TOTAL + 1):
            ws.cell(row=row_num, column=col_num).border = THIN_BORDER

        ws.cell(row=row_num, column=COL_ITEM_NO).alignment = center_alignment
        ws.cell(row=row_num, column=COL_QTY).alignment = center_alignment
        ws.cell(row=row_num, column=COL_PHOTO).alignment = center_alignment
        ws.cell(row=row_num, column=COL_DESCRIPTION).alignment = left_alignment

        for col_num in (COL_UNIT_PRICE, COL_TOTAL):
            cell = ws.cell(row=row_num, column=col_num)
            cell.number_format = money_format
            cell.alignment = right_alignment

        return row_num

    def _embed_photo(
        self,
        ws: Worksheet,
        row_num: int,
        photo: FetchedPhoto,
        template: QuotationTemplate,
    ) -> bool:
        """Anchor a photo in the photo column, scaled to fit the configured box."""
        box_w = template.photo.width_px
        box_h = template.photo.height_px
        scale = min(box_w / photo.width, box_h / photo.height) if photo.width and photo.height else 1
        width = max(1, int(photo.width * scale))
        height = max(1, int(photo.height * scale))

        try:
            img = XLImage(BytesIO(photo.content))
            img.width = width
            img.height = height

            # AnchorMarker uses 0-indexed row/col
            marker = AnchorMarker(
                col=COL_PHOTO - 1,
                colOff=pixels_to_EMU(PHOTO_PADDING_PX),
                row=row_num - 1,
                rowOff=pixels_to_EMU(PHOTO_PADDING_PX),
            )
            size = XDRPositiveSize2D(pixels_to_EMU(width), pixels_to_EMU(height))
            img.anchor = OneCellAnchor(_from=marker, ext=size)
            ws.add_image(img)

            ws.row_dimensions[row_num].height = template.photo.row_height_pt
            logger.debug(f"Embedded photo at row {row_num} ({width}x{height}px)")
            return True

        except Exception as e:
            logger.warning(f"Failed to embed photo at row {row_num} ({photo.url}): {e}")
            return False

    def _write_trailer(self, cursor: _RowCursor, request: QuotationRequest, template: QuotationTemplate) -> None:
        """VAT choice, total price, terms sections and signatory block."""
        bold = Font(bold=True)

        cursor.skip()
        cursor.write(template.vat.render(request.vat_type))
        cursor.skip()
        cursor.write(f"Total Price: {template.currency.format_amount(request.total_price)}", font=bold)
        cursor.skip()

        for section in template.sections:
            cursor.write(section.heading, font=bold)
            for line in section.lines:
                if line.strip():
                    cursor.write(line)
                else:
                    cursor.skip()
            cursor.skip()

        self._write_signatories(cursor, request, template)

    def _write_signatories(self, cursor: _RowCursor, request: QuotationRequest, template: QuotationTemplate) -> None:
        """公司代表放 A 欄，客戶代表放 D 欄."""
        signatories = template.signatories

        cursor.write(signatories.heading, font=Font(bold=True))
        cursor.skip()
        cursor.write(signatories.signature_line, None, None, signatories.signature_line)
        if request.sales_representative:
            cursor.write(request.sales_representative, font=Font(bold=True))
        cursor.write(signatories.company_label, None, None, signatories.client_label)
        if request.sales_email:
            cursor.write(request.sales_email)
        if request.sales_contact:
            cursor.write(request.sales_contact)
        cursor.skip()
        cursor.write(signatories.date_line, None, None, signatories.date_line)


# ============================================================
# 單例工廠
# ============================================================

_builder_instance: Optional[QuotationWorkbookBuilder] = None


def get_quotation_builder() -> QuotationWorkbookBuilder:
    """取得 QuotationWorkbookBuilder 單例."""
    global _builder_instance
    if _builder_instance is None:
        _builder_instance = QuotationWorkbookBuilder()
    return _builder_instance
