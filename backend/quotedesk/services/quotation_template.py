"""Quotation Template Loader - 載入報價單版面與條款文字.

條款、簽名欄等固定文字存放於 ``templates/<name>.yaml``，
此模組負責解析並驗證成 Pydantic 模型，供 Excel 產生器使用。
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from ..config import settings

logger = logging.getLogger(__name__)

# 隨套件發佈的預設範本目錄
BUNDLED_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


# ============================================================
# Pydantic 模型定義
# ============================================================


class FormatInfo(BaseModel):
    """範本基本資訊."""

    name: str = Field(..., description="範本名稱")
    identifier: str = Field(..., description="範本識別碼")
    version: str = Field("1.0.0", description="範本版本")


class ColumnDefinition(BaseModel):
    """明細表欄位定義."""

    header: str = Field(..., description="欄位標題")
    width: float = Field(15, description="欄寬")


class PhotoConfig(BaseModel):
    """參考圖片顯示設定."""

    width_px: int = Field(100, description="圖片最大寬度")
    height_px: int = Field(100, description="圖片最大高度")
    row_height_pt: float = Field(80, description="有圖片時的列高")


class CurrencyConfig(BaseModel):
    """金額格式."""

    symbol: str = Field("₱", description="幣別符號")
    number_format: str = Field('"₱"#,##0.00', description="Excel 數字格式")

    def format_amount(self, amount: float) -> str:
        """格式化金額文字，例如 ₱1,234.50."""
        return f"{self.symbol}{amount:,.2f}"


class VatConfig(BaseModel):
    """VAT 選項（單選）."""

    label: str = Field("Choose One:", description="選項前綴")
    selected_mark: str = Field("●", description="已選取符號")
    unselected_mark: str = Field("○", description="未選取符號")
    choices: list[str] = Field(
        default_factory=lambda: ["VAT Inc", "VAT Exe", "Zero-Rated"],
        description="選項列表",
    )

    def is_selected(self, choice: str, vat_type: Optional[str]) -> bool:
        """比對選項（忽略大小寫與前後空白）."""
        if not vat_type:
            return False
        return choice.strip().casefold() == vat_type.strip().casefold()

    def render(self, vat_type: Optional[str]) -> str:
        """產生單選列文字，例如 ``Choose One:  ● VAT Inc    ○ VAT Exe``."""
        marks = [
            f"{self.selected_mark if self.is_selected(choice, vat_type) else self.unselected_mark} {choice}"
            for choice in self.choices
        ]
        return f"{self.label}  " + "    ".join(marks)


class TermsSection(BaseModel):
    """條款段落."""

    heading: str = Field(..., description="段落標題")
    lines: list[str] = Field(default_factory=list, description="段落內容，每行一列")


class SignatoryConfig(BaseModel):
    """簽名欄."""

    heading: str = Field("SIGNATORIES", description="標題")
    signature_line: str = Field("_________________________", description="簽名線")
    company_label: str = Field("Authorized Company Representative")
    client_label: str = Field("Authorized Client Representative")
    date_line: str = Field("Date: _______________")


class QuotationTemplate(BaseModel):
    """報價單範本完整配置."""

    format: FormatInfo
    sheet_name: str = Field("Quotation", description="工作表名稱")
    title: str = Field("QUOTATION / SALES ORDER", description="標題")
    intro: str = Field("", description="明細表前的說明文字")
    columns: list[ColumnDefinition] = Field(default_factory=list)
    photo: PhotoConfig = Field(default_factory=PhotoConfig)
    currency: CurrencyConfig = Field(default_factory=CurrencyConfig)
    vat: VatConfig = Field(default_factory=VatConfig)
    sections: list[TermsSection] = Field(default_factory=list)
    signatories: SignatoryConfig = Field(default_factory=SignatoryConfig)

    @property
    def version(self) -> str:
        """取得範本版本."""
        return self.format.version

    @property
    def column_headers(self) -> list[str]:
        return [col.header for col in self.columns]


# ============================================================
# 例外定義
# ============================================================


class TemplateNotFoundError(Exception):
    """範本檔不存在."""

    pass


class TemplateParseError(Exception):
    """範本檔解析失敗."""

    pass


# ============================================================
# Template Loader 服務
# ============================================================


class QuotationTemplateLoader:
    """報價單範本載入器.

    使用方式：
        loader = get_template_loader()
        template = loader.load_or_default()
        template.sections
    """

    def __init__(self, templates_dir: Optional[Path] = None, cache_enabled: bool = True):
        """初始化 Template Loader.

        Args:
            templates_dir: 範本目錄，預設使用 settings.templates_dir_path
            cache_enabled: 是否啟用快取
        """
        self.templates_dir = templates_dir or settings.templates_dir_path
        self.cache_enabled = cache_enabled
        self._cache: dict[str, QuotationTemplate] = {}

    def load(self, name: Optional[str] = None) -> QuotationTemplate:
        """載入範本.

        Args:
            name: 範本名稱（檔名不含 .yaml），預設使用 settings.quotation_template

        Returns:
            QuotationTemplate

        Raises:
            TemplateNotFoundError: 找不到範本檔
            TemplateParseError: 範本檔解析失敗
        """
        name = name or settings.quotation_template

        if self.cache_enabled and name in self._cache:
            return self._cache[name]

        template = self._load_file(self.templates_dir / f"{name}.yaml")

        if self.cache_enabled:
            self._cache[name] = template
        logger.info(f"Loaded quotation template: {name} (v{template.version})")
        return template

    def load_or_default(self, name: Optional[str] = None) -> QuotationTemplate:
        """載入範本，失敗時改用隨套件發佈的預設範本.

        Raises:
            TemplateNotFoundError / TemplateParseError: 連預設範本也無法載入
        """
        try:
            return self.load(name)
        except (TemplateNotFoundError, TemplateParseError) as e:
            logger.warning(f"Quotation template unavailable, using bundled default: {e}")
            return self._load_file(BUNDLED_TEMPLATES_DIR / "quotation.yaml")

    def list_templates(self) -> list[str]:
        """列出所有可用範本."""
        if not self.templates_dir.exists():
            return []
        return sorted(p.stem for p in self.templates_dir.glob("*.yaml") if not p.stem.startswith("_"))

    def clear_cache(self) -> None:
        """清除快取."""
        self._cache.clear()

    @staticmethod
    def _load_file(path: Path) -> QuotationTemplate:
        if not path.exists():
            raise TemplateNotFoundError(f"Template file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TemplateParseError(f"YAML parse failed: {e}")

        if not isinstance(data, dict):
            raise TemplateParseError(f"Template root must be a mapping: {path}")

        try:
            return QuotationTemplate(**data)
        except Exception as e:
            raise TemplateParseError(f"Template validation failed: {e}")


# ============================================================
# 單例工廠
# ============================================================

_template_loader_instance: Optional[QuotationTemplateLoader] = None


def get_template_loader() -> QuotationTemplateLoader:
    """取得 QuotationTemplateLoader 單例."""
    global _template_loader_instance
    if _template_loader_instance is None:
        _template_loader_instance = QuotationTemplateLoader()
    return _template_loader_instance
