"""Unit tests for QuotationTemplateLoader."""

from pathlib import Path

import pytest

from quotedesk.services.quotation_template import (
    CurrencyConfig,
    QuotationTemplateLoader,
    TemplateNotFoundError,
    TemplateParseError,
    VatConfig,
)


pytestmark = pytest.mark.unit


MINIMAL_TEMPLATE = """
format:
  name: Minimal
  identifier: minimal
  version: "2.0.0"
title: MINI QUOTE
columns:
  - header: "NO"
    width: 8
sections:
  - heading: NOTES
    lines: ["one", "", "two"]
"""


class TestBundledTemplate:
    """隨套件發佈的 quotation.yaml."""

    def test_loads_bundled_template(self, template_loader: QuotationTemplateLoader):
        template = template_loader.load("quotation")

        assert template.title == "QUOTATION / SALES ORDER"
        assert template.column_headers == [
            "ITEM NO",
            "QTY",
            "REFERENCE PHOTO",
            "PRODUCT DESCRIPTION",
            "UNIT PRICE",
            "TOTAL AMOUNT",
        ]
        assert [c.width for c in template.columns] == [10, 5, 20, 50, 15, 15]
        assert [s.heading for s in template.sections] == [
            "DELIVERY TERMS",
            "TERMS AND CONDITIONS",
            "PAYMENT TERMS",
            "CANCELLATION POLICY",
        ]

    def test_template_is_cached(self, template_loader: QuotationTemplateLoader):
        assert template_loader.load("quotation") is template_loader.load("quotation")
        template_loader.clear_cache()
        assert template_loader._cache == {}


class TestCustomTemplates:
    """自訂範本目錄."""

    def test_custom_template(self, tmp_path: Path):
        (tmp_path / "mini.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        loader = QuotationTemplateLoader(templates_dir=tmp_path)

        template = loader.load("mini")
        assert template.version == "2.0.0"
        assert template.column_headers == ["NO"]
        assert template.sections[0].lines == ["one", "", "two"]
        # 未指定的區塊使用預設值
        assert template.vat.choices == ["VAT Inc", "VAT Exe", "Zero-Rated"]

    def test_list_templates_skips_private(self, tmp_path: Path):
        (tmp_path / "mini.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        (tmp_path / "_draft.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        assert QuotationTemplateLoader(templates_dir=tmp_path).list_templates() == ["mini"]

    def test_missing_template_raises(self, tmp_path: Path):
        with pytest.raises(TemplateNotFoundError):
            QuotationTemplateLoader(templates_dir=tmp_path).load("nope")

    @pytest.mark.parametrize("content", ["format: [unclosed", "- just\n- a list\n", "title: no format block\n"])
    def test_invalid_template_raises(self, tmp_path: Path, content: str):
        (tmp_path / "bad.yaml").write_text(content, encoding="utf-8")
        with pytest.raises(TemplateParseError):
            QuotationTemplateLoader(templates_dir=tmp_path).load("bad")

    def test_bare_yaml_boolean_header_is_rejected(self, tmp_path: Path):
        """未加引號的 NO 會被 YAML 讀成 False."""
        (tmp_path / "bool.yaml").write_text(MINIMAL_TEMPLATE.replace('"NO"', "NO"), encoding="utf-8")
        with pytest.raises(TemplateParseError, match="columns"):
            QuotationTemplateLoader(templates_dir=tmp_path).load("bool")

    def test_load_or_default_falls_back_to_bundled(self, tmp_path: Path, caplog):
        template = QuotationTemplateLoader(templates_dir=tmp_path).load_or_default("nope")
        assert template.title == "QUOTATION / SALES ORDER"
        assert "using bundled default" in caplog.text


class TestVatConfig:
    """VAT 單選列."""

    def test_render_marks_selected_choice(self):
        assert VatConfig().render("VAT Inc") == "Choose One:  ● VAT Inc    ○ VAT Exe    ○ Zero-Rated"

    def test_selection_ignores_case_and_spaces(self):
        assert VatConfig().render(" vat exe ") == "Choose One:  ○ VAT Inc    ● VAT Exe    ○ Zero-Rated"

    @pytest.mark.parametrize("vat_type", [None, "", "Exempt"])
    def test_nothing_selected(self, vat_type):
        assert "●" not in VatConfig().render(vat_type)


class TestCurrencyConfig:
    def test_format_amount(self):
        assert CurrencyConfig().format_amount(1234.5) == "₱1,234.50"
        assert CurrencyConfig().format_amount(0) == "₱0.00"
