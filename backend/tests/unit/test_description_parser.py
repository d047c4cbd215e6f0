"""Unit tests for the product description parser."""

import math

import pytest

from quotedesk.services.description_parser import (
    DescriptionRow,
    decode_entities,
    flatten_description,
    parse_description_rows,
    render_description,
    split_description_lines,
)


pytestmark = pytest.mark.unit


class TestParseDescriptionRows:
    """parse_description_rows() 測試."""

    def test_pipe_separated_pairs(self):
        rows = parse_description_rows("Color||Red||Wattage||150W")
        assert rows == [DescriptionRow("Color", "Red"), DescriptionRow("Wattage", "150W")]

    def test_odd_trailing_label_gets_empty_value(self):
        rows = parse_description_rows("Color||Red||Warranty")
        assert rows[-1] == DescriptionRow("Warranty", "")
        assert len(rows) == 2

    @pytest.mark.parametrize("text", ["", None, "   ", "\n\n", "|| ||", "<br><br/>"])
    def test_blank_inputs_produce_no_rows(self, text):
        assert parse_description_rows(text) == []

    def test_br_variants_case_insensitive(self):
        rows = parse_description_rows("Size<BR>Large<br/>Finish<Br />Matte")
        assert rows == [DescriptionRow("Size", "Large"), DescriptionRow("Finish", "Matte")]

    def test_mixed_pipes_and_br(self):
        rows = parse_description_rows("Brand||Philips<br>Model<br/>X1||Lumens")
        assert rows == [
            DescriptionRow("Brand", "Philips"),
            DescriptionRow("Model", "X1"),
            DescriptionRow("Lumens", ""),
        ]

    def test_html_table_from_activity_form(self):
        """The activity form sends each product as a small HTML table."""
        html = (
            "<table><tr><td>LED Floodlight</td></tr>"
            "<tr><td>LED-150</td></tr>"
            "<tr><td>Color||Red</td></tr></table>"
        )
        # 標籤直接刪除（不補空白），同一格內的文字會相連
        assert split_description_lines(html) == ["LED FloodlightLED-150Color", "Red"]

    def test_tags_are_deleted_not_replaced(self):
        assert parse_description_rows("<b>Co</b>lor||R<i>e</i>d") == [DescriptionRow("Color", "Red")]

    def test_unterminated_tag_is_stripped_to_end(self):
        rows = parse_description_rows("Color||Red||Note<span class='x")
        assert rows == [DescriptionRow("Color", "Red"), DescriptionRow("Note", "")]

    def test_lone_angle_bracket_at_end_is_kept(self):
        assert split_description_lines("Voltage||<") == ["Voltage", "<"]

    def test_decoded_entities_are_not_stripped(self):
        assert parse_description_rows("A||&lt;b&gt;bold&lt;/b&gt;") == [DescriptionRow("A", "<b>bold</b>")]

    def test_entities_case_insensitive(self):
        rows = parse_description_rows("Size&NBSP;Class||A &AMP; B||Quote||&QUOT;x&quot; &#39;y&#39;")
        assert rows == [
            DescriptionRow("Size Class", "A & B"),
            DescriptionRow("Quote", "\"x\" 'y'"),
        ]

    def test_segments_are_trimmed(self):
        assert parse_description_rows("  Color  ||   Red \n") == [DescriptionRow("Color", "Red")]

    def test_row_count_is_half_of_segments_rounded_up(self):
        for count in range(0, 9):
            segments = [f"s{i}" for i in range(count)]
            rows = parse_description_rows("||".join(segments))
            assert len(rows) == math.ceil(count / 2)
            assert [r.label for r in rows] == segments[0::2]

    def test_idempotent(self):
        text = "A||<b>B</b>||C&amp;D<br>E"
        assert parse_description_rows(text) == parse_description_rows(text)


class TestDecodeEntities:
    """decode_entities() 測試."""

    def test_amp_decoded_after_lt(self):
        # &amp;lt; 只解一層
        assert decode_entities("&amp;lt;") == "&lt;"

    def test_unknown_entities_untouched(self):
        assert decode_entities("&copy; 2026") == "&copy; 2026"


class TestFlatten:
    """flatten_description() / render_description() 測試."""

    def test_flatten_joins_label_value_lines(self):
        rows = [DescriptionRow("Color", "Red"), DescriptionRow("Size", "")]
        assert flatten_description(rows) == "Color: Red\nSize: "

    def test_render_single_pair(self):
        assert render_description("Color||Red") == "Color: Red"

    def test_render_empty(self):
        assert render_description("") == ""
