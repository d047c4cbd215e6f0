"""Product description parser.

將報價明細的描述欄位（純文字、HTML 或 ``||`` 分隔字串）轉成
label / value 列，再合併為單一儲存格文字。

處理順序固定：先做結構正規化（``||``、``<br>``、移除標籤），最後才解碼
HTML entities，避免 ``&lt;b&gt;`` 解碼後被當成標籤刪除。
"""

import re
from typing import NamedTuple, Optional

ROW_BREAK = "\n"

_BR_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)
# 未閉合的 "<..." 一路刪到字串結尾
_TAG_PATTERN = re.compile(r"</?[^>]+(?:>|\Z)")
_ROW_SPLIT_PATTERN = re.compile(r"\n+")

# 依序解碼，&amp; 在 &lt; / &gt; 之後處理
_ENTITIES = (
    (re.compile(r"&nbsp;", re.IGNORECASE), " "),
    (re.compile(r"&lt;", re.IGNORECASE), "<"),
    (re.compile(r"&gt;", re.IGNORECASE), ">"),
    (re.compile(r"&amp;", re.IGNORECASE), "&"),
    (re.compile(r"&quot;", re.IGNORECASE), '"'),
    (re.compile(r"&#39;", re.IGNORECASE), "'"),
)


class DescriptionRow(NamedTuple):
    """描述表格的一列."""

    label: str
    value: str


def decode_entities(text: str) -> str:
    """Decode the handful of HTML entities product descriptions use."""
    for pattern, replacement in _ENTITIES:
        text = pattern.sub(replacement, text)
    return text


def split_description_lines(text: Optional[str]) -> list[str]:
    """
    正規化描述並拆成非空白行.

    Args:
        text: 原始描述

    Returns:
        去除前後空白、排除空行後的行列表
    """
    if not text:
        return []

    clean = text.replace("||", ROW_BREAK)
    clean = _BR_PATTERN.sub(ROW_BREAK, clean)
    clean = _TAG_PATTERN.sub("", clean)
    clean = decode_entities(clean)

    lines = (segment.strip() for segment in _ROW_SPLIT_PATTERN.split(clean))
    return [line for line in lines if line]


def parse_description_rows(text: Optional[str]) -> list[DescriptionRow]:
    """
    將描述解析為 label / value 列.

    相鄰兩行配成一列（偶數為 label，奇數為 value），落單的最後一行
    value 為空字串。任何輸入都不會拋出例外。

    Examples:
        >>> parse_description_rows("Color||Red||Size")
        [DescriptionRow(label='Color', value='Red'), DescriptionRow(label='Size', value='')]
        >>> parse_description_rows("A||&lt;b&gt;bold&lt;/b&gt;")
        [DescriptionRow(label='A', value='<b>bold</b>')]
    """
    lines = split_description_lines(text)
    rows = []
    for i in range(0, len(lines), 2):
        label = lines[i]
        value = lines[i + 1] if i + 1 < len(lines) else ""
        rows.append(DescriptionRow(label, value))
    return rows


def flatten_description(rows: list[DescriptionRow]) -> str:
    """Join rows as ``label: value`` lines for a single wrapped cell."""
    return ROW_BREAK.join(f"{row.label}: {row.value}" for row in rows)


def render_description(text: Optional[str]) -> str:
    """Parse and flatten a description in one call."""
    return flatten_description(parse_description_rows(text))
