"""Duplicate company detection.

新增客戶帳號前，以「正規化後的公司名稱 + 編輯距離」找出可能重複的帳號。

正規化規則：
1. 轉大寫
2. 移除 ``-`` ``_`` ``.``
3. 合併連續空白並去除前後空白
4. 移除結尾數字（可由 settings 關閉）

Note:
    門檻（預設 2）與「結尾數字一律視為同一公司」屬於業務規則，
    兩者皆可透過 settings 調整。
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional

from ..config import settings
from ..models import CompanyAccount

logger = logging.getLogger(__name__)

DISALLOWED_ABBREVIATIONS = ("INC", "CORP", "LTD", "CO", "LLC")

# 正規化後完全等於這些字的名稱視為無效
INVALID_COMPANY_NAMES = ("NONE", "N/A", "OTHER")
MIN_COMPANY_NAME_LENGTH = 3

_SEPARATOR_PATTERN = re.compile(r"[-_.]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_TRAILING_DIGITS_PATTERN = re.compile(r"\d+$")


def clean_company_name(name: Optional[str], strip_trailing_digits: Optional[bool] = None) -> str:
    """
    正規化公司名稱.

    Examples:
        >>> clean_company_name("  acme-trading  co. 2 ")
        'ACMETRADING CO'
    """
    if not name:
        return ""
    if strip_trailing_digits is None:
        strip_trailing_digits = settings.duplicate_strip_trailing_digits

    normalized = name.upper()
    normalized = _SEPARATOR_PATTERN.sub("", normalized)
    normalized = _WHITESPACE_PATTERN.sub(" ", normalized).strip()
    if strip_trailing_digits:
        normalized = _TRAILING_DIGITS_PATTERN.sub("", normalized).strip()
    return normalized


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert / delete / substitute, each cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def contains_disallowed_abbreviation(name: str) -> bool:
    """公司名稱是否含有獨立的公司型態縮寫（INC, CORP ...）."""
    words = (name or "").upper().split()
    return any(word in DISALLOWED_ABBREVIATIONS for word in words)


def validate_company_name(name: Optional[str]) -> Optional[str]:
    """
    檢查公司名稱是否可用於新增帳號.

    Returns:
        錯誤訊息；名稱可用時為 None
    """
    if len((name or "").strip()) < MIN_COMPANY_NAME_LENGTH:
        return f"Company Name must be at least {MIN_COMPANY_NAME_LENGTH} characters."

    cleaned = clean_company_name(name)
    if cleaned in INVALID_COMPANY_NAMES:
        return "Company Name Invalid."
    if cleaned.startswith("#"):
        return "Company names starting with # require supporting documents."
    return None


def find_similar_companies(
    name: str,
    candidates: Iterable[CompanyAccount],
    threshold: Optional[int] = None,
) -> list[CompanyAccount]:
    """
    找出名稱相近的帳號.

    Args:
        name: 欲新增的公司名稱
        candidates: 既有帳號
        threshold: 最大編輯距離，預設使用 settings

    Returns:
        距離 <= threshold 的帳號（依輸入順序）
    """
    if threshold is None:
        threshold = settings.duplicate_distance_threshold

    cleaned = clean_company_name(name)
    if not cleaned:
        return []
    return [
        account
        for account in candidates
        if levenshtein(cleaned, clean_company_name(account.company_name)) <= threshold
    ]


@dataclass
class DuplicateCheck:
    """重複檢查結果."""

    status: Literal["none", "own", "other"]
    message: str = ""
    matches: list[CompanyAccount] = field(default_factory=list)

    @property
    def exists(self) -> bool:
        return self.status != "none"


def check_duplicate(
    name: str,
    requester_referenceid: Optional[str],
    accounts: Iterable[CompanyAccount],
    threshold: Optional[int] = None,
) -> DuplicateCheck:
    """
    檢查公司是否已存在.

    - 相近帳號屬於其他業務：status="other"
    - 只有自己的帳號相近：status="own"
    - 沒有相近帳號：status="none"
    """
    matches = find_similar_companies(name, accounts, threshold=threshold)
    if not matches:
        return DuplicateCheck(status="none")

    other = next((m for m in matches if m.owner_referenceid != requester_referenceid), None)
    if other is not None:
        logger.info(f"Duplicate company {name!r} owned by {other.owner_referenceid}")
        return DuplicateCheck(
            status="other",
            message=f"Duplicate company owned by another TSA (RefID: {other.owner_referenceid})",
            matches=matches,
        )

    return DuplicateCheck(
        status="own",
        message=f'Possible duplicate detected (owned by you): "{matches[0].company_name}"',
        matches=matches,
    )
