"""
Value coercion, column-alias probing, and textual classification.

These functions are the only boundary between untrusted cell text and the
typed records. All of them are total: no input raises.
"""
from __future__ import annotations

import math
import re
from typing import Any, Mapping, Sequence

from claimsops.config import (
    AGE_BANDS,
    AGE_BAND_365_PLUS,
    BLANK_KEY,
    BLANK_MARKERS,
    CATEGORY_HIGH,
    CATEGORY_PENDING,
    CATEGORY_UNDER,
    CATEGORY_UNKNOWN,
    EXPENSE_CATEGORIES,
    EXPENSE_KEYWORDS,
    PAIN_HIGH_MARKER,
    PAIN_LIMITS_VALUE,
    PAIN_PENDING_VALUES,
    PAIN_UNDER_MARKER,
    REASON_DEFAULT,
    REASON_HIGH_PAIN,
    REASON_PENDING,
    TRUTHY_VALUES,
)

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")
_CURRENCY_STRIP_RE = re.compile(r"[\$,\"\s]")


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def parse_currency(text: Any) -> float:
    """Parse an accounting-formatted money cell.

    "$1,234.50" -> 1234.5, "(123.45)" -> -123.45, "" / "(blank)" / garbage -> 0.0
    """
    if text is None or isinstance(text, bool):
        return 0.0
    if isinstance(text, (int, float)):
        return _finite(float(text))

    cleaned = _CURRENCY_STRIP_RE.sub("", str(text))
    if cleaned.lower() in BLANK_MARKERS:
        return 0.0

    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]

    if not _NUMBER_RE.match(cleaned):
        return 0.0
    value = _finite(float(cleaned))
    return -value if negative else value


def parse_boolean(text: Any) -> bool:
    """Yes/Y/True/1 (any case) -> True, everything else -> False."""
    if isinstance(text, bool):
        return text
    if text is None:
        return False
    return str(text).strip().lower() in TRUTHY_VALUES


def parse_integer(text: Any, default: int = 0) -> int:
    """Best-effort integer parse; leading digits win ("12.7" -> 12)."""
    if text is None or isinstance(text, bool):
        return default
    if isinstance(text, int):
        return text
    if isinstance(text, float):
        return int(text) if math.isfinite(text) else default

    cleaned = str(text).replace(",", "").strip()
    m = _LEADING_INT_RE.match(cleaned)
    if not m:
        return default
    return int(m.group(0))


def clean_text(text: Any) -> str:
    """Cell text trimmed, None -> ""."""
    if text is None:
        return ""
    return str(text).strip()


def group_key(text: Any) -> str:
    """Group-by key: trimmed text, blanks collapse to "(blank)"."""
    key = clean_text(text)
    return key or BLANK_KEY


# ---------------------------------------------------------------------------
# Column-alias probing
# ---------------------------------------------------------------------------

def first_present(row: Mapping[str, Any], labels: Sequence[str], default: str = "") -> str:
    """Return the first non-empty value among candidate labels, in order."""
    for label in labels:
        value = row.get(label)
        if value is not None and str(value).strip() != "":
            return str(value)
    return default


def any_flag(row: Mapping[str, Any], labels: Sequence[str]) -> bool:
    """True if any of the candidate labels holds a truthy value."""
    return any(parse_boolean(row.get(label)) for label in labels)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def age_band(days: int) -> str:
    """Bucket claim age into 0-60 / 61-180 / 181-365 / 365+."""
    for upper, label in AGE_BANDS:
        if days <= upper:
            return label
    return AGE_BAND_365_PLUS


def is_expense_category(category: str) -> bool:
    """Line item category is an expense (vs indemnity)."""
    norm = clean_text(category).lower()
    if norm in EXPENSE_CATEGORIES:
        return True
    return any(kw in norm for kw in EXPENSE_KEYWORDS)


def _is_pending_pain(pain: str) -> bool:
    return pain in PAIN_PENDING_VALUES


def _is_high_pain(pain: str) -> bool:
    return PAIN_HIGH_MARKER in pain or pain == PAIN_LIMITS_VALUE


def decision_reason(pain: str) -> str:
    """Why a flagged claim needs a decision — first matching condition wins."""
    if _is_pending_pain(pain):
        return REASON_PENDING
    if _is_high_pain(pain):
        return REASON_HIGH_PAIN
    return REASON_DEFAULT


def pain_level_category(pain: str) -> str:
    """Collapse free-text pain levels into reporting categories."""
    if _is_pending_pain(pain):
        return CATEGORY_PENDING
    if _is_high_pain(pain):
        return CATEGORY_HIGH
    if PAIN_UNDER_MARKER in pain:
        return CATEGORY_UNDER
    return pain or CATEGORY_UNKNOWN
