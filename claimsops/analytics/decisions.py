"""
Decisions pending — high-reserve claims with no evaluation set.

One engine for every export variant; differing column names are handled by a
DecisionFieldMap rather than parallel copies of the logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from claimsops.config import (
    BI_STATUS_COLUMNS,
    CATEGORY_UNKNOWN,
    DECISION_RESERVE_THRESHOLD,
    PAIN_LEVEL_COLUMNS,
)
from claimsops.data.normalize import (
    clean_text,
    decision_reason,
    first_present,
    pain_level_category,
    parse_currency,
)
from claimsops.data.schemas import DecisionRecord, DecisionsSummary, GroupTotals, RawRow


@dataclass(frozen=True)
class DecisionFieldMap:
    """Column labels (in preference order) for each field the engine reads."""
    claim_number: list[str] = field(default_factory=lambda: ["Claim#"])
    state: list[str] = field(default_factory=lambda: ["Accident Location State"])
    reserves: list[str] = field(default_factory=lambda: ["Open Reserves"])
    low_eval: list[str] = field(default_factory=lambda: ["Low"])
    high_eval: list[str] = field(default_factory=lambda: ["High"])
    pain_level: list[str] = field(default_factory=lambda: list(PAIN_LEVEL_COLUMNS))
    bi_status: list[str] = field(default_factory=lambda: list(BI_STATUS_COLUMNS))
    team: list[str] = field(default_factory=lambda: ["Team Group"])


DEFAULT_FIELD_MAP = DecisionFieldMap()


def decision_from_row(
    row: RawRow,
    fields: DecisionFieldMap = DEFAULT_FIELD_MAP,
    threshold: float = DECISION_RESERVE_THRESHOLD,
) -> Optional[DecisionRecord]:
    """DecisionRecord if the row needs a decision, else None.

    Needs a decision iff reserves >= threshold (inclusive) and low == high == 0.
    """
    reserves = parse_currency(first_present(row, fields.reserves))
    low = parse_currency(first_present(row, fields.low_eval))
    high = parse_currency(first_present(row, fields.high_eval))
    if reserves < threshold or low != 0 or high != 0:
        return None

    pain = clean_text(first_present(row, fields.pain_level)) or CATEGORY_UNKNOWN
    return DecisionRecord(
        claim_number=clean_text(first_present(row, fields.claim_number)),
        state=clean_text(first_present(row, fields.state)),
        pain_level=pain,
        reserves=reserves,
        bi_status=clean_text(first_present(row, fields.bi_status)),
        team=clean_text(first_present(row, fields.team)),
        reason=decision_reason(pain),
        category=pain_level_category(pain),
    )


def decisions_pending(
    rows: Iterable[RawRow],
    fields: DecisionFieldMap = DEFAULT_FIELD_MAP,
    threshold: float = DECISION_RESERVE_THRESHOLD,
) -> DecisionsSummary:
    """Flag, categorize and rank claims awaiting a decision."""
    claims: list[DecisionRecord] = []
    by_pain_level: dict[str, GroupTotals] = {}

    for row in rows:
        rec = decision_from_row(row, fields, threshold)
        if rec is None:
            continue
        claims.append(rec)
        acc = by_pain_level.setdefault(rec.category, GroupTotals())
        acc.count += 1
        acc.reserves += rec.reserves

    # sorted() is stable: equal reserves keep scan order
    claims = sorted(claims, key=lambda c: c.reserves, reverse=True)

    return DecisionsSummary(
        total_count=len(claims),
        total_reserves=sum(c.reserves for c in claims),
        claims=claims,
        by_pain_level=by_pain_level,
    )
