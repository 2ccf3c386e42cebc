"""
Statute-of-limitations review — breached and approaching SOL deadlines.

The deadline is the exposure create date plus the accident state's SOL in
years. Only BI statuses still exposed to a suit are checked.
"""
from __future__ import annotations

import datetime as dt
import re
from typing import Iterable, Optional

from claimsops.config import (
    BI_STATUS_COLUMNS,
    EXPOSURE_CREATE_DATE_COLUMN,
    EXPOSURE_CREATE_DATE_FORMATS,
    SOL_APPROACHING_DAYS,
    SOL_TRACKED_BI_STATUSES,
    STATE_SOL,
)
from claimsops.data.normalize import clean_text, first_present, parse_currency
from claimsops.data.schemas import GroupTotals, RawRow, SolBreachSummary, SolCategory, SolClaim

_TEAM_NUMBER_RE = re.compile(r"\b(\d{1,3})\b")


def parse_create_date(text) -> Optional[dt.date]:
    """Exposure create date in M/D/YY, M/D/YYYY or ISO form; None if unparseable."""
    value = clean_text(text)
    if not value:
        return None
    for fmt in EXPOSURE_CREATE_DATE_FORMATS:
        try:
            return dt.datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def add_years(date: dt.date, years: int) -> dt.date:
    """Same calendar day `years` later; Feb 29 falls back to Feb 28."""
    try:
        return date.replace(year=date.year + years)
    except ValueError:
        return date.replace(year=date.year + years, day=28)


def team_number(team_group: str) -> str:
    m = _TEAM_NUMBER_RE.search(team_group)
    return m.group(1) if m else ""


def sol_claim_from_row(row: RawRow, as_of: dt.date) -> Optional[SolClaim]:
    """SOL position of one row, or None when untracked, in the clear, or undatable."""
    bi_status = clean_text(first_present(row, BI_STATUS_COLUMNS))
    if bi_status not in SOL_TRACKED_BI_STATUSES:
        return None

    state = clean_text(row.get("Accident Location State")).upper()
    years = STATE_SOL.get(state)
    if not years:
        return None
    created_text = clean_text(row.get(EXPOSURE_CREATE_DATE_COLUMN))
    created = parse_create_date(created_text)
    if created is None:
        return None

    expiry = add_years(created, years)
    if expiry < as_of:
        category = SolCategory.BREACHED
    elif expiry < as_of + dt.timedelta(days=SOL_APPROACHING_DAYS):
        category = SolCategory.APPROACHING
    else:
        return None

    team_group = clean_text(row.get("Team Group"))
    return SolClaim(
        claim_number=clean_text(row.get("Claim#")),
        state=state,
        exposure_created=created_text,
        sol_years=years,
        sol_expiry_date=expiry,
        days_until_expiry=(expiry - as_of).days,
        category=category,
        bi_status=bi_status,
        reserves=parse_currency(row.get("Open Reserves")),
        type_group=clean_text(row.get("Type Group")),
        team_group=team_group,
        team_number=team_number(team_group),
        exposure_category=clean_text(row.get("Exposure Category")),
    )


def sol_breach_analysis(rows: Iterable[RawRow], as_of: dt.date) -> SolBreachSummary:
    """Breached and approaching SOL claims in scan order, with reserve totals."""
    breached: list[SolClaim] = []
    approaching: list[SolClaim] = []
    by_state: dict[str, GroupTotals] = {}

    for row in rows:
        claim = sol_claim_from_row(row, as_of)
        if claim is None:
            continue
        if claim.category is SolCategory.BREACHED:
            breached.append(claim)
            acc = by_state.setdefault(claim.state, GroupTotals())
            acc.count += 1
            acc.reserves += claim.reserves
        else:
            approaching.append(claim)

    breached_total = sum(c.reserves for c in breached)
    approaching_total = sum(c.reserves for c in approaching)
    return SolBreachSummary(
        as_of=as_of,
        breached=breached,
        approaching=approaching,
        breached_count=len(breached),
        approaching_count=len(approaching),
        breached_total=breached_total,
        approaching_total=approaching_total,
        combined_total=breached_total + approaching_total,
        total_pending_count=len(breached) + len(approaching),
        by_state=by_state,
    )
