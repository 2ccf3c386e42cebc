"""
CP1 risk analytics — workable CP1 claims, trigger counts, multi-flag groups,
and week-over-week comparison against a prior snapshot.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Iterable, Optional, Sequence

from claimsops.analytics.common import records_frame, reserve_groups
from claimsops.config import (
    AGE_BAND_ORDER,
    CP1_TRIGGER_COLUMNS,
    DAYS_OPEN_COLUMNS,
    EGGSHELL_AGE,
    HIGH_RISK_FLAG_THRESHOLD,
    NON_WORKABLE_STATUSES,
    PAIN_LEVEL_HIGH,
    SNAPSHOT_LOOKBACK_DAYS,
)
from claimsops.data.normalize import (
    age_band,
    clean_text,
    first_present,
    parse_boolean,
    parse_currency,
    parse_integer,
)
from claimsops.data.schemas import (
    MetricDelta,
    MultiFlagGroup,
    RawRow,
    RiskClaim,
    RiskSnapshot,
    RiskSummary,
    WeekOverWeek,
)

# Additional CP1 methodology factors read from "Injury Incident" columns
FACTOR_COLUMNS = {
    "confirmed_fractures": "Injury Incident - Confirmed Fractures",
    "lacerations": "Injury Incident - Lacerations",
    "surgical_recommendation": "Injury Incident - Prior Surgery",
    "pregnancy": "Injury Incident - Pregnancy",
}

# Substring of the lowercase age bucket → canonical band
_AGE_BUCKET_MATCH = [
    ("365+", "365+ Days"),
    ("181", "181-365 Days"),
    ("61-180", "61-180 Days"),
    ("under 60", "Under 60 Days"),
]


def _optional_number(text) -> Optional[float]:
    s = clean_text(text)
    if not s:
        return None
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def is_non_workable(row: RawRow) -> bool:
    """Settled, SPD and limits-tendered claims are not workable CP1 inventory."""
    status = clean_text(row.get("Status")).lower()
    bi_status = clean_text(row.get("BI Status")).lower()
    phase = clean_text(row.get("Evaluation Phase")).lower()

    if status in NON_WORKABLE_STATUSES or bi_status in NON_WORKABLE_STATUSES:
        return True
    if "limits tendered cp1" in phase:
        return True
    if "settled" in status or "settled" in bi_status:
        return True
    if "spd" in status or "spd" in bi_status:
        return True
    return False


def _canonical_age(bucket: str, days: int) -> str:
    lower = bucket.lower()
    for needle, band in _AGE_BUCKET_MATCH:
        if needle in lower:
            return band
    return age_band(days) if not bucket else bucket


def risk_claim_from_row(row: RawRow) -> RiskClaim:
    days = parse_integer(first_present(row, DAYS_OPEN_COLUMNS, "0"))
    claimant_age = parse_integer(row.get("Claimant Age"))
    end_pain = _optional_number(row.get("End Pain Level"))

    factors = {name: parse_boolean(row.get(col)) for name, col in FACTOR_COLUMNS.items()}
    factors["pain_level_5_plus"] = end_pain is not None and end_pain >= PAIN_LEVEL_HIGH
    factors["eggshell_69_plus"] = claimant_age >= EGGSHELL_AGE

    return RiskClaim(
        claim_number=clean_text(row.get("Claim#")),
        claimant=clean_text(row.get("Claimant")),
        coverage=clean_text(row.get("Coverage")),
        days=days,
        age_bucket=_canonical_age(clean_text(row.get("Age")), days),
        type_group=clean_text(row.get("Type Group")),
        team_group=clean_text(row.get("Team Group")),
        adjuster=clean_text(row.get("Adjuster Assigned")),
        impact_severity=clean_text(row.get("Impact Severity")),
        open_reserves=parse_currency(row.get("Open Reserves")),
        total_paid=parse_currency(row.get("Total Paid")),
        overall_cp1=clean_text(row.get("Overall CP1 Flag")),
        bi_status=clean_text(row.get("BI Status")),
        evaluation_phase=clean_text(row.get("Evaluation Phase")),
        claimant_age=claimant_age,
        end_pain_level=end_pain,
        triggers={col: parse_boolean(row.get(col)) for col in CP1_TRIGGER_COLUMNS},
        factors=factors,
    )


def risk_claims(rows: Iterable[RawRow]) -> list[RiskClaim]:
    """Workable CP1 claims from the CP1 analysis export."""
    return [risk_claim_from_row(r) for r in rows if not is_non_workable(r)]


def _flag_label(count: int) -> str:
    return "1 Flag" if count == 1 else f"{count} Flags"


def summarize_risk(claims: Sequence[RiskClaim]) -> RiskSummary:
    """CP1 inventory summary. Every row of this export is a CP1 claim."""
    total = len(claims)
    df = records_frame(claims)

    groups: dict[int, list[str]] = {}
    for c in claims:
        groups.setdefault(c.flag_count, []).append(c.claim_number)
    multi_flag = [
        MultiFlagGroup(flag_count=n, label=_flag_label(n), claim_count=len(ids), claim_numbers=ids)
        for n, ids in sorted(groups.items(), key=lambda kv: kv[0], reverse=True)
    ]

    by_age = {band: 0 for band in AGE_BAND_ORDER}
    for c in claims:
        if c.age_bucket in by_age:
            by_age[c.age_bucket] += 1

    return RiskSummary(
        total_claims=total,
        total_reserves=float(df["open_reserves"].sum()) if total else 0.0,
        cp1_rate=100.0 if total else 0.0,
        by_coverage=reserve_groups(df, "coverage", "open_reserves"),
        bi_claims=sum(1 for c in claims if c.coverage.lower() == "bi"),
        trigger_counts={col: sum(1 for c in claims if c.triggers[col]) for col in CP1_TRIGGER_COLUMNS},
        factor_counts={
            name: sum(1 for c in claims if c.factors.get(name))
            for name in [*FACTOR_COLUMNS, "pain_level_5_plus", "eggshell_69_plus"]
        },
        total_flag_instances=sum(c.flag_count for c in claims),
        multi_flag_groups=multi_flag,
        high_risk_claims=sum(1 for c in claims if c.flag_count >= HIGH_RISK_FLAG_THRESHOLD),
        by_age=by_age,
        in_progress=sum(1 for c in claims if c.bi_status.lower() == "in progress"),
        settled=sum(1 for c in claims if "settled" in c.bi_status.lower()),
        claims=list(claims),
    )


# ---------------------------------------------------------------------------
# Snapshots & week-over-week
# ---------------------------------------------------------------------------

def risk_snapshot(summary: RiskSummary, snapshot_date: Optional[dt.date] = None) -> RiskSnapshot:
    return RiskSnapshot(
        snapshot_date=snapshot_date,
        total_claims=summary.total_claims,
        cp1_rate=summary.cp1_rate,
        bi_claims=summary.bi_claims,
        total_reserves=summary.total_reserves,
        total_flags=summary.total_flag_instances,
        high_risk_claims=summary.high_risk_claims,
        age_365_plus=summary.by_age.get("365+ Days", 0),
        age_181_365=summary.by_age.get("181-365 Days", 0),
        age_61_180=summary.by_age.get("61-180 Days", 0),
        age_under_60=summary.by_age.get("Under 60 Days", 0),
    )


def _parse_iso_date(text) -> Optional[dt.date]:
    try:
        return dt.date.fromisoformat(clean_text(text)[:10])
    except ValueError:
        return None


def snapshot_from_row(row: RawRow) -> Optional[RiskSnapshot]:
    """Snapshot from a history export row; rows without a valid date are skipped."""
    snapshot_date = _parse_iso_date(row.get("snapshot_date"))
    if snapshot_date is None:
        return None
    return RiskSnapshot(
        snapshot_date=snapshot_date,
        total_claims=parse_integer(row.get("total_claims")),
        cp1_rate=parse_currency(row.get("cp1_rate")),
        bi_claims=parse_integer(row.get("bi_claims")),
        total_reserves=parse_currency(row.get("total_reserves")),
        total_flags=parse_integer(row.get("total_flags")),
        high_risk_claims=parse_integer(row.get("high_risk_claims")),
        age_365_plus=parse_integer(row.get("age_365_plus")),
        age_181_365=parse_integer(row.get("age_181_365")),
        age_61_180=parse_integer(row.get("age_61_180")),
        age_under_60=parse_integer(row.get("age_under_60")),
    )


def select_prior_snapshot(rows: Iterable[RawRow], as_of: dt.date) -> Optional[RiskSnapshot]:
    """Most recent snapshot taken at least a week before as_of."""
    cutoff = as_of - dt.timedelta(days=SNAPSHOT_LOOKBACK_DAYS)
    candidates = [s for s in (snapshot_from_row(r) for r in rows) if s and s.snapshot_date <= cutoff]
    if not candidates:
        return None
    return max(candidates, key=lambda s: s.snapshot_date)


def _change_pct(current: float, prior: float) -> float:
    if prior == 0:
        return 100.0 if current > 0 else 0.0
    return (current - prior) / prior * 100


def _delta(current: float, prior: float) -> MetricDelta:
    return MetricDelta(current=current, prior=prior, delta=current - prior, pct_change=_change_pct(current, prior))


def week_over_week(current: RiskSnapshot, prior: Optional[RiskSnapshot]) -> Optional[WeekOverWeek]:
    """Deltas vs prior snapshot, or None when there is no valid prior."""
    if prior is None:
        return None
    return WeekOverWeek(
        total_claims=_delta(current.total_claims, prior.total_claims),
        cp1_rate=_delta(current.cp1_rate, prior.cp1_rate),
        total_reserves=_delta(current.total_reserves, prior.total_reserves),
        total_flags=_delta(current.total_flags, prior.total_flags),
        high_risk_claims=_delta(current.high_risk_claims, prior.high_risk_claims),
        age_365_plus=_delta(current.age_365_plus, prior.age_365_plus),
        age_181_365=_delta(current.age_181_365, prior.age_181_365),
        prior_snapshot_date=prior.snapshot_date,
    )
