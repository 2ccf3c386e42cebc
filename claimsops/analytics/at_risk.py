"""
Over-limit at-risk claims — pattern scoring of open BI inventory.

Every BI row is checked against eleven over-limit patterns drawn from historical
over-limit payments. A claim is kept when it matches at least two patterns or
scores at least 40, and is then graded CRITICAL / HIGH / MODERATE.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from claimsops.analytics.intervention import policy_limit_for
from claimsops.config import (
    AGE_BAND_365_PLUS,
    AT_RISK_AGE_DAYS,
    AT_RISK_EVAL_MULTIPLE,
    AT_RISK_MIN_PATTERNS,
    AT_RISK_MIN_SCORE,
    AT_RISK_PATTERNS,
    AT_RISK_RESERVE_RATIO,
    AT_RISK_TRIGGER_COUNT,
    AT_RISK_WEIGHTS,
    BI_STATUS_COLUMNS,
    COVERED_POLICY_TYPE,
    DAYS_OPEN_COLUMNS,
    HIGH_RISK_STATES,
    INJURY_INCIDENT_ALIASES,
    LITIGATION_INDICATOR_COLUMN,
    RISK_LEVEL_CRITICAL_SCORE,
    RISK_LEVEL_HIGH_SCORE,
    STATE_RISK_WEIGHT,
    TRIGGER_TOTAL_COLUMN,
    AtRiskWeights,
)
from claimsops.data.normalize import (
    any_flag,
    clean_text,
    first_present,
    parse_boolean,
    parse_currency,
    parse_integer,
)
from claimsops.data.schemas import (
    AtRiskClaim,
    AtRiskStateTotals,
    AtRiskSummary,
    PatternCount,
    RawRow,
    RiskLevel,
)


def _injury(row: RawRow, column: str) -> bool:
    return any_flag(row, [column, INJURY_INCIDENT_ALIASES[column]])


def risk_level_for(score: int) -> RiskLevel:
    if score >= RISK_LEVEL_CRITICAL_SCORE:
        return RiskLevel.CRITICAL
    if score >= RISK_LEVEL_HIGH_SCORE:
        return RiskLevel.HIGH
    return RiskLevel.MODERATE


def score_claim(row: RawRow, weights: AtRiskWeights = AT_RISK_WEIGHTS) -> Optional[AtRiskClaim]:
    """Score one BI row; None when it is not BI or carries too little risk."""
    coverage = clean_text(row.get("Coverage")).upper()
    if coverage != COVERED_POLICY_TYPE:
        return None

    state = clean_text(row.get("Accident Location State")).upper()
    reserves = parse_currency(row.get("Open Reserves"))
    limit = policy_limit_for(state)
    ratio = reserves / limit if limit > 0 else 0.0
    days = parse_integer(first_present(row, DAYS_OPEN_COLUMNS, "0"))
    age_bucket = clean_text(row.get("Age"))
    high_eval = parse_currency(row.get("High"))
    trigger_total = parse_integer(row.get(TRIGGER_TOTAL_COLUMN))
    in_litigation = "litigation" in clean_text(row.get(LITIGATION_INDICATOR_COLUMN)).lower()
    cp1 = parse_boolean(row.get("Overall CP1 Flag"))

    score = 0
    patterns: list[str] = []
    factors: list[str] = []

    def match(pattern: str, points: int, factor: str) -> None:
        nonlocal score
        score += points
        patterns.append(pattern)
        factors.append(factor)

    if state in HIGH_RISK_STATES:
        match("HIGH_RISK_STATE", STATE_RISK_WEIGHT.get(state, 1) * weights.state_weight_multiplier,
              f"High-risk state: {state}")
    if reserves > 0 and ratio >= AT_RISK_RESERVE_RATIO:
        match("RESERVES_EXCEED_80_PCT", weights.reserves_80_pct, f"Reserves at {ratio * 100:.0f}% of limit")
    if reserves > 0 and reserves > limit:
        match("RESERVES_EXCEED_LIMIT", weights.reserves_over_limit, "Reserves exceed policy limit")
    if in_litigation:
        match("IN_LITIGATION", weights.in_litigation, "Active litigation")
    if cp1:
        match("CP1_FLAG", weights.cp1_flag, "CP1 flagged")
    if days >= AT_RISK_AGE_DAYS or "365+" in age_bucket:
        match("AGE_365_PLUS", weights.age_365_plus, f"{days} days old" if days > 0 else age_bucket or AGE_BAND_365_PLUS)
    if _injury(row, "SURGERY"):
        match("SURGERY_INDICATOR", weights.surgery, "Surgery indicated")
    if _injury(row, "FATALITY"):
        match("FATALITY", weights.fatality, "FATALITY")
    if _injury(row, "HOSPITALIZATION"):
        match("HOSPITALIZATION", weights.hospitalization, "Hospitalization")
    if trigger_total >= AT_RISK_TRIGGER_COUNT:
        match("HIGH_TRIGGER_COUNT", weights.high_trigger_count, f"{trigger_total} aggravating factors")
    if high_eval > limit * AT_RISK_EVAL_MULTIPLE:
        match("HIGH_EVAL_EXCEEDS_LIMIT", weights.high_eval_over_limit,
              f"High eval ${high_eval:,.0f} exceeds limit")

    if len(patterns) < AT_RISK_MIN_PATTERNS and score < AT_RISK_MIN_SCORE:
        return None

    return AtRiskClaim(
        claim_number=clean_text(row.get("Claim#")),
        claimant=clean_text(row.get("Claimant")),
        state=state,
        coverage=coverage,
        reserves=reserves,
        policy_limit=limit,
        reserve_to_limit_ratio=ratio,
        age_bucket=age_bucket,
        days_open=days,
        injury_severity=clean_text(row.get("Injury Severity")),
        in_litigation=in_litigation,
        cp1_flag=cp1,
        type_group=clean_text(row.get("Type Group")),
        evaluation_phase=clean_text(row.get("Evaluation Phase")),
        demand_type=clean_text(row.get("Demand Type")),
        bi_status=clean_text(first_present(row, BI_STATUS_COLUMNS)),
        adjuster=clean_text(row.get("Adjuster Assigned")),
        area_number=clean_text(row.get("Area#")),
        team_group=clean_text(row.get("Team Group")),
        accident_description=clean_text(row.get("Description of Accident")),
        low_eval=parse_currency(row.get("Low")),
        high_eval=high_eval,
        total_paid=parse_currency(row.get("Total Paid")),
        trigger_total=trigger_total,
        pattern_matches=tuple(patterns),
        trigger_factors=tuple(factors),
        risk_score=score,
        risk_level=risk_level_for(score),
    )


def at_risk_claims(rows: Iterable[RawRow], weights: AtRiskWeights = AT_RISK_WEIGHTS) -> list[AtRiskClaim]:
    """Kept claims, highest risk score first (ties keep scan order)."""
    claims = [c for c in (score_claim(r, weights) for r in rows) if c is not None]
    return sorted(claims, key=lambda c: c.risk_score, reverse=True)


def summarize_at_risk(claims: Sequence[AtRiskClaim]) -> AtRiskSummary:
    levels = {level: 0 for level in RiskLevel}
    states: dict[str, AtRiskStateTotals] = {}
    score_sums: dict[str, int] = {}
    patterns: dict[str, int] = {}

    for c in claims:
        levels[c.risk_level] += 1
        if c.state:
            acc = states.setdefault(c.state, AtRiskStateTotals(state=c.state))
            acc.count += 1
            acc.reserves += c.reserves
            score_sums[c.state] = score_sums.get(c.state, 0) + c.risk_score
        for p in c.pattern_matches:
            patterns[p] = patterns.get(p, 0) + 1

    for state, acc in states.items():
        acc.avg_risk_score = score_sums[state] / acc.count

    n = len(claims)
    return AtRiskSummary(
        total_at_risk=n,
        critical_count=levels[RiskLevel.CRITICAL],
        high_count=levels[RiskLevel.HIGH],
        moderate_count=levels[RiskLevel.MODERATE],
        total_exposure=sum(c.reserves for c in claims),
        potential_over_limit=sum(c.reserves - c.policy_limit for c in claims if c.reserves > c.policy_limit),
        avg_risk_score=sum(c.risk_score for c in claims) / n if n else 0.0,
        by_state=sorted(states.values(), key=lambda s: s.count, reverse=True),
        by_pattern=sorted(
            (PatternCount(pattern=p, count=count, description=AT_RISK_PATTERNS.get(p, ""))
             for p, count in patterns.items()),
            key=lambda pc: pc.count,
            reverse=True,
        ),
    )


def claims_by_level(claims: Sequence[AtRiskClaim], level: RiskLevel) -> list[AtRiskClaim]:
    return [c for c in claims if c.risk_level is level]


def claims_by_state(claims: Sequence[AtRiskClaim], state: str) -> list[AtRiskClaim]:
    return [c for c in claims if c.state.upper() == state.upper()]
