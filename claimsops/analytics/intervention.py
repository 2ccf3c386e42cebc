"""
Early intervention — rule-based classification and priority scoring of open BI claims.

Each claim is scored against four independent strategies. A claim is kept only
if it matched at least one strategy and carries enough CP1 risk flags; kept
claims then receive jurisdiction and timing bonuses and are ranked by score.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from claimsops.config import (
    ACTIONABLE_DAYS,
    BI_STATUS_COLUMNS,
    COVERED_POLICY_TYPE,
    CP1_TRIGGER_COLUMNS,
    DAYS_OPEN_COLUMNS,
    DEFAULT_BI_LIMIT,
    EARLY_DAYS,
    EXCLUDED_BI_STATUS_KEYWORDS,
    HIGH_RISK_STATES,
    INJURY_INCIDENT_ALIASES,
    INTERVENTION_WEIGHTS,
    LOR_HIGH_RESERVE_PCT,
    LOR_MIN_RESERVE_PCT,
    LOW_MEDS_THRESHOLD,
    MIN_RISK_FLAGS,
    PILOT_STATE,
    RESERVE_CORRECTION_EVAL_MULTIPLE,
    RESERVE_CORRECTION_MAX_PCT,
    STATE_BI_LIMITS,
    TRIGGER_TOTAL_COLUMN,
    InterventionWeights,
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
    InterventionCandidate,
    InterventionStrategy,
    InterventionSummary,
    RawRow,
    StateCount,
)


@dataclass(frozen=True)
class ClaimFacts:
    """Fields derived from one raw row, shared by every strategy rule."""
    row: RawRow
    state: str
    days_open: int
    reserves: float
    policy_limit: float
    reserve_pct: float
    total_meds: float
    liability_clear: bool
    risk_flags: int
    trigger_total: int
    high_eval: float
    has_fatality: bool
    has_surgery: bool
    has_hospitalization: bool
    has_tbi: bool
    has_life_care_planner: bool
    has_demand: bool

    @property
    def is_early(self) -> bool:
        return self.days_open < EARLY_DAYS

    @property
    def is_actionable(self) -> bool:
        return self.days_open < ACTIONABLE_DAYS


def _money(value: float) -> str:
    return f"${value:,.0f}"


def _indicator(row: RawRow, column: str) -> bool:
    return any_flag(row, [column, INJURY_INCIDENT_ALIASES[column]])


def is_covered(row: RawRow) -> bool:
    """Open BI claims only; settled or closed BI statuses are out."""
    if clean_text(row.get("Coverage")).upper() != COVERED_POLICY_TYPE:
        return False
    bi_status = first_present(row, BI_STATUS_COLUMNS).lower()
    return not any(kw in bi_status for kw in EXCLUDED_BI_STATUS_KEYWORDS)


def policy_limit_for(state: str) -> float:
    return float(STATE_BI_LIMITS.get(state, DEFAULT_BI_LIMIT))


def risk_flag_count(row: RawRow) -> tuple[int, int]:
    """(effective count, trigger total). A positive TRIGGER TOTAL wins over counting."""
    trigger_total = parse_integer(row.get(TRIGGER_TOTAL_COLUMN))
    if trigger_total > 0:
        return trigger_total, trigger_total
    return sum(1 for col in CP1_TRIGGER_COLUMNS if parse_boolean(row.get(col))), trigger_total


def derive_facts(row: RawRow) -> ClaimFacts:
    state = clean_text(row.get("Accident Location State")).upper()
    reserves = parse_currency(row.get("Open Reserves"))
    limit = policy_limit_for(state)
    fault = clean_text(row.get("Fault Rating")).lower()
    demand_type = clean_text(row.get("Demand Type")).lower()
    phase = clean_text(row.get("Evaluation Phase")).lower()
    flags, trigger_total = risk_flag_count(row)

    return ClaimFacts(
        row=row,
        state=state,
        days_open=parse_integer(first_present(row, DAYS_OPEN_COLUMNS, "0")),
        reserves=reserves,
        policy_limit=limit,
        reserve_pct=reserves / limit * 100 if limit > 0 else 0.0,
        total_meds=parse_currency(row.get("Total Meds")),
        liability_clear="insured at fault" in fault or fault == "clear",
        risk_flags=flags,
        trigger_total=trigger_total,
        high_eval=parse_currency(row.get("High")),
        has_fatality=_indicator(row, "FATALITY"),
        has_surgery=_indicator(row, "SURGERY"),
        has_hospitalization=_indicator(row, "HOSPITALIZATION"),
        has_tbi=_indicator(row, "LOSS OF CONSCIOUSNESS"),
        has_life_care_planner=_indicator(row, "LIFE CARE PLANNER"),
        has_demand="demand" in demand_type or "demand" in phase or "negotiation" in phase,
    )


# ---------------------------------------------------------------------------
# Strategy rules. Each returns (score, justification) or None
# ---------------------------------------------------------------------------

RuleResult = Optional[tuple[int, str]]


def lor_candidate(f: ClaimFacts, w: InterventionWeights = INTERVENTION_WEIGHTS) -> RuleResult:
    if not (f.liability_clear and f.reserve_pct >= LOR_MIN_RESERVE_PCT
            and f.is_actionable and f.risk_flags >= MIN_RISK_FLAGS):
        return None
    score = w.lor_base
    if f.is_early:
        score += w.lor_early
    if f.reserve_pct >= LOR_HIGH_RESERVE_PCT:
        score += w.lor_high_ratio
    if f.state == PILOT_STATE:
        score += w.lor_pilot
    return score, (
        f"Liability clear with {f.reserve_pct:.0f}% of limit reserved. {f.risk_flags} CP1 flags. "
        f"{f.days_open} days open - early LOR opportunity."
    )


def proactive_negotiation(f: ClaimFacts, w: InterventionWeights = INTERVENTION_WEIGHTS) -> RuleResult:
    serious = f.has_surgery or f.has_hospitalization or f.has_tbi
    if not (serious and f.is_actionable and f.has_demand):
        return None
    score = w.nego_base + (w.nego_early if f.is_early else 0)
    injuries = ", ".join(
        label for label, present in [
            ("Surgery", f.has_surgery), ("Hospitalization", f.has_hospitalization), ("TBI", f.has_tbi),
        ] if present
    )
    return score, f"{injuries} indicated with active demand. {f.days_open} days open - proactive engagement recommended."


def reserve_correction(f: ClaimFacts, w: InterventionWeights = INTERVENTION_WEIGHTS) -> RuleResult:
    if not (f.high_eval > f.policy_limit * RESERVE_CORRECTION_EVAL_MULTIPLE
            and f.reserve_pct < RESERVE_CORRECTION_MAX_PCT):
        return None
    over_pct = (f.high_eval / f.policy_limit - 1) * 100 if f.policy_limit > 0 else 0.0
    return w.reserve_correction, (
        f"High eval {_money(f.high_eval)} exceeds {_money(f.policy_limit)} limit by {over_pct:.0f}%, "
        f"but reserves only at {f.reserve_pct:.0f}%."
    )


def expert_early(f: ClaimFacts, w: InterventionWeights = INTERVENTION_WEIGHTS) -> RuleResult:
    if not ((f.has_fatality or f.has_tbi or f.has_life_care_planner) and f.is_actionable):
        return None
    score = w.expert_base + (w.expert_fatality if f.has_fatality else 0)
    reasons = ", ".join(
        label for label, present in [
            ("Fatality", f.has_fatality), ("TBI/LOC", f.has_tbi), ("Life Care Planner", f.has_life_care_planner),
        ] if present
    )
    return score, f"{reasons} - early expert engagement critical. {f.days_open} days open."


STRATEGY_RULES: list[tuple[InterventionStrategy, Callable[..., RuleResult]]] = [
    (InterventionStrategy.LOR_CANDIDATE, lor_candidate),
    (InterventionStrategy.PROACTIVE_NEGO, proactive_negotiation),
    (InterventionStrategy.RESERVE_CORRECTION, reserve_correction),
    (InterventionStrategy.EXPERT_EARLY, expert_early),
]


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def evaluate_claim(row: RawRow, weights: InterventionWeights = INTERVENTION_WEIGHTS) -> Optional[InterventionCandidate]:
    """Score one covered claim; None if it fails the global gate."""
    f = derive_facts(row)

    strategies: list[InterventionStrategy] = []
    reasoning: list[str] = []
    score = 0
    for strategy, rule in STRATEGY_RULES:
        result = rule(f, weights)
        if result is None:
            continue
        points, reason = result
        strategies.append(strategy)
        reasoning.append(reason)
        score += points

    if not strategies or f.risk_flags < MIN_RISK_FLAGS:
        return None

    if f.state in HIGH_RISK_STATES:
        score += weights.high_risk_state
        reasoning.append(f"High-risk state: {f.state}")
    if InterventionStrategy.LOR_CANDIDATE in strategies and f.total_meds < LOW_MEDS_THRESHOLD:
        score += weights.low_meds_lor
        reasoning.append(f"Low meds ({_money(f.total_meds)}) - optimal LOR timing")

    days_since = clean_text(row.get("Days Since Negotiation Date"))
    days_from_lor = clean_text(row.get("Days From LOR"))

    return InterventionCandidate(
        claim_number=clean_text(row.get("Claim#")),
        claimant=clean_text(row.get("Claimant")),
        state=f.state,
        days_open=f.days_open,
        age_bucket=clean_text(row.get("Age")),
        reserves=f.reserves,
        policy_limit=f.policy_limit,
        reserve_to_limit_pct=f.reserve_pct,
        total_meds=f.total_meds,
        total_paid=parse_currency(row.get("Total Paid")),
        liability_status=clean_text(row.get("Fault Rating")),
        liability_clear=f.liability_clear,
        risk_flag_count=f.risk_flags,
        trigger_total=f.trigger_total,
        evaluation_phase=clean_text(row.get("Evaluation Phase")),
        bi_status=clean_text(first_present(row, BI_STATUS_COLUMNS)),
        demand_type=clean_text(row.get("Demand Type")),
        adjuster=clean_text(row.get("Adjuster Assigned")),
        area_number=clean_text(row.get("Area#")),
        team_group=clean_text(row.get("Team Group")),
        low_eval=parse_currency(row.get("Low")),
        high_eval=f.high_eval,
        strategies=tuple(strategies),
        reasoning=tuple(reasoning),
        priority_score=score,
        has_fatality=f.has_fatality,
        has_surgery=f.has_surgery,
        has_hospitalization=f.has_hospitalization,
        has_tbi=f.has_tbi,
        has_life_care_planner=f.has_life_care_planner,
        last_negotiation_date=clean_text(row.get("Negotiation Date")),
        days_since_negotiation=parse_integer(days_since) or None,
        negotiation_amount=parse_currency(row.get("Negotiation Amount")),
        lor_sent="yes" in clean_text(row.get("LOR")).lower() or bool(days_from_lor),
        lor_date=f"{days_from_lor} days ago" if days_from_lor else "",
    )


def early_intervention_candidates(
    rows: Iterable[RawRow],
    weights: InterventionWeights = INTERVENTION_WEIGHTS,
) -> list[InterventionCandidate]:
    """Retained candidates, highest priority first (ties keep scan order)."""
    candidates = []
    for row in rows:
        if not is_covered(row):
            continue
        candidate = evaluate_claim(row, weights)
        if candidate is not None:
            candidates.append(candidate)
    return sorted(candidates, key=lambda c: c.priority_score, reverse=True)


def summarize_interventions(candidates: Sequence[InterventionCandidate]) -> InterventionSummary:
    by_strategy = {s.value: 0 for s in InterventionStrategy}
    states: dict[str, StateCount] = {}
    pilot = expansion = 0

    for c in candidates:
        for s in c.strategies:
            by_strategy[s.value] += 1
        acc = states.setdefault(c.state, StateCount(state=c.state, count=0, reserves=0.0))
        acc.count += 1
        acc.reserves += c.reserves
        if c.state == PILOT_STATE:
            pilot += 1
        elif c.state in HIGH_RISK_STATES:
            expansion += 1

    n = len(candidates)
    return InterventionSummary(
        total_candidates=n,
        by_strategy=by_strategy,
        by_state=sorted(states.values(), key=lambda s: s.count, reverse=True),
        total_reserves=sum(c.reserves for c in candidates),
        avg_days_open=sum(c.days_open for c in candidates) / n if n else 0.0,
        avg_meds=sum(c.total_meds for c in candidates) / n if n else 0.0,
        pilot_count=pilot,
        expansion_candidates=expansion,
    )


def by_strategy(candidates: Sequence[InterventionCandidate], strategy: InterventionStrategy) -> list[InterventionCandidate]:
    return [c for c in candidates if strategy in c.strategies]


def by_state(candidates: Sequence[InterventionCandidate], state: str) -> list[InterventionCandidate]:
    return [c for c in candidates if c.state.upper() == state.upper()]
