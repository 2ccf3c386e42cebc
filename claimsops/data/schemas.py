"""
Typed records, summary aggregates, and the consumer-facing load state.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

RawRow = dict[str, str]

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Consumer contract
# ---------------------------------------------------------------------------

@dataclass
class LoadState(Generic[T]):
    """What every engine exposes: data is None until available, never "empty"."""
    data: Optional[T] = None
    loading: bool = True
    error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.data is not None


# ---------------------------------------------------------------------------
# Group-by accumulators
# ---------------------------------------------------------------------------

@dataclass
class GroupTotals:
    count: int = 0
    reserves: float = 0.0


@dataclass
class SpendTotals:
    gross: float = 0.0
    net: float = 0.0
    count: int = 0


# ---------------------------------------------------------------------------
# Exposure / inventory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExposureRecord:
    claim_number: str
    claimant: str
    coverage: str
    status: str
    days_open: int
    age_band: str
    type_group: str
    reserves: float
    low_eval: float
    high_eval: float
    overall_cp1: bool
    exposure_category: str
    evaluation_phase: str
    demand_type: str
    state: str
    team_group: str
    fatality: bool = False
    surgery: bool = False
    hospitalization: bool = False


@dataclass
class ExposureSummary:
    total_claims: int
    total_reserves: float
    total_low_eval: float
    total_high_eval: float
    by_age: dict[str, GroupTotals]
    by_type_group: dict[str, GroupTotals]
    no_eval_count: int
    no_eval_reserves: float
    lit_count: int
    cp1_count: int
    cp1_reserves: float
    bi_claims: int
    bi_cp1_count: int
    fatality_count: int
    surgery_count: int
    hospitalization_count: int

    @property
    def cp1_rate(self) -> float:
        return self.cp1_count / self.total_claims * 100 if self.total_claims else 0.0

    @property
    def bi_cp1_rate(self) -> float:
        return self.bi_cp1_count / self.bi_claims * 100 if self.bi_claims else 0.0


# ---------------------------------------------------------------------------
# Spend / check history
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckRecord:
    issue_date: str
    check_id: str
    draft_number: str
    requesting_adjuster: str
    assigned_adjuster: str
    assigned_team: str
    assigned_dept: str
    exposure: str
    coverage: str
    status: str
    exposure_category: str
    gross_check: float
    deductible: float
    net_amount: float
    pay_to: str
    line_item_category: str
    cleared_date: Optional[str] = None


@dataclass
class SpendSlice:
    total_gross: float = 0.0
    total_net: float = 0.0
    check_count: int = 0
    indemnity_total: float = 0.0
    expense_total: float = 0.0
    by_team: dict[str, SpendTotals] = field(default_factory=dict)


@dataclass
class SpendSummary:
    total_gross: float
    total_net: float
    check_count: int
    indemnity_total: float
    expense_total: float
    by_coverage: dict[str, SpendTotals]
    by_dept: dict[str, SpendTotals]
    by_team: dict[str, SpendTotals]
    by_category: dict[str, SpendTotals]
    by_line_item: dict[str, SpendTotals]
    litigation: SpendSlice = field(default_factory=SpendSlice)
    bi: SpendSlice = field(default_factory=SpendSlice)


# ---------------------------------------------------------------------------
# Decisions pending
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DecisionRecord:
    claim_number: str
    state: str
    pain_level: str
    reserves: float
    bi_status: str
    team: str
    reason: str
    category: str


@dataclass
class DecisionsSummary:
    total_count: int
    total_reserves: float
    claims: list[DecisionRecord]
    by_pain_level: dict[str, GroupTotals]


# ---------------------------------------------------------------------------
# CP1 / risk
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RiskClaim:
    claim_number: str
    claimant: str
    coverage: str
    days: int
    age_bucket: str
    type_group: str
    team_group: str
    adjuster: str
    impact_severity: str
    open_reserves: float
    total_paid: float
    overall_cp1: str
    bi_status: str
    evaluation_phase: str
    claimant_age: int
    end_pain_level: Optional[float]
    triggers: dict[str, bool]   # the eleven named trigger columns
    factors: dict[str, bool]    # additional CP1 methodology factors

    @property
    def flag_count(self) -> int:
        return sum(self.triggers.values()) + sum(self.factors.values())


@dataclass
class MultiFlagGroup:
    flag_count: int
    label: str
    claim_count: int
    claim_numbers: list[str]


@dataclass
class RiskSnapshot:
    """Point-in-time CP1 metrics used for week-over-week comparison."""
    snapshot_date: Optional[dt.date]
    total_claims: int
    cp1_rate: float
    bi_claims: int
    total_reserves: float
    total_flags: int
    high_risk_claims: int
    age_365_plus: int
    age_181_365: int
    age_61_180: int
    age_under_60: int


@dataclass
class RiskSummary:
    total_claims: int
    total_reserves: float
    cp1_rate: float
    by_coverage: dict[str, GroupTotals]
    bi_claims: int
    trigger_counts: dict[str, int]
    factor_counts: dict[str, int]
    total_flag_instances: int
    multi_flag_groups: list[MultiFlagGroup]
    high_risk_claims: int
    by_age: dict[str, int]
    in_progress: int
    settled: int
    claims: list[RiskClaim] = field(default_factory=list)

    @property
    def bi_cp1_rate(self) -> float:
        return 100.0 if self.bi_claims else 0.0


@dataclass
class MetricDelta:
    current: float
    prior: float
    delta: float
    pct_change: float


@dataclass
class WeekOverWeek:
    total_claims: MetricDelta
    cp1_rate: MetricDelta
    total_reserves: MetricDelta
    total_flags: MetricDelta
    high_risk_claims: MetricDelta
    age_365_plus: MetricDelta
    age_181_365: MetricDelta
    prior_snapshot_date: Optional[dt.date]


# ---------------------------------------------------------------------------
# Loss development
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrianglePoint:
    accident_year: int
    development_months: int
    metric_type: str
    amount: float


@dataclass
class LossTriangleSummary:
    accident_year: int
    written_premium: float
    earned_premium: float
    net_paid_loss: float
    claim_reserves: float
    bulk_ibnr: float
    loss_ratio: float
    loss_ratio_source: str          # "stored" | "computed"
    reported_loss_ratio: float
    gross_paid: float
    paid_alae: float
    salvage_subro: float
    dcce_reserves: float
    ultimate_incurred: float
    development_age: int


# ---------------------------------------------------------------------------
# Weekly rolling reserves (workbook)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeeklyReserveRecord:
    label: str
    week_ending: Optional[dt.date]
    total_reserves: float
    total_features: float
    weekly_change: float
    weekly_feature_change: float
    lbi_reserves: float
    dcce_reserves: float
    lpd_reserves: float
    col_reserves: float
    umbi_reserves: float


@dataclass
class ReservesRollingSummary:
    weeks: list[WeeklyReserveRecord]
    latest_total: float
    latest_label: Optional[str]
    monthly_change: Optional[float]
    monthly_change_pct: Optional[float]
    yearly_change: Optional[float]
    yearly_change_pct: Optional[float]
    change_source: str              # "workbook" | "computed"
    layout_version: str


# ---------------------------------------------------------------------------
# Over-limit at-risk claims
# ---------------------------------------------------------------------------

class RiskLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"


@dataclass(frozen=True)
class AtRiskClaim:
    claim_number: str
    claimant: str
    state: str
    coverage: str
    reserves: float
    policy_limit: float
    reserve_to_limit_ratio: float
    age_bucket: str
    days_open: int
    injury_severity: str
    in_litigation: bool
    cp1_flag: bool
    type_group: str
    evaluation_phase: str
    demand_type: str
    bi_status: str
    adjuster: str
    area_number: str
    team_group: str
    accident_description: str
    low_eval: float
    high_eval: float
    total_paid: float
    trigger_total: int
    pattern_matches: tuple[str, ...]
    trigger_factors: tuple[str, ...]
    risk_score: int
    risk_level: RiskLevel


@dataclass
class AtRiskStateTotals:
    state: str
    count: int = 0
    reserves: float = 0.0
    avg_risk_score: float = 0.0


@dataclass
class PatternCount:
    pattern: str
    count: int
    description: str


@dataclass
class AtRiskSummary:
    total_at_risk: int
    critical_count: int
    high_count: int
    moderate_count: int
    total_exposure: float
    potential_over_limit: float
    avg_risk_score: float
    by_state: list[AtRiskStateTotals]
    by_pattern: list[PatternCount]


# ---------------------------------------------------------------------------
# Statute of limitations
# ---------------------------------------------------------------------------

class SolCategory(str, Enum):
    BREACHED = "breached"
    APPROACHING = "approaching"


@dataclass(frozen=True)
class SolClaim:
    claim_number: str
    state: str
    exposure_created: str           # verbatim export text
    sol_years: int
    sol_expiry_date: dt.date
    days_until_expiry: int          # negative once breached
    category: SolCategory
    bi_status: str
    reserves: float
    type_group: str
    team_group: str
    team_number: str
    exposure_category: str


@dataclass
class SolBreachSummary:
    as_of: dt.date
    breached: list[SolClaim]
    approaching: list[SolClaim]
    breached_count: int
    approaching_count: int
    breached_total: float
    approaching_total: float
    combined_total: float
    total_pending_count: int
    by_state: dict[str, GroupTotals]    # breached claims only


# ---------------------------------------------------------------------------
# Early intervention
# ---------------------------------------------------------------------------

class InterventionStrategy(str, Enum):
    LOR_CANDIDATE = "LOR_CANDIDATE"            # liability clear + near limits + early
    PROACTIVE_NEGO = "PROACTIVE_NEGO"          # serious injury + early + active demand
    RESERVE_CORRECTION = "RESERVE_CORRECTION"  # high eval over limit, reserves low
    EXPERT_EARLY = "EXPERT_EARLY"              # fatality / LOC / life care planner


@dataclass(frozen=True)
class InterventionCandidate:
    claim_number: str
    claimant: str
    state: str
    days_open: int
    age_bucket: str
    reserves: float
    policy_limit: float
    reserve_to_limit_pct: float
    total_meds: float
    total_paid: float
    liability_status: str
    liability_clear: bool
    risk_flag_count: int
    trigger_total: int
    evaluation_phase: str
    bi_status: str
    demand_type: str
    adjuster: str
    area_number: str
    team_group: str
    low_eval: float
    high_eval: float
    strategies: tuple[InterventionStrategy, ...]
    reasoning: tuple[str, ...]
    priority_score: int
    has_fatality: bool
    has_surgery: bool
    has_hospitalization: bool
    has_tbi: bool
    has_life_care_planner: bool
    last_negotiation_date: str
    days_since_negotiation: Optional[int]
    negotiation_amount: float
    lor_sent: bool
    lor_date: str

    @property
    def primary_strategy(self) -> InterventionStrategy:
        return self.strategies[0]


@dataclass
class StateCount:
    state: str
    count: int
    reserves: float


@dataclass
class InterventionSummary:
    total_candidates: int
    by_strategy: dict[str, int]
    by_state: list[StateCount]
    total_reserves: float
    avg_days_open: float
    avg_meds: float
    pilot_count: int
    expansion_candidates: int


# ---------------------------------------------------------------------------
# Fusion output
# ---------------------------------------------------------------------------

@dataclass
class WeekOverWeekBlock:
    claims_delta: float
    rate_delta: float
    high_risk_delta: float
    aged_365_delta: float
    prior_date: Optional[dt.date]


@dataclass
class UnifiedMetrics:
    # Inventory
    total_open_claims: int
    total_reserves: float
    total_low_eval: float
    total_high_eval: float
    no_eval_count: int
    no_eval_reserves: float
    aged_365_plus: int
    aged_365_reserves: float
    aged_181_to_365: int
    aged_181_reserves: float
    aged_61_to_180: int
    aged_under_60: int
    # CP1
    cp1_count: int
    cp1_rate: float
    bi_cp1_rate: float
    cp1_total_reserves: float
    cp1_fatalities: int
    cp1_surgeries: int
    cp1_hospitalizations: int
    cp1_total_flags: int
    week_over_week: Optional[WeekOverWeekBlock]
    # Spend
    total_spend: float
    indemnity_spend: float
    expense_spend: float
    litigation_spend: float
    bi_spend: float
    check_count: int
    spend_by_dept: dict[str, SpendTotals]
    spend_by_team: dict[str, SpendTotals]
    # Decisions
    decisions_count: int
    decisions_reserves: float
    # Type groups
    lit_count: int
    type_group_data: list[dict]
    # Freshness
    as_of: Optional[dt.datetime]
    is_loading: bool = False
    has_error: bool = False
    provenance: dict[str, str] = field(default_factory=dict)
