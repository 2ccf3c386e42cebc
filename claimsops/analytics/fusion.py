"""
Fusion — combine the engine summaries into one UnifiedMetrics view.

Each metric has an ordered list of (source, extractor) pairs. The first source
that is loaded and yields a value wins, and its name is recorded in
provenance. Missing sources contribute zero/empty; fusion never raises.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Optional

from claimsops.data.schemas import (
    DecisionsSummary,
    ExposureSummary,
    GroupTotals,
    RiskSummary,
    SpendSummary,
    UnifiedMetrics,
    WeekOverWeek,
    WeekOverWeekBlock,
)

Extractor = Callable[[Any], Any]


def _risk(fn: Extractor) -> Extractor:
    """Risk extractors yield nothing for an empty CP1 export so exposure can fill in."""
    return lambda r: fn(r) if r.total_claims > 0 else None


def _band(summary: ExposureSummary, band: str) -> GroupTotals:
    return summary.by_age.get(band, GroupTotals())


FIELD_PRECEDENCE: dict[str, list[tuple[str, Extractor]]] = {
    # Inventory: exposure only
    "total_open_claims": [("exposure", lambda e: e.total_claims)],
    "total_reserves": [("exposure", lambda e: e.total_reserves)],
    "total_low_eval": [("exposure", lambda e: e.total_low_eval)],
    "total_high_eval": [("exposure", lambda e: e.total_high_eval)],
    "no_eval_count": [("exposure", lambda e: e.no_eval_count)],
    "no_eval_reserves": [("exposure", lambda e: e.no_eval_reserves)],
    "aged_365_plus": [("exposure", lambda e: _band(e, "365+ Days").count)],
    "aged_365_reserves": [("exposure", lambda e: _band(e, "365+ Days").reserves)],
    "aged_181_to_365": [("exposure", lambda e: _band(e, "181-365 Days").count)],
    "aged_181_reserves": [("exposure", lambda e: _band(e, "181-365 Days").reserves)],
    "aged_61_to_180": [("exposure", lambda e: _band(e, "61-180 Days").count)],
    "aged_under_60": [("exposure", lambda e: _band(e, "Under 60 Days").count)],
    "lit_count": [("exposure", lambda e: e.lit_count)],
    "type_group_data": [("exposure", lambda e: [
        {"type_group": k, "count": v.count, "reserves": v.reserves}
        for k, v in e.by_type_group.items()
    ])],
    # CP1: dedicated CP1 export first, exposure flags as fallback
    "cp1_count": [
        ("risk", _risk(lambda r: r.total_claims)),
        ("exposure", lambda e: e.cp1_count),
    ],
    "cp1_rate": [
        ("risk", _risk(lambda r: r.cp1_rate)),
        ("exposure", lambda e: e.cp1_rate),
    ],
    "bi_cp1_rate": [
        ("risk", _risk(lambda r: r.bi_cp1_rate)),
        ("exposure", lambda e: e.bi_cp1_rate),
    ],
    "cp1_total_reserves": [
        ("risk", _risk(lambda r: r.total_reserves)),
        ("exposure", lambda e: e.cp1_reserves),
    ],
    "cp1_fatalities": [
        ("risk", _risk(lambda r: r.trigger_counts.get("FATALITY", 0))),
        ("exposure", lambda e: e.fatality_count),
    ],
    "cp1_surgeries": [
        ("risk", _risk(lambda r: r.trigger_counts.get("SURGERY", 0))),
        ("exposure", lambda e: e.surgery_count),
    ],
    "cp1_hospitalizations": [
        ("risk", _risk(lambda r: r.trigger_counts.get("HOSPITALIZATION", 0))),
        ("exposure", lambda e: e.hospitalization_count),
    ],
    "cp1_total_flags": [("risk", _risk(lambda r: r.total_flag_instances))],
    # Spend: check history only
    "total_spend": [("spend", lambda s: s.total_net)],
    "indemnity_spend": [("spend", lambda s: s.indemnity_total)],
    "expense_spend": [("spend", lambda s: s.expense_total)],
    "litigation_spend": [("spend", lambda s: s.litigation.total_net)],
    "bi_spend": [("spend", lambda s: s.bi.total_net)],
    "check_count": [("spend", lambda s: s.check_count)],
    "spend_by_dept": [("spend", lambda s: dict(s.by_dept))],
    "spend_by_team": [("spend", lambda s: dict(s.by_team))],
    # Decisions
    "decisions_count": [("decisions", lambda d: d.total_count)],
    "decisions_reserves": [("decisions", lambda d: d.total_reserves)],
}

# Value used when no source yields a field
FIELD_DEFAULTS: dict[str, Any] = {
    "type_group_data": list,
    "spend_by_dept": dict,
    "spend_by_team": dict,
}


def _default(name: str) -> Any:
    factory = FIELD_DEFAULTS.get(name)
    return factory() if factory else 0


def resolve(name: str, sources: dict[str, Any]) -> tuple[Any, Optional[str]]:
    """(value, winning source) for one field; (default, None) if nothing is present."""
    for source, extract in FIELD_PRECEDENCE[name]:
        summary = sources.get(source)
        if summary is None:
            continue
        value = extract(summary)
        if value is not None:
            return value, source
    return _default(name), None


def week_over_week_block(wow: Optional[WeekOverWeek]) -> Optional[WeekOverWeekBlock]:
    if wow is None:
        return None
    return WeekOverWeekBlock(
        claims_delta=wow.total_claims.delta,
        rate_delta=wow.cp1_rate.delta,
        high_risk_delta=wow.high_risk_claims.delta,
        aged_365_delta=wow.age_365_plus.delta,
        prior_date=wow.prior_snapshot_date,
    )


def fuse_metrics(
    exposure: Optional[ExposureSummary] = None,
    risk: Optional[RiskSummary] = None,
    spend: Optional[SpendSummary] = None,
    decisions: Optional[DecisionsSummary] = None,
    week_over_week: Optional[WeekOverWeek] = None,
    as_of: Optional[dt.datetime] = None,
    is_loading: bool = False,
    has_error: bool = False,
) -> UnifiedMetrics:
    """Build UnifiedMetrics from whatever summaries are available.

    Same inputs always give an equal result; as_of is the only caller-supplied time.
    """
    sources = {"exposure": exposure, "risk": risk, "spend": spend, "decisions": decisions}

    values: dict[str, Any] = {}
    provenance: dict[str, str] = {}
    for name in FIELD_PRECEDENCE:
        value, source = resolve(name, sources)
        values[name] = value
        if source is not None:
            provenance[name] = source

    return UnifiedMetrics(
        **values,
        week_over_week=week_over_week_block(week_over_week),
        as_of=as_of,
        is_loading=is_loading,
        has_error=has_error,
        provenance=provenance,
    )
