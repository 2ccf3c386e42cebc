"""
Exposure / inventory analytics — age bands, type groups, no-evaluation subset.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from claimsops.analytics.common import records_frame, reserve_groups
from claimsops.config import (
    AGE_BAND_ORDER,
    BI_STATUS_COLUMNS,
    COVERED_POLICY_TYPE,
    DAYS_OPEN_COLUMNS,
    INJURY_INCIDENT_ALIASES,
    LIT_TYPE_GROUP,
)
from claimsops.data.normalize import (
    age_band,
    any_flag,
    clean_text,
    first_present,
    parse_boolean,
    parse_currency,
    parse_integer,
)
from claimsops.data.schemas import ExposureRecord, ExposureSummary, GroupTotals, RawRow


def _injury(row: RawRow, column: str) -> bool:
    labels = [column]
    if column in INJURY_INCIDENT_ALIASES:
        labels.append(INJURY_INCIDENT_ALIASES[column])
    return any_flag(row, labels)


def exposure_record_from_row(row: RawRow) -> ExposureRecord:
    """Coerce one open-exposure export row."""
    days = parse_integer(first_present(row, DAYS_OPEN_COLUMNS, "0"))
    return ExposureRecord(
        claim_number=clean_text(row.get("Claim#")),
        claimant=clean_text(row.get("Claimant")),
        coverage=clean_text(row.get("Coverage")),
        status=clean_text(first_present(row, ["Status", *BI_STATUS_COLUMNS])),
        days_open=days,
        age_band=age_band(days),
        type_group=clean_text(row.get("Type Group")),
        reserves=parse_currency(row.get("Open Reserves")),
        low_eval=parse_currency(row.get("Low")),
        high_eval=parse_currency(row.get("High")),
        overall_cp1=parse_boolean(row.get("Overall CP1 Flag")),
        exposure_category=clean_text(row.get("Exposure Category")),
        evaluation_phase=clean_text(row.get("Evaluation Phase")),
        demand_type=clean_text(row.get("Demand Type")),
        state=clean_text(row.get("Accident Location State")).upper(),
        team_group=clean_text(row.get("Team Group")),
        fatality=_injury(row, "FATALITY"),
        surgery=_injury(row, "SURGERY"),
        hospitalization=_injury(row, "HOSPITALIZATION"),
    )


def exposure_records(rows: Iterable[RawRow]) -> list[ExposureRecord]:
    return [exposure_record_from_row(r) for r in rows]


def summarize_exposure(records: Sequence[ExposureRecord]) -> ExposureSummary:
    """Inventory totals with age-band and type-group breakdowns.

    Age bands are always present (zero-filled) and ordered oldest first.
    """
    df = records_frame(records)
    if df.empty:
        return ExposureSummary(
            total_claims=0, total_reserves=0.0, total_low_eval=0.0, total_high_eval=0.0,
            by_age={band: GroupTotals() for band in AGE_BAND_ORDER},
            by_type_group={}, no_eval_count=0, no_eval_reserves=0.0, lit_count=0,
            cp1_count=0, cp1_reserves=0.0, bi_claims=0, bi_cp1_count=0,
            fatality_count=0, surgery_count=0, hospitalization_count=0,
        )

    seen_age = reserve_groups(df, "age_band")
    by_age = {band: seen_age.get(band, GroupTotals()) for band in AGE_BAND_ORDER}
    by_type_group = reserve_groups(df, "type_group")

    no_eval = df[(df["low_eval"] == 0) & (df["high_eval"] == 0)]
    cp1 = df[df["overall_cp1"]]
    bi = df[df["coverage"].str.upper() == COVERED_POLICY_TYPE]

    return ExposureSummary(
        total_claims=len(df),
        total_reserves=float(df["reserves"].sum()),
        total_low_eval=float(df["low_eval"].sum()),
        total_high_eval=float(df["high_eval"].sum()),
        by_age=by_age,
        by_type_group=by_type_group,
        no_eval_count=len(no_eval),
        no_eval_reserves=float(no_eval["reserves"].sum()),
        lit_count=by_type_group.get(LIT_TYPE_GROUP, GroupTotals()).count,
        cp1_count=len(cp1),
        cp1_reserves=float(cp1["reserves"].sum()),
        bi_claims=len(bi),
        bi_cp1_count=int(bi["overall_cp1"].sum()),
        fatality_count=int(df["fatality"].sum()),
        surgery_count=int(df["surgery"].sum()),
        hospitalization_count=int(df["hospitalization"].sum()),
    )
