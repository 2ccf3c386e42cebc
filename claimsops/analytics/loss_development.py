"""
Loss development — latest triangle point per accident year and metric,
ultimate incurred, and stored-vs-computed loss ratio.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from claimsops.analytics.common import safe_divide
from claimsops.data.normalize import clean_text, parse_currency, parse_integer
from claimsops.data.schemas import LossTriangleSummary, RawRow, TrianglePoint


@dataclass(frozen=True)
class TriangleFieldMap:
    """Source column labels and metric_type values for the triangle export."""
    accident_year: str = "accident_year"
    development_months: str = "development_months"
    metric_type: str = "metric_type"
    amount: str = "amount"

    written_premium: str = "written_premium"
    earned_premium: str = "earned_premium"
    net_paid_loss: str = "net_paid_loss"
    gross_paid: str = "gross_paid"
    salvage_subro: str = "salvage_subro"
    claim_reserves: str = "claim_reserves"
    bulk_ibnr: str = "bulk_ibnr"
    loss_ratio: str = "loss_ratio"
    reported_loss_ratio: str = "reported_loss_ratio"
    paid_alae: str = "paid_alae"
    dcce_reserves: str = "dcce_reserves"


DEFAULT_TRIANGLE_FIELDS = TriangleFieldMap()


def triangle_point_from_row(row: RawRow, fields: TriangleFieldMap = DEFAULT_TRIANGLE_FIELDS) -> Optional[TrianglePoint]:
    """A point needs an accident year; everything else degrades to zero/empty."""
    year = parse_integer(row.get(fields.accident_year), default=-1)
    if year < 0:
        return None
    return TrianglePoint(
        accident_year=year,
        development_months=parse_integer(row.get(fields.development_months)),
        metric_type=clean_text(row.get(fields.metric_type)),
        amount=parse_currency(row.get(fields.amount)),
    )


def triangle_points(rows: Iterable[RawRow], fields: TriangleFieldMap = DEFAULT_TRIANGLE_FIELDS) -> list[TrianglePoint]:
    return [p for p in (triangle_point_from_row(r, fields) for r in rows) if p is not None]


def _latest_by_metric(points: Sequence[TrianglePoint]) -> dict[str, float]:
    """metric_type → amount at the highest development month."""
    best: dict[str, TrianglePoint] = {}
    for p in points:
        cur = best.get(p.metric_type)
        if cur is None or p.development_months > cur.development_months:
            best[p.metric_type] = p
    return {metric: p.amount for metric, p in best.items()}


def summarize_accident_year(
    accident_year: int,
    points: Sequence[TrianglePoint],
    fields: TriangleFieldMap = DEFAULT_TRIANGLE_FIELDS,
) -> LossTriangleSummary:
    latest = _latest_by_metric(points)

    def get(metric: str) -> float:
        return latest.get(metric, 0.0)

    earned = get(fields.earned_premium)
    gross_paid = get(fields.gross_paid)
    salvage = get(fields.salvage_subro)
    stored_net = get(fields.net_paid_loss)
    if stored_net > 0:
        net_paid = stored_net
    elif gross_paid > 0:
        net_paid = gross_paid - salvage
    else:
        net_paid = 0.0

    reserves = get(fields.claim_reserves)
    ibnr = get(fields.bulk_ibnr)
    ultimate = net_paid + reserves + ibnr

    # Actuarially selected ratio wins; compute only when absent or non-positive
    stored_ratio = get(fields.loss_ratio)
    if stored_ratio > 0:
        loss_ratio, ratio_source = stored_ratio, "stored"
    else:
        loss_ratio = safe_divide(ultimate, earned) * 100 if earned > 0 else 0.0
        ratio_source = "computed"

    return LossTriangleSummary(
        accident_year=accident_year,
        written_premium=get(fields.written_premium),
        earned_premium=earned,
        net_paid_loss=net_paid,
        claim_reserves=reserves,
        bulk_ibnr=ibnr,
        loss_ratio=loss_ratio,
        loss_ratio_source=ratio_source,
        reported_loss_ratio=get(fields.reported_loss_ratio),
        gross_paid=gross_paid,
        paid_alae=get(fields.paid_alae),
        salvage_subro=salvage,
        dcce_reserves=get(fields.dcce_reserves),
        ultimate_incurred=ultimate,
        development_age=max((p.development_months for p in points), default=0),
    )


def summarize_loss_development(
    points: Sequence[TrianglePoint],
    fields: TriangleFieldMap = DEFAULT_TRIANGLE_FIELDS,
) -> list[LossTriangleSummary]:
    """One summary per accident year, most recent year first."""
    by_year: dict[int, list[TrianglePoint]] = {}
    for p in points:
        by_year.setdefault(p.accident_year, []).append(p)
    return [
        summarize_accident_year(year, by_year[year], fields)
        for year in sorted(by_year, reverse=True)
    ]
