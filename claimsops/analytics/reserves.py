"""
Weekly rolling reserves — trend summary over week records rebuilt from the workbook.
"""
from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from claimsops.analytics.common import pct_change
from claimsops.config import (
    DEFAULT_RESERVE_LAYOUT,
    RESERVE_MONTH_WEEKS,
    RESERVE_WEEKS_SHOWN,
    RESERVE_YEAR_WEEKS,
)
from claimsops.data.schemas import ReservesRollingSummary, WeeklyReserveRecord


def _weeks_back(ordered: Sequence[WeeklyReserveRecord], n: int) -> Optional[float]:
    if len(ordered) <= n:
        return None
    return ordered[0].total_reserves - ordered[n].total_reserves


def _pct(latest: float, change: Optional[float]) -> Optional[float]:
    return None if change is None else pct_change(latest, latest - change)


def summarize_reserve_weeks(
    weeks: Sequence[WeeklyReserveRecord],
    limit: int = RESERVE_WEEKS_SHOWN,
    layout_version: str = DEFAULT_RESERVE_LAYOUT.version,
    changes: Optional[dict[str, float]] = None,
) -> ReservesRollingSummary:
    """Newest-first weeks with month-over-month and year-over-year reserve changes.

    Changes come from the workbook's change row when it has one; otherwise they
    are computed against the week 4 / 52 weeks back, and are None when the
    workbook does not hold that many weeks.
    """
    ordered = sorted(weeks, key=lambda w: w.week_ending or dt.date.min, reverse=True)
    latest_total = ordered[0].total_reserves if ordered else 0.0

    if changes is not None:
        monthly = changes.get("monthly_change")
        yearly = changes.get("yearly_change")
        source = "workbook"
    else:
        monthly = _weeks_back(ordered, RESERVE_MONTH_WEEKS)
        yearly = _weeks_back(ordered, RESERVE_YEAR_WEEKS)
        source = "computed"

    return ReservesRollingSummary(
        weeks=list(ordered[:limit]),
        latest_total=latest_total,
        latest_label=ordered[0].label if ordered else None,
        monthly_change=monthly,
        monthly_change_pct=_pct(latest_total, monthly),
        yearly_change=yearly,
        yearly_change_pct=_pct(latest_total, yearly),
        change_source=source,
        layout_version=layout_version,
    )
