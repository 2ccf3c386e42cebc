"""
Spend analytics — check history split into indemnity vs expense, five group-bys.
"""
from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd

from claimsops.analytics.common import records_frame, spend_groups
from claimsops.config import COVERED_POLICY_TYPE, LITIGATION_DEPT_CODE, LITIGATION_DEPT_KEYWORD
from claimsops.data.normalize import clean_text, is_expense_category, parse_currency
from claimsops.data.schemas import CheckRecord, RawRow, SpendSlice, SpendSummary


def check_record_from_row(row: RawRow) -> CheckRecord:
    return CheckRecord(
        issue_date=clean_text(row.get("Issue Date")),
        check_id=clean_text(row.get("Check ID")),
        draft_number=clean_text(row.get("Draft #")),
        requesting_adjuster=clean_text(row.get("Requesting Adjuster")),
        assigned_adjuster=clean_text(row.get("Assigned Adjuster")),
        assigned_team=clean_text(row.get("Assigned Team")),
        assigned_dept=clean_text(row.get("Assigned Dept")),
        exposure=clean_text(row.get("Exposure")),
        coverage=clean_text(row.get("Coverage")),
        status=clean_text(row.get("Status")),
        exposure_category=clean_text(row.get("Exposure Category")),
        gross_check=parse_currency(row.get("Gross Check")),
        deductible=parse_currency(row.get("Deductible")),
        net_amount=parse_currency(row.get("Net Amount")),
        pay_to=clean_text(row.get("Pay To")),
        line_item_category=clean_text(row.get("Line Item Category")),
        cleared_date=clean_text(row.get("Cleared Date")) or None,
    )


def check_records(rows: Iterable[RawRow]) -> list[CheckRecord]:
    return [check_record_from_row(r) for r in rows]


def _with_expense_flag(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["is_expense"] = df["line_item_category"].map(is_expense_category).astype(bool)
    return df


def _split_totals(df: pd.DataFrame) -> tuple[float, float]:
    """(indemnity_total, expense_total) on net amount."""
    expense = float(df.loc[df["is_expense"], "net_amount"].sum())
    indemnity = float(df.loc[~df["is_expense"], "net_amount"].sum())
    return indemnity, expense


def _slice(df: pd.DataFrame, with_teams: bool = False) -> SpendSlice:
    if df.empty:
        return SpendSlice()
    indemnity, expense = _split_totals(df)
    return SpendSlice(
        total_gross=float(df["gross_check"].sum()),
        total_net=float(df["net_amount"].sum()),
        check_count=len(df),
        indemnity_total=indemnity,
        expense_total=expense,
        by_team=spend_groups(df, "assigned_team") if with_teams else {},
    )


def summarize_spend(records: Sequence[CheckRecord]) -> SpendSummary:
    """Company-wide spend totals plus litigation and BI slices."""
    df = records_frame(records)
    if df.empty:
        return SpendSummary(
            total_gross=0.0, total_net=0.0, check_count=0,
            indemnity_total=0.0, expense_total=0.0,
            by_coverage={}, by_dept={}, by_team={}, by_category={}, by_line_item={},
        )

    df = _with_expense_flag(df)
    indemnity, expense = _split_totals(df)

    dept = df["assigned_dept"].str.upper()
    lit = df[dept.str.contains(LITIGATION_DEPT_KEYWORD, regex=False) | (dept == LITIGATION_DEPT_CODE)]
    bi = df[df["coverage"].str.upper() == COVERED_POLICY_TYPE]

    return SpendSummary(
        total_gross=float(df["gross_check"].sum()),
        total_net=float(df["net_amount"].sum()),
        check_count=len(df),
        indemnity_total=indemnity,
        expense_total=expense,
        by_coverage=spend_groups(df, "coverage"),
        by_dept=spend_groups(df, "assigned_dept"),
        by_team=spend_groups(df, "assigned_team"),
        by_category=spend_groups(df, "exposure_category"),
        by_line_item=spend_groups(df, "line_item_category"),
        litigation=_slice(lit, with_teams=True),
        bi=_slice(bi),
    )
