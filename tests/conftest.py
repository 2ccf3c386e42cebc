"""
Shared fixtures — raw row builders and on-disk source files.
"""
import datetime as dt
import io

import pandas as pd
import pytest
from loguru import logger
from openpyxl import Workbook

from claimsops.api.dependencies import set_store

AS_OF = dt.datetime(2026, 1, 15, 9, 0)


def exposure_row(**overrides) -> dict:
    """Open-exposure export row with every column the engines read."""
    row = {
        "Claim#": "65-0001",
        "Claimant": "01",
        "Coverage": "BI",
        "Status": "Open",
        "BI Status": "In Progress",
        "Open/Closed Days": "45",
        "Age": "Under 60 Days",
        "Type Group": "ATR",
        "Open Reserves": "$27,000",
        "Low": "0",
        "High": "0",
        "Overall CP1 Flag": "Yes",
        "Exposure Category": "BI",
        "Evaluation Phase": "Liability",
        "Demand Type": "",
        "Accident Location State": "TEXAS",
        "Team Group": "Team A",
        "Adjuster Assigned": "J. Smith",
        "Area#": "65",
        "Fault Rating": "Insured at Fault",
        "TRIGGER TOTAL": "4",
        "Total Meds": "$8,000",
        "Total Paid": "$0",
        "Final End Pain": "Pending",
    }
    row.update(overrides)
    return row


def risk_row(**overrides) -> dict:
    row = {
        "Claim#": "65-1001",
        "Claimant": "01",
        "Coverage": "BI",
        "Days": "200",
        "Age": "181-365 Days",
        "Type Group": "ATR",
        "Team Group": "Team A",
        "Adjuster Assigned": "J. Smith",
        "Impact Severity": "Moderate",
        "Open Reserves": "10000",
        "Total Paid": "0",
        "Overall CP1 Flag": "Yes",
        "Status": "Open",
        "BI Status": "In Progress",
        "Evaluation Phase": "Evaluation",
        "Claimant Age": "40",
        "End Pain Level": "3",
        "FATALITY": "No",
        "SURGERY": "Yes",
        "HOSPITALIZATION": "Yes",
        "INJECTIONS": "No",
    }
    row.update(overrides)
    return row


def check_row(**overrides) -> dict:
    row = {
        "Issue Date": "2026-01-05",
        "Check ID": "C-1",
        "Assigned Team": "Team A",
        "Assigned Dept": "BI Unit",
        "Coverage": "BI",
        "Status": "Cleared",
        "Exposure Category": "BI",
        "Gross Check": "$1,000.00",
        "Deductible": "0",
        "Net Amount": "$1,000.00",
        "Line Item Category": "Indemnity Payment",
    }
    row.update(overrides)
    return row


def reserve_grid(weeks: list[tuple[str, float]], changes: tuple[float, float] | None = None) -> list[list]:
    """Positional weekly-reserves grid: header row, then one 5-row window per week.

    With `changes` (month, year), the first window's change row is the labelled
    "Change in Reserves" row carrying them in columns 18 and 19.
    """
    width = 20
    header = [None] * width
    for col, label in {2: "LBI", 3: "DCCE", 4: "LPD", 6: "COL", 7: "UMBI", 16: "TOTAL"}.items():
        header[col] = label
    grid = [header]
    for label, total in weeks:
        anchor = [None] * width
        anchor[1] = f"Week Ending {label}"
        reserves = [None] * width
        reserves[1] = "Reserves"
        reserves[2], reserves[3], reserves[4], reserves[6], reserves[7] = 100.0, 20.0, 30.0, 5.0, 7.0
        reserves[16] = total
        features = [None] * width
        features[16] = 42
        change = [None] * width
        change[16] = "(1,500)"
        if changes is not None and len(grid) == 1:
            change[1] = "Change in Reserves"
            change[18], change[19] = changes
        feature_change = [None] * width
        feature_change[16] = 2
        grid.extend([anchor, reserves, features, change, feature_change])
    return grid


def workbook_bytes(grid: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in grid:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def write_csv(path, rows: list[dict]) -> str:
    pd.DataFrame(rows).to_csv(path, index=False)
    return str(path)


@pytest.fixture
def source_files(tmp_path):
    """A full set of local source files; returns the sources mapping."""
    exposure = [
        exposure_row(**{"Exp. Create Date": "1/10/24"}),
        exposure_row(**{"Claim#": "65-0002", "Open Reserves": "20000", "Final End Pain": "5+",
                        "Type Group": "LIT", "Overall CP1 Flag": "No", "TRIGGER TOTAL": "1",
                        "Open/Closed Days": "400"}),
        exposure_row(**{"Claim#": "65-0003", "Coverage": "PD", "Open Reserves": "5000",
                        "Low": "1000", "High": "2000", "Type Group": ""}),
    ]
    risk = [
        risk_row(),
        risk_row(**{"Claim#": "65-1002", "FATALITY": "Yes", "Days": "400", "Age": "365+ Days"}),
        risk_row(**{"Claim#": "65-1003", "Status": "Settled Pending Docs"}),
    ]
    checks = [
        check_row(),
        check_row(**{"Check ID": "C-2", "Assigned Dept": "Litigation", "Line Item Category": "Expert Fees",
                     "Gross Check": "500", "Net Amount": "500", "Coverage": "PD"}),
    ]
    snapshots = [
        {"snapshot_date": "2026-01-07", "total_claims": "1", "cp1_rate": "100", "high_risk_claims": "0",
         "age_365_plus": "0"},
        {"snapshot_date": "2026-01-12", "total_claims": "9", "cp1_rate": "100", "high_risk_claims": "9",
         "age_365_plus": "9"},
    ]
    triangles = [
        {"accident_year": "2024", "development_months": "12", "metric_type": "earned_premium", "amount": "1000"},
        {"accident_year": "2024", "development_months": "12", "metric_type": "gross_paid", "amount": "500"},
        {"accident_year": "2024", "development_months": "12", "metric_type": "claim_reserves", "amount": "200"},
    ]
    reserves_path = tmp_path / "reserves.xlsx"
    reserves_path.write_bytes(workbook_bytes(
        reserve_grid([("December 31, 2025", 5_000_000.0)], changes=(-1_521_644, -88_728_584))
    ))

    return {
        "exposure": write_csv(tmp_path / "exposure.csv", exposure),
        "checks": write_csv(tmp_path / "checks.csv", checks),
        "risk": write_csv(tmp_path / "risk.csv", risk),
        "snapshots": write_csv(tmp_path / "snapshots.csv", snapshots),
        "triangles": write_csv(tmp_path / "triangles.csv", triangles),
        "reserves": str(reserves_path),
    }


@pytest.fixture(autouse=True)
def _reset_store():
    yield
    set_store(None)


@pytest.fixture
def warnings_logged():
    """Loguru WARNING+ messages emitted while the test runs."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
