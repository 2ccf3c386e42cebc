"""
Claims Ops — Configuration: source locations, thresholds, lookup tables.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths: override with CLAIMSOPS_DATA_DIR env var for cloud deployment
# ---------------------------------------------------------------------------
_data_dir = Path(os.environ.get("CLAIMSOPS_DATA_DIR", str(Path.home() / "claims-ops" / "data")))
BASE_FOLDER = _data_dir


def _source(env_var: str, default_name: str) -> str:
    """A source location: local path or http(s) URL."""
    return os.environ.get(env_var, str(_data_dir / default_name))


# ---------------------------------------------------------------------------
# Source locations. Cache keys are the location strings themselves, so a new
# query parameter (e.g. "?d=2026-01-08") is the way to force a fresh load.
# ---------------------------------------------------------------------------
SOURCES = {
    "exposure": _source("CLAIMSOPS_EXPOSURE_URL", "open-exposure-raw.csv"),
    "checks": _source("CLAIMSOPS_CHECKS_URL", "check-history.csv"),
    "risk": _source("CLAIMSOPS_RISK_URL", "cp1-analysis.csv"),
    "snapshots": _source("CLAIMSOPS_SNAPSHOTS_URL", "cp1-snapshots.csv"),
    "triangles": _source("CLAIMSOPS_TRIANGLES_URL", "loss-development-triangles.csv"),
    "reserves": _source("CLAIMSOPS_RESERVES_URL", "reserves-rolling-weekly.xlsx"),
}

FETCH_TIMEOUT_SECONDS = float(os.environ.get("CLAIMSOPS_FETCH_TIMEOUT", "30"))

# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------
TRUTHY_VALUES = {"yes", "y", "true", "1"}
BLANK_MARKERS = {"", "(blank)", "blank"}
BLANK_KEY = "(blank)"

# ---------------------------------------------------------------------------
# Column aliases (preference order, first non-empty wins)
# ---------------------------------------------------------------------------
DAYS_OPEN_COLUMNS = ["Open/Closed Days", "Open/Closed Days ", "Days"]
BI_STATUS_COLUMNS = ["BI Status", "BI Status "]
PAIN_LEVEL_COLUMNS = ["Final End Pain", "End Pain Level"]

# ---------------------------------------------------------------------------
# Age bands (inclusive upper bounds in days; anything above the last is 365+)
# ---------------------------------------------------------------------------
AGE_BANDS = [
    (60, "Under 60 Days"),
    (180, "61-180 Days"),
    (365, "181-365 Days"),
]
AGE_BAND_365_PLUS = "365+ Days"
AGE_BAND_ORDER = ["365+ Days", "181-365 Days", "61-180 Days", "Under 60 Days"]

LIT_TYPE_GROUP = "LIT"

# ---------------------------------------------------------------------------
# Spend: line item categories that are expenses (everything else indemnity)
# ---------------------------------------------------------------------------
EXPENSE_CATEGORIES = {
    "legal expenses",
    "peer review",
    "expert fees",
    "investigation",
    "court costs",
    "mediation",
    "arbitration fees",
    "deposition",
    "expert witnesses",
    "medical records",
    "copy services",
}
EXPENSE_KEYWORDS = ["legal", "expert", "peer review", "investigation"]

LITIGATION_DEPT_KEYWORD = "LITIGATION"
LITIGATION_DEPT_CODE = "LIT"

# ---------------------------------------------------------------------------
# Decisions pending
# ---------------------------------------------------------------------------
DECISION_RESERVE_THRESHOLD = 15000.0

PAIN_PENDING_VALUES = {"Pending", "Blank"}
PAIN_HIGH_MARKER = "5+"
PAIN_LIMITS_VALUE = "Limits"
PAIN_UNDER_MARKER = "Under"

REASON_PENDING = "Pending pain assessment + no evaluation"
REASON_HIGH_PAIN = "High pain level + no evaluation"
REASON_DEFAULT = "High reserves with no evaluation"

CATEGORY_PENDING = "Pending"
CATEGORY_HIGH = "High (5+)"
CATEGORY_UNDER = "Under 5"
CATEGORY_UNKNOWN = "Unknown"

# ---------------------------------------------------------------------------
# CP1 trigger columns (the eleven named binary risk indicators)
# ---------------------------------------------------------------------------
CP1_TRIGGER_COLUMNS = [
    "FATALITY",
    "SURGERY",
    "MEDS VS LIMITS",
    "HOSPITALIZATION",
    "LOSS OF CONSCIOUSNESS",
    "AGGRAVATING FACTORS",
    "OBJECTIVE INJURIES",
    "PEDESTRIAN/MOTORCYCLIST/BICYCLIST/PREGNANCY",
    "LIFE CARE PLANNER",
    "INJECTIONS",
    "EMS + HEAVY IMPACT",
]
TRIGGER_TOTAL_COLUMN = "TRIGGER TOTAL"

# Uppercase trigger column → "Injury Incident" alias on the exposure export
INJURY_INCIDENT_ALIASES = {
    "FATALITY": "Injury Incident - Fatality",
    "SURGERY": "Injury Incident - Surgery",
    "HOSPITALIZATION": "Injury Incident - Hospitalization and Hospitalized",
    "LOSS OF CONSCIOUSNESS": "Injury Incident - Loss of Consciousness",
    "LIFE CARE PLANNER": "Injury Incident - Life Care Planner",
}

# Statuses excluded from the CP1 workable set (matched lowercase)
NON_WORKABLE_STATUSES = {
    "settled pending docs",
    "conditional",
    "court approval pending",
    "settled pending drafting instructions",
    "pending friendly suits",
    "pending payment",
    "future medical release",
    "past medical release",
    "spd-lit",
    "passed/future medical release",
    "limits tendered cp1",
}

HIGH_RISK_FLAG_THRESHOLD = 3
PAIN_LEVEL_HIGH = 5
EGGSHELL_AGE = 69
SNAPSHOT_LOOKBACK_DAYS = 7

# ---------------------------------------------------------------------------
# Early intervention
# ---------------------------------------------------------------------------
COVERED_POLICY_TYPE = "BI"
EXCLUDED_BI_STATUS_KEYWORDS = ["settled", "closed"]

STATE_BI_LIMITS = {
    "TEXAS": 30000,
    "CALIFORNIA": 15000,
    "NEVADA": 25000,
    "GEORGIA": 25000,
    "NEW MEXICO": 25000,
    "COLORADO": 25000,
    "ALABAMA": 25000,
    "OKLAHOMA": 25000,
    "ARIZONA": 25000,
    "NEW JERSEY": 15000,
    "FLORIDA": 10000,
    "ILLINOIS": 25000,
    "INDIANA": 25000,
    "OHIO": 25000,
}
DEFAULT_BI_LIMIT = 25000

PILOT_STATE = "TEXAS"
HIGH_RISK_STATES = {
    "TEXAS", "NEVADA", "CALIFORNIA", "GEORGIA", "NEW MEXICO",
    "COLORADO", "ALABAMA", "OKLAHOMA", "ARIZONA",
}

EARLY_DAYS = 90
ACTIONABLE_DAYS = 180
MIN_RISK_FLAGS = 3
LOW_MEDS_THRESHOLD = 10000


@dataclass(frozen=True)
class InterventionWeights:
    """Score contributions for each strategy and bonus."""
    lor_base: int = 40
    lor_early: int = 20
    lor_high_ratio: int = 15
    lor_pilot: int = 10
    nego_base: int = 35
    nego_early: int = 15
    reserve_correction: int = 30
    expert_base: int = 45
    expert_fatality: int = 20
    high_risk_state: int = 10
    low_meds_lor: int = 10


INTERVENTION_WEIGHTS = InterventionWeights()

LOR_MIN_RESERVE_PCT = 50
LOR_HIGH_RESERVE_PCT = 80
RESERVE_CORRECTION_EVAL_MULTIPLE = 1.5
RESERVE_CORRECTION_MAX_PCT = 60

# ---------------------------------------------------------------------------
# Over-limit at-risk scoring (open BI inventory)
# ---------------------------------------------------------------------------
# Multiplied by AtRiskWeights.state_weight_multiplier; states not listed count 1
STATE_RISK_WEIGHT = {
    "TEXAS": 3,
    "NEVADA": 3,
    "CALIFORNIA": 3,
    "GEORGIA": 2,
    "NEW MEXICO": 2,
    "COLORADO": 1,
    "ALABAMA": 1,
    "OKLAHOMA": 2,
    "ARIZONA": 2,
}


@dataclass(frozen=True)
class AtRiskWeights:
    """Score contributions for each over-limit pattern."""
    state_weight_multiplier: int = 10
    reserves_80_pct: int = 25
    reserves_over_limit: int = 35
    in_litigation: int = 20
    cp1_flag: int = 15
    age_365_plus: int = 15
    surgery: int = 20
    fatality: int = 40
    hospitalization: int = 15
    high_trigger_count: int = 15
    high_eval_over_limit: int = 20


AT_RISK_WEIGHTS = AtRiskWeights()

AT_RISK_RESERVE_RATIO = 0.8
AT_RISK_EVAL_MULTIPLE = 1.5
AT_RISK_TRIGGER_COUNT = 3
AT_RISK_AGE_DAYS = 365
AT_RISK_MIN_PATTERNS = 2
AT_RISK_MIN_SCORE = 40
RISK_LEVEL_CRITICAL_SCORE = 80
RISK_LEVEL_HIGH_SCORE = 50
LITIGATION_INDICATOR_COLUMN = "In Litigation Indicator"

AT_RISK_PATTERNS = {
    "HIGH_RISK_STATE": "Claim in state with high historical over-limit frequency",
    "RESERVES_EXCEED_80_PCT": "BI reserves exceed 80% of policy limit - approaching threshold",
    "RESERVES_EXCEED_LIMIT": "Current reserves already exceed policy limit",
    "IN_LITIGATION": "Claim is in litigation with unpredictable outcomes",
    "CP1_FLAG": "CP1 flagged for complex/high-value exposure",
    "AGE_365_PLUS": "Claim aged 365+ days with unresolved BI exposure",
    "SURGERY_INDICATOR": "Surgery indicator - high medical severity",
    "FATALITY": "Fatality claim - maximum exposure risk",
    "HOSPITALIZATION": "Hospitalization indicator - elevated medical costs",
    "HIGH_TRIGGER_COUNT": "3+ aggravating factors identified",
    "HIGH_EVAL_EXCEEDS_LIMIT": "High evaluation significantly above policy limit",
}

# ---------------------------------------------------------------------------
# Statute of limitations (years from exposure creation, by accident state)
# ---------------------------------------------------------------------------
STATE_SOL = {
    "ALABAMA": 2, "ALASKA": 2, "ARIZONA": 2, "ARKANSAS": 3, "CALIFORNIA": 2,
    "COLORADO": 3, "CONNECTICUT": 2, "DELAWARE": 2, "FLORIDA": 2, "GEORGIA": 2,
    "HAWAII": 2, "IDAHO": 2, "ILLINOIS": 2, "INDIANA": 2, "IOWA": 2,
    "KANSAS": 2, "KENTUCKY": 1, "LOUISIANA": 2, "MAINE": 6, "MARYLAND": 3,
    "MASSACHUSETTS": 3, "MICHIGAN": 3, "MINNESOTA": 2, "MISSISSIPPI": 3, "MISSOURI": 5,
    "MONTANA": 3, "NEBRASKA": 4, "NEVADA": 2, "NEW HAMPSHIRE": 3, "NEW JERSEY": 2,
    "NEW MEXICO": 3, "NEW YORK": 3, "NORTH CAROLINA": 3, "NORTH DAKOTA": 6, "OHIO": 2,
    "OKLAHOMA": 2, "OREGON": 2, "PENNSYLVANIA": 2, "RHODE ISLAND": 3, "SOUTH CAROLINA": 3,
    "SOUTH DAKOTA": 3, "TENNESSEE": 1, "TEXAS": 2, "UTAH": 4, "VERMONT": 3,
    "VIRGINIA": 2, "WASHINGTON": 3, "WEST VIRGINIA": 2, "WISCONSIN": 3, "WYOMING": 4,
    "WASHINGTON, D.C.": 3, "DC": 3, "DISTRICT OF COLUMBIA": 3,
}
SOL_TRACKED_BI_STATUSES = {"In Progress", "Settled"}
SOL_APPROACHING_DAYS = 90
EXPOSURE_CREATE_DATE_COLUMN = "Exp. Create Date"
EXPOSURE_CREATE_DATE_FORMATS = ["%m/%d/%y", "%m/%d/%Y", "%Y-%m-%d"]

# ---------------------------------------------------------------------------
# Weekly reserves workbook: declarative metric-to-offset tables.
# Each version maps metric → (row offset from the date anchor, column index).
# ---------------------------------------------------------------------------
LONG_DATE_PATTERN = (
    r"(January|February|March|April|May|June|July|August|September|October|"
    r"November|December)\s+\d{1,2},\s+\d{4}"
)


@dataclass(frozen=True)
class ReserveSheetLayout:
    version: str
    anchor_column: int
    label_column: int
    reserves_label: str
    metrics: dict = field(default_factory=dict)
    header_labels: dict = field(default_factory=dict)  # column → expected header text
    change_label: str = ""                               # first row whose label contains this
    change_metrics: dict = field(default_factory=dict)   # metric → column on that row


RESERVE_SHEET_LAYOUTS = [
    ReserveSheetLayout(
        version="2025-12",
        anchor_column=1,
        label_column=1,
        reserves_label="Reserves",
        metrics={
            "total_reserves": (1, 16),
            "total_features": (2, 16),
            "weekly_change": (3, 16),
            "weekly_feature_change": (4, 16),
            "lbi_reserves": (1, 2),
            "dcce_reserves": (1, 3),
            "lpd_reserves": (1, 4),
            "col_reserves": (1, 6),
            "umbi_reserves": (1, 7),
        },
        header_labels={2: "LBI", 3: "DCCE", 4: "LPD", 6: "COL", 7: "UMBI", 16: "TOTAL"},
        change_label="Change in Reserves",
        change_metrics={"monthly_change": 18, "yearly_change": 19},
    ),
]
DEFAULT_RESERVE_LAYOUT = RESERVE_SHEET_LAYOUTS[0]
RESERVE_WEEKS_SHOWN = 12
# Week counts used when the workbook has no change row
RESERVE_MONTH_WEEKS = 4
RESERVE_YEAR_WEEKS = 52
