"""
Safe math, group-by helpers, and JSON sanitizing used across all engines.
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import math
from enum import Enum
from typing import Any, Sequence

import numpy as np
import pandas as pd

from claimsops.data.normalize import group_key
from claimsops.data.schemas import GroupTotals, SpendTotals


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide safely, returning default if denominator is zero or NaN."""
    if denominator == 0 or pd.isna(denominator):
        return default
    result = numerator / denominator
    return default if pd.isna(result) else result


def pct_change(current: float, previous: float) -> float | None:
    """Percentage change from previous to current. Returns None if previous is 0."""
    if previous == 0 or pd.isna(previous):
        return None
    return (current - previous) / abs(previous) * 100


# ---------------------------------------------------------------------------
# Frames & group-bys
# ---------------------------------------------------------------------------

def records_frame(records: Sequence[Any]) -> pd.DataFrame:
    """DataFrame with one row per dataclass record (empty frame for no records)."""
    if not records:
        return pd.DataFrame()
    return pd.DataFrame([dataclasses.asdict(r) for r in records])


def reserve_groups(df: pd.DataFrame, key_col: str, amount_col: str = "reserves") -> dict[str, GroupTotals]:
    """Count + reserve sum per key, in first-seen order. Blank keys -> "(blank)"."""
    if df.empty:
        return {}
    keys = df[key_col].map(group_key)
    g = df.groupby(keys, sort=False).agg(
        count=(amount_col, "size"),
        reserves=(amount_col, "sum"),
    )
    return {
        str(k): GroupTotals(count=int(r["count"]), reserves=float(r["reserves"]))
        for k, r in g.iterrows()
    }


def spend_groups(df: pd.DataFrame, key_col: str) -> dict[str, SpendTotals]:
    """Gross / net / count per key, in first-seen order. Blank keys -> "(blank)"."""
    if df.empty:
        return {}
    keys = df[key_col].map(group_key)
    g = df.groupby(keys, sort=False).agg(
        gross=("gross_check", "sum"),
        net=("net_amount", "sum"),
        count=("net_amount", "size"),
    )
    return {
        str(k): SpendTotals(gross=float(r["gross"]), net=float(r["net"]), count=int(r["count"]))
        for k, r in g.iterrows()
    }


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def sanitize_for_json(obj):
    """Recursively convert dataclasses, numpy/pandas and date types to JSON-safe Python."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        data = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        return sanitize_for_json(data)
    if isinstance(obj, dict):
        clean = {}
        for k, v in obj.items():
            if k is None:
                continue
            if isinstance(k, float) and (math.isnan(k) or math.isinf(k)):
                continue
            if isinstance(k, Enum):
                k = k.value
            clean[str(k) if not isinstance(k, str) else k] = sanitize_for_json(v)
        return clean
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (dt.datetime, dt.date)):
        return obj.isoformat()
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        v = float(obj)
        return 0.0 if (math.isnan(v) or math.isinf(v)) else v
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, float):
        return 0.0 if (math.isnan(obj) or math.isinf(obj)) else obj
    return obj
