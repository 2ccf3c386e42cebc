"""
Source fetching and tabular parsing: delimited text and workbook grids.
"""
from __future__ import annotations

import datetime as dt
import io
import re
import warnings
import zipfile
from pathlib import Path
from typing import Any, Optional

import httpx
import pandas as pd
from loguru import logger
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from claimsops.config import (
    DEFAULT_RESERVE_LAYOUT,
    FETCH_TIMEOUT_SECONDS,
    LONG_DATE_PATTERN,
    RESERVE_SHEET_LAYOUTS,
    ReserveSheetLayout,
)
from claimsops.data.normalize import parse_currency
from claimsops.data.schemas import RawRow, WeeklyReserveRecord
from claimsops.errors import FetchError

Grid = list[list[Any]]

_LONG_DATE_RE = re.compile(LONG_DATE_PATTERN)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


async def fetch_bytes(location: str, client: Optional[httpx.AsyncClient] = None) -> bytes:
    """Fetch raw bytes from an http(s) URL or a local path.

    Non-success status, network errors and missing files all raise FetchError.
    """
    if not _is_url(location):
        try:
            return Path(location).read_bytes()
        except OSError as exc:
            logger.error(f"[Loader] Cannot read {location}: {exc}")
            raise FetchError(location, f"cannot read file ({exc.strerror or exc})") from exc

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as own:
                response = await own.get(location)
        else:
            response = await client.get(location)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(f"[Loader] {location} returned HTTP {exc.response.status_code}")
        raise FetchError(location, f"HTTP {exc.response.status_code}") from exc
    except httpx.RequestError as exc:
        logger.error(f"[Loader] Request to {location} failed: {exc}")
        raise FetchError(location, f"request failed ({exc.__class__.__name__})") from exc
    return response.content


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------

_CSV_OPTIONS = dict(dtype=str, keep_default_na=False, engine="python")


def _unterminated_quote_line(lines: list[str]) -> Optional[int]:
    """Index of the line whose opening quote is never closed, if any."""
    open_at = None
    for i, line in enumerate(lines):
        if line.count('"') % 2:
            open_at = i if open_at is None else None
    return open_at


def _dedupe_header(df: pd.DataFrame, text: str, source: str) -> pd.DataFrame:
    """Restore verbatim labels when pandas suffixed repeated ones ("Days.1")."""
    if not any(re.search(r"\.\d+$", str(c)) for c in df.columns):
        return df
    labels = pd.read_csv(io.StringIO(text), header=None, nrows=1, **_CSV_OPTIONS).iloc[0].tolist()
    repeated = sorted({label for label in labels if label and labels.count(label) > 1})
    if not repeated or len(labels) != len(df.columns):
        return df
    logger.warning(f"[Loader] {source}: duplicate header label(s) {repeated}; keeping the first column of each")
    df.columns = labels
    return df.loc[:, ~df.columns.duplicated()]


def parse_delimited(text: str, source: str = "<text>") -> list[RawRow]:
    """Parse CSV text into RawRows keyed by verbatim header labels.

    Every cell stays a string. Fully empty rows are skipped. Rows with extra
    cells are truncated to the header width, a repeated header label keeps its
    first column, and a quote left open to the end of the text drops the lines
    from that point on; each case is logged.
    """
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", pd.errors.ParserWarning)
            # index_col=False: a long first row must not become an implicit index
            df = pd.read_csv(io.StringIO(text), skip_blank_lines=True, index_col=False, **_CSV_OPTIONS)
    except pd.errors.EmptyDataError as exc:
        raise FetchError(source, f"unparseable delimited text ({exc})") from exc
    except pd.errors.ParserError as exc:
        lines = text.splitlines(keepends=True)
        bad = _unterminated_quote_line(lines)
        if not bad:
            raise FetchError(source, f"unparseable delimited text ({exc})") from exc
        logger.warning(
            f"[Loader] {source}: unterminated quote at line {bad + 1}; "
            f"dropped {len(lines) - bad} line(s) from there to the end"
        )
        return parse_delimited("".join(lines[:bad]), source)

    if any(issubclass(w.category, pd.errors.ParserWarning) for w in caught):
        logger.warning(f"[Loader] {source}: rows with more cells than the header were truncated")

    df = _dedupe_header(df.fillna(""), text, source)
    blank = (df.apply(lambda col: col.str.strip()) == "").all(axis=1)
    if blank.any():
        df = df[~blank]

    return df.to_dict(orient="records")


def decode_text(data: bytes, source: str = "<bytes>") -> str:
    """UTF-8 decode, tolerating a byte-order mark."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise FetchError(source, "not valid UTF-8 text") from exc


async def load_delimited(location: str, client: Optional[httpx.AsyncClient] = None) -> list[RawRow]:
    """Fetch + parse one delimited source."""
    data = await fetch_bytes(location, client)
    rows = parse_delimited(decode_text(data, location), location)
    logger.info(f"[Loader] {Path(location).name}: {len(rows):,} rows")
    return rows


# ---------------------------------------------------------------------------
# Workbook grid
# ---------------------------------------------------------------------------

def parse_workbook(data: bytes, sheet: Optional[str] = None, source: str = "<workbook>") -> Grid:
    """Read one sheet (first by default) as a raw row/column grid."""
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise FetchError(source, f"unreadable workbook ({exc.__class__.__name__})") from exc
    try:
        if sheet is None:
            ws = wb.worksheets[0]
        elif sheet in wb.sheetnames:
            ws = wb[sheet]
        else:
            raise FetchError(source, f"sheet '{sheet}' not found")
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


async def load_workbook_grid(
    location: str,
    sheet: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Grid:
    data = await fetch_bytes(location, client)
    grid = parse_workbook(data, sheet, location)
    logger.info(f"[Loader] {Path(location).name}: {len(grid):,} grid rows")
    return grid


# ---------------------------------------------------------------------------
# Weekly reserve windows (positional protocol)
# ---------------------------------------------------------------------------

def _cell(row: Optional[list[Any]], col: int) -> Any:
    if row is None or col >= len(row):
        return None
    return row[col]


def _row(grid: Grid, idx: int) -> Optional[list[Any]]:
    if 0 <= idx < len(grid):
        return grid[idx]
    return None


def _anchor_label(value: Any) -> Optional[str]:
    """Long-form date label ("December 31, 2025") from an anchor cell, if any."""
    if isinstance(value, (dt.datetime, dt.date)):
        return f"{value:%B} {value.day}, {value.year}"
    m = _LONG_DATE_RE.search(str(value or ""))
    return m.group(0) if m else None


def _parse_long_date(label: str) -> Optional[dt.date]:
    try:
        return dt.datetime.strptime(label, "%B %d, %Y").date()
    except ValueError:
        return None


def _header_matches(grid: Grid, layout: ReserveSheetLayout, scan_rows: int = 15) -> bool:
    for row in grid[:scan_rows]:
        if all(
            str(_cell(row, col) or "").strip().upper() == label.upper()
            for col, label in layout.header_labels.items()
        ):
            return True
    return False


def select_layout(grid: Grid) -> ReserveSheetLayout:
    """Pick the offset table whose declared header matches this workbook."""
    for layout in RESERVE_SHEET_LAYOUTS:
        if layout.header_labels and _header_matches(grid, layout):
            return layout
    logger.warning(
        f"[Loader] No reserve layout header matched — using {DEFAULT_RESERVE_LAYOUT.version}"
    )
    return DEFAULT_RESERVE_LAYOUT


def assemble_weekly_windows(grid: Grid, layout: ReserveSheetLayout = DEFAULT_RESERVE_LAYOUT) -> list[WeeklyReserveRecord]:
    """Rebuild logical week records from anchor row + fixed-offset window.

    A window whose reserves row is missing or mislabelled is dropped.
    """
    weeks: list[WeeklyReserveRecord] = []
    dropped = 0
    for i, row in enumerate(grid):
        if not row or len(row) < 5:
            continue
        label = _anchor_label(_cell(row, layout.anchor_column))
        if label is None:
            continue

        reserves_row = _row(grid, i + 1)
        if layout.reserves_label not in str(_cell(reserves_row, layout.label_column) or ""):
            dropped += 1
            continue

        values = {
            metric: parse_currency(_cell(_row(grid, i + offset), col))
            for metric, (offset, col) in layout.metrics.items()
        }
        weeks.append(WeeklyReserveRecord(label=label, week_ending=_parse_long_date(label), **values))

    if dropped:
        logger.warning(f"[Loader] Dropped {dropped} week window(s) without a '{layout.reserves_label}' row")
    return weeks


def read_reserve_changes(grid: Grid, layout: ReserveSheetLayout = DEFAULT_RESERVE_LAYOUT) -> Optional[dict[str, float]]:
    """Month/year reserve changes from the first change row, or None if the sheet has none."""
    if not layout.change_label:
        return None
    for row in grid:
        if layout.change_label in str(_cell(row, layout.label_column) or ""):
            return {metric: parse_currency(_cell(row, col)) for metric, col in layout.change_metrics.items()}
    logger.warning(f"[Loader] No '{layout.change_label}' row; reserve changes will be computed from weeks")
    return None
