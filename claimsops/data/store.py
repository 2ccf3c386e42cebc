"""
DataStore — loads every source through one SourceCache and runs the engines.

Loaded once at startup, queried on every request. Each engine is exposed as a
LoadState; a source that fails to load marks only the engines fed by it, and
the previous good data (if any) stays in place.
"""
from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Callable, Optional

import httpx
from loguru import logger

from claimsops.analytics.at_risk import at_risk_claims
from claimsops.analytics.decisions import decisions_pending
from claimsops.analytics.exposure import exposure_records, summarize_exposure
from claimsops.analytics.fusion import fuse_metrics
from claimsops.analytics.intervention import early_intervention_candidates
from claimsops.analytics.loss_development import summarize_loss_development, triangle_points
from claimsops.analytics.reserves import summarize_reserve_weeks
from claimsops.analytics.risk import (
    risk_claims,
    risk_snapshot,
    select_prior_snapshot,
    summarize_risk,
    week_over_week,
)
from claimsops.analytics.sol import sol_breach_analysis
from claimsops.analytics.spend import check_records, summarize_spend
from claimsops.config import FETCH_TIMEOUT_SECONDS, SOURCES
from claimsops.data.cache import SourceCache
from claimsops.data.loader import (
    assemble_weekly_windows,
    load_delimited,
    load_workbook_grid,
    read_reserve_changes,
    select_layout,
)
from claimsops.data.schemas import LoadState, ReservesRollingSummary
from claimsops.errors import SourceError

# Engine → the source it is computed from
ENGINE_SOURCES = {
    "exposure": "exposure",
    "decisions": "exposure",
    "intervention": "exposure",
    "at_risk": "exposure",
    "sol": "exposure",
    "spend": "checks",
    "risk": "risk",
    "loss_development": "triangles",
    "reserves": "reserves",
}
ENGINES = [*ENGINE_SOURCES, "metrics"]

WORKBOOK_SOURCES = {"reserves"}
OPTIONAL_SOURCES = {"snapshots"}


class DataStore:
    """Per-engine LoadStates plus the fused metrics view."""

    def __init__(
        self,
        sources: Optional[dict[str, str]] = None,
        cache: Optional[SourceCache] = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self.sources = dict(SOURCES if sources is None else sources)
        self.cache = cache or SourceCache()
        self.clock = clock
        self.source_errors: dict[str, str] = {}
        self.as_of: Optional[dt.datetime] = None
        self._states: dict[str, LoadState] = {name: LoadState() for name in ENGINES}
        self._loaded = False
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> "DataStore":
        """Fetch all sources concurrently, then rebuild every engine."""
        async with self._lock:
            for state in self._states.values():
                state.loading = True

            logger.info(f"[DataStore] Loading {len(self.sources)} sources...")
            async with httpx.AsyncClient(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as client:
                names = list(self.sources)
                results = await asyncio.gather(*(self._load_source(n, client) for n in names))
            raw = dict(zip(names, results))

            self.as_of = self.clock()
            self._run_engines(raw)
            self._loaded = True

            ready = sum(1 for s in self._states.values() if s.ready)
            logger.info(f"[DataStore] Ready — {ready}/{len(self._states)} engines have data")
        return self

    async def reload(self) -> "DataStore":
        """Drop every memoized source and load again."""
        self.cache.invalidate()
        return await self.load()

    def invalidate(self, source: Optional[str] = None) -> None:
        """Forget a cached source (or all) without reloading."""
        if source is None:
            self.cache.invalidate()
        else:
            self.cache.invalidate(self.sources[source])

    async def _load_source(self, name: str, client: httpx.AsyncClient) -> Any:
        location = self.sources[name]

        if name in WORKBOOK_SOURCES:
            async def loader():
                grid = await load_workbook_grid(location, client=client)
                layout = select_layout(grid)
                return layout.version, assemble_weekly_windows(grid, layout), read_reserve_changes(grid, layout)
        else:
            async def loader():
                return await load_delimited(location, client)

        try:
            value = await self.cache.get(location, loader)
        except SourceError as exc:
            if name in OPTIONAL_SOURCES:
                logger.warning(f"[DataStore] Optional source {name} unavailable: {exc.message}")
            else:
                logger.error(f"[DataStore] Source {name} failed: {exc.message}")
            self.source_errors[name] = exc.message
            return None
        self.source_errors.pop(name, None)
        return value

    # ------------------------------------------------------------------
    # Engines
    # ------------------------------------------------------------------

    def _settle(self, engine: str, compute: Callable[[], Any], source_ok: bool) -> None:
        state = self._states[engine]
        state.loading = False
        if not source_ok:
            source = ENGINE_SOURCES[engine]
            state.error = self.source_errors.get(source, f"{source} unavailable")
            return
        try:
            state.data = compute()
        except Exception as exc:
            logger.exception(f"[DataStore] Engine {engine} failed")
            state.error = f"{engine} engine failed: {exc}"
        else:
            state.error = None

    def _run_engines(self, raw: dict[str, Any]) -> None:
        exposure_rows = raw.get("exposure")
        risk_rows = raw.get("risk")
        reserves = raw.get("reserves")

        self._settle("exposure", lambda: summarize_exposure(exposure_records(exposure_rows)), exposure_rows is not None)
        self._settle("decisions", lambda: decisions_pending(exposure_rows), exposure_rows is not None)
        self._settle("intervention", lambda: early_intervention_candidates(exposure_rows), exposure_rows is not None)
        self._settle("at_risk", lambda: at_risk_claims(exposure_rows), exposure_rows is not None)
        self._settle("sol", lambda: sol_breach_analysis(exposure_rows, self.as_of.date()), exposure_rows is not None)
        self._settle("spend", lambda: summarize_spend(check_records(raw["checks"])), raw.get("checks") is not None)
        self._settle("risk", lambda: summarize_risk(risk_claims(risk_rows)), risk_rows is not None)
        self._settle(
            "loss_development",
            lambda: summarize_loss_development(triangle_points(raw["triangles"])),
            raw.get("triangles") is not None,
        )
        self._settle("reserves", lambda: self._reserves_summary(reserves), reserves is not None)

        self._fuse(raw.get("snapshots"))

    @staticmethod
    def _reserves_summary(loaded: tuple) -> ReservesRollingSummary:
        version, weeks, changes = loaded
        return summarize_reserve_weeks(weeks, layout_version=version, changes=changes)

    def _fuse(self, snapshot_rows: Optional[list]) -> None:
        risk = self._states["risk"].data
        wow = None
        if risk is not None and snapshot_rows:
            today = self.as_of.date()
            wow = week_over_week(risk_snapshot(risk, today), select_prior_snapshot(snapshot_rows, today))

        fed = [self._states[e] for e in ("exposure", "risk", "spend", "decisions")]
        state = self._states["metrics"]
        state.data = fuse_metrics(
            exposure=self._states["exposure"].data,
            risk=risk,
            spend=self._states["spend"].data,
            decisions=self._states["decisions"].data,
            week_over_week=wow,
            as_of=self.as_of,
            is_loading=any(s.loading for s in fed),
            has_error=any(s.error for s in fed),
        )
        state.loading = False
        state.error = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def state(self, engine: str) -> LoadState:
        """LoadState for an engine name; KeyError for unknown names."""
        return self._states[engine]

    def metrics(self) -> LoadState:
        return self._states["metrics"]

    def engines(self) -> list[str]:
        return list(self._states)

    def source_status(self) -> dict[str, dict]:
        return {
            name: {
                "location": location,
                "cached": location in self.cache,
                "error": self.source_errors.get(name),
            }
            for name, location in self.sources.items()
        }
