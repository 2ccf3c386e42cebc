"""
Metrics endpoints — fused metrics, per-engine load states, intervention and at-risk queues.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from claimsops.analytics.at_risk import claims_by_level, claims_by_state, summarize_at_risk
from claimsops.analytics.common import sanitize_for_json
from claimsops.analytics.intervention import by_state, by_strategy, summarize_interventions
from claimsops.api.dependencies import get_engine_state, get_store
from claimsops.api.response_models import LoadStateResponse
from claimsops.data.schemas import InterventionStrategy, LoadState, RiskLevel
from claimsops.data.store import DataStore

router = APIRouter(prefix="/api", tags=["metrics"])


def _state_json(engine: str, state: LoadState) -> JSONResponse:
    body = LoadStateResponse(
        engine=engine,
        data=sanitize_for_json(state.data),
        loading=state.loading,
        error=state.error,
    )
    return JSONResponse(content=body.model_dump())


@router.get("/metrics")
def unified_metrics(store: DataStore = Depends(get_store)):
    """Fused operations metrics with per-field source provenance."""
    return _state_json("metrics", store.metrics())


@router.get("/engines/{engine}")
def engine_state(engine: str, state: LoadState = Depends(get_engine_state)):
    """Load state of one engine: exposure, spend, decisions, risk, loss_development, reserves, intervention, at_risk, sol."""
    return _state_json(engine, state)


@router.get("/intervention")
def intervention_queue(
    strategy: Optional[str] = Query(None, description="LOR_CANDIDATE|PROACTIVE_NEGO|RESERVE_CORRECTION|EXPERT_EARLY"),
    state: Optional[str] = Query(None, description="Accident state, e.g. TEXAS"),
    limit: Optional[int] = Query(None, ge=1),
    store: DataStore = Depends(get_store),
):
    """Ranked early-intervention candidates with a summary of the filtered set."""
    engine = store.state("intervention")
    if engine.data is None:
        return _state_json("intervention", engine)

    candidates = engine.data
    if strategy is not None:
        try:
            candidates = by_strategy(candidates, InterventionStrategy(strategy))
        except ValueError:
            raise HTTPException(400, f"Invalid strategy: {strategy}")
    if state is not None:
        candidates = by_state(candidates, state)

    payload = {
        "summary": summarize_interventions(candidates),
        "candidates": candidates[:limit] if limit else candidates,
    }
    return _state_json("intervention", LoadState(data=payload, loading=engine.loading, error=engine.error))


@router.get("/at-risk")
def at_risk_queue(
    level: Optional[str] = Query(None, description="CRITICAL|HIGH|MODERATE"),
    state: Optional[str] = Query(None, description="Accident state, e.g. NEVADA"),
    limit: Optional[int] = Query(None, ge=1),
    store: DataStore = Depends(get_store),
):
    """Over-limit at-risk claims, highest risk first, with a summary of the filtered set."""
    engine = store.state("at_risk")
    if engine.data is None:
        return _state_json("at_risk", engine)

    claims = engine.data
    if level is not None:
        try:
            claims = claims_by_level(claims, RiskLevel(level.upper()))
        except ValueError:
            raise HTTPException(400, f"Invalid risk level: {level}")
    if state is not None:
        claims = claims_by_state(claims, state)

    payload = {
        "summary": summarize_at_risk(claims),
        "claims": claims[:limit] if limit else claims,
    }
    return _state_json("at_risk", LoadState(data=payload, loading=engine.loading, error=engine.error))
