"""
Meta endpoints: health, engine list, reload.
"""
from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from loguru import logger

from claimsops.api.dependencies import get_store_or_empty
from claimsops.api.response_models import EnginesResponse, HealthResponse, ReloadResponse
from claimsops.data.store import DataStore

router = APIRouter(prefix="/api", tags=["meta"])


@router.get("/health", response_model=HealthResponse)
def health(store: DataStore = Depends(get_store_or_empty)):
    engines = store.engines()
    return HealthResponse(
        status="ok",
        loaded=store.is_loaded,
        as_of=store.as_of.isoformat() if store.as_of else None,
        engines_ready=sum(1 for e in engines if store.state(e).ready),
        engines_total=len(engines),
        sources=store.source_status(),
    )


@router.get("/engines", response_model=EnginesResponse)
def list_engines(store: DataStore = Depends(get_store_or_empty)):
    return EnginesResponse(engines=store.engines())


@router.post("/reload", response_model=ReloadResponse)
async def reload_data(background_tasks: BackgroundTasks, store: DataStore = Depends(get_store_or_empty)):
    """Invalidate cached sources and reload all data.

    Returns immediately, reload happens in background.
    """
    async def _do_reload():
        await store.reload()
        logger.info(f"[API] Reload complete — as of {store.as_of:%Y-%m-%d %H:%M}")

    background_tasks.add_task(_do_reload)
    return ReloadResponse(
        status="reloading",
        message="Data reload started in background. Check /api/health for updated state.",
    )
