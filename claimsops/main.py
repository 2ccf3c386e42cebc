"""
Claims Ops — FastAPI app factory with startup data loading.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from claimsops.api.dependencies import set_store
from claimsops.api.router_meta import router as meta_router
from claimsops.api.router_metrics import router as metrics_router
from claimsops.data.store import DataStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load all sources at startup."""
    from claimsops.config import BASE_FOLDER, SOURCES

    logger.info(f"[App] CLAIMSOPS_DATA_DIR = {BASE_FOLDER}")
    for name, location in SOURCES.items():
        logger.info(f"[App]   {name}: {location}")

    store = DataStore()
    set_store(store)
    await store.load()

    metrics = store.metrics().data
    if metrics is not None and metrics.total_open_claims:
        logger.info(f"[App] Claims Ops ready — {metrics.total_open_claims:,} open claims, "
                    f"{metrics.cp1_count:,} CP1, {metrics.check_count:,} checks")
    else:
        logger.warning("[App] Claims Ops ready — no exposure data yet")
    yield
    set_store(None)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Claims Ops API",
        description="Claims operations metrics — inventory, CP1 risk, spend, decisions, early intervention",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meta_router)
    app.include_router(metrics_router)
    return app


app = create_app()
