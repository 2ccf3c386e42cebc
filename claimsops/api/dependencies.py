"""
FastAPI dependencies — DataStore singleton, engine lookup.
"""
from __future__ import annotations

from fastapi import Depends, HTTPException

from claimsops.data.schemas import LoadState
from claimsops.data.store import DataStore

# ---------------------------------------------------------------------------
# Global store singleton (set during startup)
# ---------------------------------------------------------------------------
_store: DataStore | None = None


def set_store(store: DataStore | None) -> None:
    global _store
    _store = store


def get_store() -> DataStore:
    if _store is None or not _store.is_loaded:
        raise HTTPException(503, "Data not loaded yet")
    return _store


def get_store_or_empty() -> DataStore:
    """Return the store even before the first load finishes (health/reload)."""
    if _store is None:
        raise HTTPException(503, "Server not initialized yet")
    return _store


def get_engine_state(engine: str, store: DataStore = Depends(get_store)) -> LoadState:
    try:
        return store.state(engine)
    except KeyError:
        raise HTTPException(404, f"Unknown engine: {engine}")
