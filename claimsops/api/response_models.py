"""
Pydantic response schemas for the API.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class SourceStatus(BaseModel):
    location: str
    cached: bool
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    loaded: bool
    as_of: Optional[str] = None
    engines_ready: int
    engines_total: int
    sources: dict[str, SourceStatus]


class LoadStateResponse(BaseModel):
    """Serialized LoadState: data is null until available."""
    engine: str
    data: Any = None
    loading: bool
    error: Optional[str] = None


class EnginesResponse(BaseModel):
    engines: list[str]


class ReloadResponse(BaseModel):
    status: str
    message: str
