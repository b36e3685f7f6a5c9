"""API dependencies."""

from __future__ import annotations

from fastapi import Request

from isdmap.core.config import Settings, settings
from isdmap.services.store import StationStore


def get_store(request: Request) -> StationStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        return StationStore()
    return store


def get_config(request: Request) -> Settings:
    return getattr(request.app.state, "config", None) or settings
