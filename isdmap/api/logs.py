"""Recent log records kept in memory by the logging setup."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from isdmap.core.logging_config import get_log_buffer

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("")
def list_logs(
    limit: int = Query(100, ge=1, le=200),
    station_id: Optional[str] = Query(None, description="Only records tagged with this usaf-wban id"),
) -> dict[str, list[dict[str, str]]]:
    return {"logs": get_log_buffer(limit=limit, station_id=station_id)}


__all__ = ["router"]
