"""Map tile endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Response

from isdmap.api.deps import get_config, get_store
from isdmap.core.config import Settings
from isdmap.core.errors import RenderError
from isdmap.services.store import StationStore
from isdmap.services.tiles import is_valid_tile, render_tile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/map", tags=["map"])


@router.get(
    "/{zoom}/{x}/{y}/tile.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="Temperature dot map tile",
)
def map_tile(
    zoom: int = Path(..., ge=0),
    x: int = Path(..., ge=0),
    y: int = Path(..., ge=0),
    store: StationStore = Depends(get_store),
    config: Settings = Depends(get_config),
) -> Response:
    # Runs on the threadpool; the store is read-only.
    if not is_valid_tile(zoom, x, y, max_zoom=config.max_zoom):
        raise HTTPException(status_code=404, detail="Tile not found")
    try:
        body = render_tile(store.stations, zoom, x, y, size=config.tile_size)
    except RenderError as exc:
        logger.error("Rendering tile %s/%s/%s failed: %s", zoom, x, y, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return Response(content=body, media_type="image/png")


__all__ = ["router"]
