"""Slippy-map tile addressing and rendering."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from prometheus_client import Histogram

from isdmap.models import WeatherStation
from isdmap.services.render import draw_stations, encode_png

logger = logging.getLogger(__name__)

TILE_SIZE = 256
# Interactive tiles are not restricted in time.
FULL_RANGE_START = datetime(1900, 1, 1, tzinfo=timezone.utc)
FULL_RANGE_END = datetime(2100, 1, 1, tzinfo=timezone.utc)

TILE_RENDER_SECONDS = Histogram(
    "isdmap_tile_render_seconds",
    "Time spent drawing and encoding a single map tile.",
)


@dataclass(frozen=True)
class TileBounds:
    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float


def tile_corner(zoom: int, x: int, y: int) -> tuple[float, float]:
    """Longitude and latitude of the north-west corner of tile ``(x, y)``."""

    n = 2**zoom
    longitude = x / n * 360.0 - 180.0
    latitude = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))
    return longitude, latitude


def tile_bounds(zoom: int, x: int, y: int) -> TileBounds:
    lon_min, lat_max = tile_corner(zoom, x, y)
    lon_max, lat_min = tile_corner(zoom, x + 1, y + 1)
    return TileBounds(lon_min=lon_min, lon_max=lon_max, lat_min=lat_min, lat_max=lat_max)


def dot_radius_for_zoom(zoom: int) -> int:
    return 1 if zoom < 5 else zoom - 3


def is_valid_tile(zoom: int, x: int, y: int, max_zoom: int = 22) -> bool:
    if zoom < 0 or zoom > max_zoom:
        return False
    n = 2**zoom
    return 0 <= x < n and 0 <= y < n


def render_tile(
    stations: Sequence[WeatherStation],
    zoom: int,
    x: int,
    y: int,
    size: int = TILE_SIZE,
    start_time: datetime = FULL_RANGE_START,
    end_time: datetime = FULL_RANGE_END,
) -> bytes:
    """Draw tile ``(zoom, x, y)`` and return it PNG-encoded.

    Raises :class:`~isdmap.core.errors.RenderError` on geometry or encoding
    failures.
    """

    bounds = tile_bounds(zoom, x, y)
    started = time.perf_counter()
    image = draw_stations(
        stations,
        bounds.lon_min,
        bounds.lon_max,
        bounds.lat_min,
        bounds.lat_max,
        size,
        size,
        dot_radius_for_zoom(zoom),
        start_time,
        end_time,
    )
    body = encode_png(image)
    TILE_RENDER_SECONDS.observe(time.perf_counter() - started)
    return body


__all__ = [
    "FULL_RANGE_END",
    "FULL_RANGE_START",
    "TILE_SIZE",
    "TileBounds",
    "dot_radius_for_zoom",
    "is_valid_tile",
    "render_tile",
    "tile_bounds",
    "tile_corner",
]
