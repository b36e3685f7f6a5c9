"""Rasterize stations into a temperature-colored dot map."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Iterable

import numpy as np
from PIL import Image

from isdmap.core.errors import GeometryError, RenderError
from isdmap.models import WeatherStation

logger = logging.getLogger(__name__)

# Northernmost latitude of the square Web Mercator world, atan(sinh(pi)).
MAX_LATITUDE = math.degrees(math.atan(math.sinh(math.pi)))

TEMPERATURE_MIN = -30.0
TEMPERATURE_MAX = 40.0
NO_DATA_COLOR = (0, 0, 0)
_LATITUDE_TOLERANCE = 1e-9


def mercator(latitude: float) -> float:
    """Web Mercator y for a latitude in degrees (https://en.wikipedia.org/wiki/Web_Mercator)."""

    return math.log(math.tan(math.pi / 4 + math.radians(latitude) / 2))


def temperature_color(temperature: float) -> tuple[int, int, int]:
    clamped = min(TEMPERATURE_MAX, max(TEMPERATURE_MIN, temperature))
    scaled = (clamped - TEMPERATURE_MIN) / (TEMPERATURE_MAX - TEMPERATURE_MIN)
    return int(255 * scaled), 127, int(255 * (1 - scaled))


def station_color(station: WeatherStation, start_time: datetime, end_time: datetime) -> tuple[int, int, int]:
    """Color of the first in-window measurement that carries a temperature."""

    for measurement in station.window(start_time, end_time):
        if measurement.air_temperature is not None:
            return temperature_color(measurement.air_temperature)
    return NO_DATA_COLOR


def _check_geometry(
    lon_min: float, lon_max: float, lat_min: float, lat_max: float, width: int, height: int, dot_radius: int
) -> None:
    if width < 1 or height < 1:
        raise GeometryError(f"invalid raster size {width}x{height}")
    if dot_radius < 1:
        raise GeometryError(f"invalid dot radius {dot_radius}")
    if not lon_min < lon_max:
        raise GeometryError(f"empty longitude range [{lon_min}, {lon_max}]")
    if not lat_min < lat_max:
        raise GeometryError(f"empty latitude range [{lat_min}, {lat_max}]")
    if lat_min < -MAX_LATITUDE - _LATITUDE_TOLERANCE or lat_max > MAX_LATITUDE + _LATITUDE_TOLERANCE:
        raise GeometryError(f"latitude range [{lat_min}, {lat_max}] exceeds the Web Mercator limit")


def project(
    latitude: float,
    longitude: float,
    lon_min: float,
    lon_max: float,
    lat_min: float,
    lat_max: float,
    width: int,
    height: int,
) -> tuple[int, int]:
    """Pixel column and row of a point inside the bounding box."""

    x = math.floor((longitude - lon_min) / (lon_max - lon_min) * (width - 1))
    if not 0 <= x < width:
        raise GeometryError(f"longitude {longitude} maps to column {x} outside 0..{width - 1}")

    merc_min = mercator(lat_min)
    ratio = (mercator(latitude) - merc_min) / (mercator(lat_max) - merc_min)
    y = math.floor((1 - ratio) * (height - 1))
    if not 0 <= y < height:
        raise GeometryError(f"latitude {latitude} maps to row {y} outside 0..{height - 1}")
    return x, y


def draw_stations(
    stations: Iterable[WeatherStation],
    lon_min: float,
    lon_max: float,
    lat_min: float,
    lat_max: float,
    width: int,
    height: int,
    dot_radius: int,
    start_time: datetime,
    end_time: datetime,
) -> np.ndarray:
    """Render a ``height x width x 3`` RGB raster of the stations in the box.

    Each station is drawn as a ``dot_radius`` square colored by its first
    temperature in ``[start_time, end_time)``, or black when there is none.
    """

    _check_geometry(lon_min, lon_max, lat_min, lat_max, width, height, dot_radius)
    logger.debug(
        "Drawing stations for longitude %s to %s, latitude %s to %s",
        lon_min,
        lon_max,
        lat_min,
        lat_max,
    )

    image = np.zeros((height, width, 3), dtype=np.uint8)
    offset = dot_radius // 2
    for station in stations:
        if not station.has_location:
            continue
        if not (lon_min <= station.longitude <= lon_max and lat_min <= station.latitude <= lat_max):
            continue

        x, y = project(station.latitude, station.longitude, lon_min, lon_max, lat_min, lat_max, width, height)
        color = station_color(station, start_time, end_time)

        left, top = x - offset, y - offset
        image[max(top, 0) : max(top + dot_radius, 0), max(left, 0) : max(left + dot_radius, 0)] = color

    return image


def encode_png(image: np.ndarray) -> bytes:
    try:
        buffer = BytesIO()
        Image.fromarray(image).save(buffer, format="PNG")
    except (ValueError, TypeError, OSError) as exc:
        raise RenderError(f"PNG encoding failed: {exc}") from exc
    return buffer.getvalue()


def save_png(image: np.ndarray, path: str | Path) -> None:
    try:
        Image.fromarray(image).save(path, format="PNG")
    except (ValueError, TypeError, OSError) as exc:
        raise RenderError(f"writing {path} failed: {exc}") from exc


__all__ = [
    "MAX_LATITUDE",
    "draw_stations",
    "encode_png",
    "mercator",
    "project",
    "save_png",
    "station_color",
    "temperature_color",
]
