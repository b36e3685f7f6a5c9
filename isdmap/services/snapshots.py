"""Weekly world snapshots rendered to PNG files."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Sequence

from isdmap.models import WeatherStation
from isdmap.services.render import MAX_LATITUDE, draw_stations, save_png

logger = logging.getLogger(__name__)

SNAPSHOT_START = datetime(2016, 1, 1, tzinfo=timezone.utc)
SNAPSHOT_WEEKS = 52
SNAPSHOT_WIDTH = 1024
SNAPSHOT_HEIGHT = 512


def snapshot_name(week: int) -> str:
    return f"weather-{week:04d}.png"


def render_weekly_snapshots(
    stations: Sequence[WeatherStation],
    directory: str | Path,
    start: datetime = SNAPSHOT_START,
    weeks: int = SNAPSHOT_WEEKS,
    width: int = SNAPSHOT_WIDTH,
    height: int = SNAPSHOT_HEIGHT,
) -> list[Path]:
    """Render one world map per consecutive week starting at ``start``."""

    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for week in range(weeks):
        window_start = start + timedelta(weeks=week)
        window_end = start + timedelta(weeks=week + 1)
        image = draw_stations(
            stations,
            -180.0,
            180.0,
            -MAX_LATITUDE,
            MAX_LATITUDE,
            width,
            height,
            1,
            window_start,
            window_end,
        )
        path = out_dir / snapshot_name(week)
        save_png(image, path)
        written.append(path)
    logger.info("Rendered %d weekly snapshots to %s", len(written), out_dir)
    return written


__all__ = ["render_weekly_snapshots", "snapshot_name", "SNAPSHOT_START", "SNAPSHOT_WEEKS"]
