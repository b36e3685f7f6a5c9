"""Service-layer utilities."""

from .ingest import IngestFailure, IngestReport, discover_input_files, ingest_files, ingest_from_settings
from .isd_parser import StationAggregator, parse_file, parse_line, parse_station
from .profiling import ProfilingSession
from .render import draw_stations, encode_png
from .snapshots import render_weekly_snapshots
from .store import StationStore
from .tiles import render_tile, tile_bounds

__all__ = [
    "IngestFailure",
    "IngestReport",
    "ProfilingSession",
    "StationAggregator",
    "StationStore",
    "discover_input_files",
    "draw_stations",
    "encode_png",
    "ingest_files",
    "ingest_from_settings",
    "parse_file",
    "parse_line",
    "parse_station",
    "render_tile",
    "render_weekly_snapshots",
    "tile_bounds",
]
