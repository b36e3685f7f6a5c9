"""Command-line entry point: ingest, optionally render snapshots, then serve tiles."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Sequence

import uvicorn
from prometheus_client import start_http_server
from pydantic import ValidationError

from isdmap import create_app
from isdmap.core.config import Settings
from isdmap.core.logging_config import setup_logging
from isdmap.services.ingest import ingest_from_settings
from isdmap.services.profiling import ProfilingSession
from isdmap.services.snapshots import render_weekly_snapshots
from isdmap.services.store import StationStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest ISD station files and serve temperature map tiles.")
    parser.add_argument("--file", dest="data_file", help="Single ISD file to ingest.")
    parser.add_argument("--directory", dest="data_directory", help="Directory of ISD files to ingest.")
    parser.add_argument("--render-dir", dest="render_dir", help="Write 52 weekly snapshots into this directory.")
    parser.add_argument("--max-stations", dest="max_stations", type=int, help="Ingest at most this many files.")
    parser.add_argument(
        "--max-measurements",
        dest="max_measurements",
        type=int,
        help="Keep at most this many measurements per station.",
    )
    parser.add_argument("--threads", dest="ingest_threads", type=int, help="Worker threads (default 8).")
    parser.add_argument("--profile", dest="profile_path", help="Dump cProfile stats of ingestion to this file.")
    parser.add_argument("--host", help="Bind address for the tile server.")
    parser.add_argument("--port", type=int, help="Port for the tile server.")
    parser.add_argument("--no-serve", action="store_true", help="Exit after ingestion and rendering.")
    return parser


def build_settings(args: argparse.Namespace, parser: argparse.ArgumentParser) -> Settings:
    """Merge CLI overrides onto the environment settings and validate them."""

    overrides: dict[str, Any] = {
        key: value
        for key, value in vars(args).items()
        if key != "no_serve" and value is not None
    }
    try:
        config = Settings(**overrides)
    except ValidationError as exc:
        parser.error(str(exc))
    if not (config.data_file or config.data_directory):
        parser.error("one of --file or --directory is required")
    return config


def main(argv: Sequence[str] | None = None) -> int:
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    config = build_settings(args, parser)

    if config.metrics_enabled:
        start_http_server(config.metrics_port, addr=config.metrics_host)
        logger.info("Prometheus metrics exporter listening on %s:%s", config.metrics_host, config.metrics_port)

    with ProfilingSession(config.profile_path) as profiler:
        report = ingest_from_settings(config, profiler=profiler)
    store = StationStore.from_report(report)

    if config.render_dir:
        render_weekly_snapshots(store.stations, config.render_dir)

    if args.no_serve:
        return 0 if not report.failures else 1

    uvicorn.run(create_app(store=store, config=config), host=config.host, port=config.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
