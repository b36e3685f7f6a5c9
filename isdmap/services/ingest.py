"""Concurrent ingestion of ISD station files."""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from queue import Queue, SimpleQueue
from typing import Callable, Optional, Sequence

from prometheus_client import Counter as MetricCounter
from prometheus_client import Histogram

from isdmap.core.config import Settings, settings
from isdmap.core.errors import StationMismatchError
from isdmap.core.logging_config import StationLogAdapter
from isdmap.models import WeatherStation
from isdmap.services.isd_parser import parse_file, station_codes_from_path
from isdmap.services.profiling import ProfilingSession

logger = logging.getLogger(__name__)

INGEST_FILES = MetricCounter(
    "isdmap_ingest_files_total",
    "Input files processed, by outcome.",
    ["status"],
)
INGEST_MEASUREMENTS = MetricCounter(
    "isdmap_ingest_measurements_total",
    "Measurements retained from successfully ingested files.",
)
INGEST_MISSING = MetricCounter(
    "isdmap_ingest_missing_values_total",
    "Optional values outside their valid range, by field.",
    ["field"],
)
FILE_PARSE_SECONDS = Histogram(
    "isdmap_ingest_file_seconds",
    "Wall time spent parsing a single input file.",
)

ParseFunc = Callable[[Path, Optional[int]], WeatherStation]


@dataclass
class IngestResult:
    path: Path
    station: WeatherStation | None = None
    error: str | None = None
    missing: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.station is not None


@dataclass(frozen=True)
class IngestFailure:
    path: str
    message: str


@dataclass
class IngestReport:
    """Outcome of one ingestion batch."""

    stations: tuple[WeatherStation, ...] = ()
    failures: list[IngestFailure] = field(default_factory=list)
    missing: Counter[str] = field(default_factory=Counter)
    files_total: int = 0
    elapsed_seconds: float = 0.0

    @property
    def files_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.files_total / self.elapsed_seconds

    @property
    def measurements_total(self) -> int:
        return sum(len(station.measurements) for station in self.stations)


def discover_input_files(directory: str | Path, max_files: int | None = None) -> list[Path]:
    """List the regular files of ``directory`` in name order."""

    root = Path(directory)
    if not root.is_dir():
        raise NotADirectoryError(f"input directory does not exist: {root}")
    files = sorted(p for p in root.iterdir() if p.is_file() and not p.name.startswith("."))
    if max_files is not None:
        files = files[:max_files]
    return files


def _file_station_id(path: Path) -> str | None:
    try:
        return "-".join(station_codes_from_path(path))
    except StationMismatchError:
        return None


def _run_task(path: Path, parse: ParseFunc, max_measurements: int | None) -> IngestResult:
    started = time.perf_counter()
    try:
        station = parse(path, max_measurements)
    except BaseException as exc:
        # SystemExit included: the exception fails this file, not the worker.
        reason = str(exc) or type(exc).__name__
        return IngestResult(path=path, error=f"parsing {path} failed: {reason}")
    finally:
        FILE_PARSE_SECONDS.observe(time.perf_counter() - started)
    return IngestResult(path=path, station=station, missing=dict(station.missing))


def _worker(
    tasks: SimpleQueue[Path | None],
    results: Queue[IngestResult],
    parse: ParseFunc,
    max_measurements: int | None,
    profiler: ProfilingSession | None = None,
) -> None:
    with profiler.profile_thread() if profiler is not None else nullcontext():
        while True:
            path = tasks.get()
            if path is None:
                return
            # Blocks while the collector is behind.
            results.put(_run_task(path, parse, max_measurements))


def ingest_files(
    paths: Sequence[str | Path],
    *,
    workers: int = 8,
    queue_size: int = 64,
    max_measurements: int | None = None,
    progress_interval: float = 1.0,
    profiler: ProfilingSession | None = None,
    parse: ParseFunc = parse_file,
) -> IngestReport:
    """Parse every path on a pool of worker threads and collect the stations.

    Returns only after one result per path has been collected. Failed files
    are logged and listed in the report; they never stop the batch.
    """

    if workers < 1:
        raise ValueError("workers must be at least 1")
    if queue_size < 1:
        raise ValueError("queue_size must be at least 1")

    files = [Path(p) for p in paths]
    report = IngestReport(files_total=len(files))
    if not files:
        logger.info("No input files to ingest")
        return report

    tasks: SimpleQueue[Path | None] = SimpleQueue()
    for path in files:
        tasks.put(path)
    n_threads = min(workers, len(files))
    for _ in range(n_threads):
        tasks.put(None)
    results: Queue[IngestResult] = Queue(maxsize=queue_size)

    threads = [
        threading.Thread(
            target=_worker,
            args=(tasks, results, parse, max_measurements, profiler),
            name=f"ingest-{index}",
            daemon=True,
        )
        for index in range(n_threads)
    ]

    logger.info("Ingesting %d files with %d workers", len(files), n_threads)
    section = profiler.section("ingest") if profiler is not None else nullcontext()
    stations: list[WeatherStation] = []
    with section:
        started = time.perf_counter()
        last_update = started
        for thread in threads:
            thread.start()

        for collected in range(1, len(files) + 1):
            result = results.get()
            file_logger = StationLogAdapter(
                logger,
                path=result.path,
                station_id=result.station.station_id if result.ok else _file_station_id(result.path),
            )
            if result.ok:
                file_logger.debug("Collected %d measurements", len(result.station.measurements))
                stations.append(result.station)
                report.missing.update(result.missing)
                INGEST_FILES.labels(status="success").inc()
                INGEST_MEASUREMENTS.inc(len(result.station.measurements))
                for name, count in result.missing.items():
                    INGEST_MISSING.labels(field=name).inc(count)
            else:
                report.failures.append(IngestFailure(path=str(result.path), message=result.error or ""))
                INGEST_FILES.labels(status="failure").inc()
                file_logger.error("%s", result.error)

            now = time.perf_counter()
            if now - last_update >= progress_interval and now > started:
                last_update = now
                elapsed = now - started
                logger.info(
                    "processed %d files in %.1fs - %.1f files / second",
                    collected,
                    elapsed,
                    collected / elapsed,
                )

        for thread in threads:
            thread.join()
        report.elapsed_seconds = time.perf_counter() - started

    report.stations = tuple(stations)
    logger.info(
        "Ingestion finished (files=%d, stations=%d, failures=%d, measurements=%d, %.1f files / second)",
        report.files_total,
        len(report.stations),
        len(report.failures),
        report.measurements_total,
        report.files_per_second,
    )
    return report


def collect_input_paths(config: Settings) -> list[Path]:
    """Directory files first, then ``data_file`` unless it is already listed."""

    paths: list[Path] = []
    if config.data_directory:
        paths.extend(discover_input_files(config.data_directory, config.max_stations))
    if config.data_file:
        data_file = Path(config.data_file)
        seen = {path.resolve() for path in paths}
        if data_file.resolve() not in seen:
            paths.append(data_file)
    return paths


def ingest_from_settings(
    config: Settings | None = None,
    profiler: ProfilingSession | None = None,
) -> IngestReport:
    config = config or settings
    return ingest_files(
        collect_input_paths(config),
        workers=config.ingest_threads,
        queue_size=config.ingest_queue_size,
        max_measurements=config.max_measurements,
        progress_interval=config.progress_interval_seconds,
        profiler=profiler,
    )


__all__ = [
    "IngestFailure",
    "IngestReport",
    "IngestResult",
    "collect_input_paths",
    "discover_input_files",
    "ingest_files",
    "ingest_from_settings",
]
