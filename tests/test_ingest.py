from __future__ import annotations

import logging
import pstats
import threading
import time
from pathlib import Path

import pytest

from isdmap.core.config import Settings
from isdmap.core.logging_config import get_log_buffer, setup_logging
from isdmap.models import WeatherStation
from isdmap.services.ingest import (
    collect_input_paths,
    discover_input_files,
    ingest_files,
    ingest_from_settings,
)
from isdmap.services.profiling import ProfilingSession
from isdmap.services.store import StationStore


def _hours(isd_line, usaf: str, wban: str, count: int = 6) -> list[str]:
    return [isd_line(usaf=usaf, wban=wban, time=f"{hour:02d}00") for hour in range(count)]


@pytest.fixture
def station_dir(tmp_path, isd_line, write_station_file) -> Path:
    data = tmp_path / "isd"
    write_station_file("010010-99999-2016", _hours(isd_line, "010010", "99999"), directory=data)
    write_station_file("010020-99999-2016.gz", _hours(isd_line, "010020", "99999"), directory=data)
    bad = _hours(isd_line, "010030", "99999")
    bad[4] = isd_line(usaf="010031", wban="99999", time="0400")
    write_station_file("010030-99999-2016", bad, directory=data)
    return data


def test_batch_with_one_corrupt_file(station_dir):
    report = ingest_files(discover_input_files(station_dir), workers=2, queue_size=1)

    assert report.files_total == 3
    assert sorted(s.station_id for s in report.stations) == ["010010-99999", "010020-99999"]
    assert len(report.failures) == 1
    failure = report.failures[0]
    assert failure.path.endswith("010030-99999-2016")
    assert "line 5" in failure.message
    assert report.measurements_total == 12


def test_stations_are_chronological(station_dir):
    report = ingest_files(discover_input_files(station_dir), workers=3)
    for station in report.stations:
        times = list(station.timestamps)
        assert times == sorted(times)


def test_missing_io_is_reported_per_file(tmp_path, isd_line, write_station_file):
    good = write_station_file("010010-99999-2016", _hours(isd_line, "010010", "99999"))
    report = ingest_files([good, tmp_path / "020000-99999-2016"], workers=2)

    assert len(report.stations) == 1
    assert len(report.failures) == 1
    assert "020000-99999-2016" in report.failures[0].message


def test_unexpected_worker_exception_becomes_failure(tmp_path):
    paths = [tmp_path / f"{n:06d}-99999-2016" for n in range(5)]

    def parse(path: Path, max_measurements):
        if path.name.startswith("000003"):
            raise KeyError("boom")
        return WeatherStation(usaf=path.name[:6], wban="99999")

    report = ingest_files(paths, workers=2, queue_size=1, parse=parse)

    assert len(report.stations) == 4
    assert len(report.failures) == 1
    assert "boom" in report.failures[0].message


def test_small_result_queue_completes_batch(tmp_path):
    paths = [tmp_path / f"{n:06d}-99999-2016" for n in range(20)]
    active = []
    lock = threading.Lock()

    def parse(path: Path, max_measurements):
        with lock:
            active.append(threading.current_thread().name)
        return WeatherStation(usaf=path.name[:6], wban="99999")

    report = ingest_files(paths, workers=4, queue_size=2, parse=parse)

    assert len(report.stations) == 20
    assert set(active) <= {f"ingest-{i}" for i in range(4)}


def test_missing_tallies_are_merged(tmp_path, isd_line, write_station_file):
    first = write_station_file("010010-99999-2016", [isd_line(elevation=9999), isd_line(time="0100")])
    second = write_station_file(
        "010020-99999-2016",
        [isd_line(usaf="010020", elevation=9999, air_pressure=99999)],
    )
    report = ingest_files([first, second], workers=2)

    assert report.missing["elevation"] == 2
    assert report.missing["air_pressure"] == 1


def test_max_measurements_is_forwarded(station_dir):
    report = ingest_files(discover_input_files(station_dir), workers=2, max_measurements=2)
    assert all(len(station.measurements) == 2 for station in report.stations)


def test_empty_input(tmp_path):
    report = ingest_files([], workers=4)
    assert report.stations == ()
    assert report.files_per_second == 0.0


def test_invalid_pool_arguments():
    with pytest.raises(ValueError):
        ingest_files([], workers=0)
    with pytest.raises(ValueError):
        ingest_files([], queue_size=0)


def test_discover_input_files_respects_limit(station_dir):
    files = discover_input_files(station_dir, max_files=2)
    assert [f.name for f in files] == ["010010-99999-2016", "010020-99999-2016.gz"]
    with pytest.raises(NotADirectoryError):
        discover_input_files(station_dir / "missing")


def test_ingest_from_settings_with_profiling(station_dir, tmp_path):
    config = Settings(
        data_directory=str(station_dir),
        data_file=str(station_dir / "010030-99999-2016"),
        max_stations=2,
        ingest_threads=2,
    )
    assert len(collect_input_paths(config)) == 3

    profile_path = tmp_path / "prof" / "ingest.profile"
    with ProfilingSession(profile_path) as profiler:
        report = ingest_from_settings(config, profiler=profiler)

    assert profile_path.exists()
    assert "ingest" in profiler.timings
    assert len(report.stations) == 2
    assert len(report.failures) == 1
    store = StationStore.from_report(report)
    assert len(store) == 2


def test_profile_covers_worker_threads(station_dir, tmp_path):
    profile_path = tmp_path / "ingest.profile"
    with ProfilingSession(profile_path) as profiler:
        ingest_files(discover_input_files(station_dir), workers=2, profiler=profiler)

    functions = {name for _, _, name in pstats.Stats(str(profile_path)).stats}
    assert "parse_line" in functions
    assert "parse_station" in functions


def test_data_file_inside_directory_is_ingested_once(station_dir):
    config = Settings(
        data_directory=str(station_dir),
        data_file=str(station_dir / ".." / "isd" / "010010-99999-2016"),
    )
    paths = collect_input_paths(config)

    assert len(paths) == 3
    assert [p.name for p in paths].count("010010-99999-2016") == 1


def test_throughput_is_logged_with_cumulative_counts(tmp_path, caplog):
    paths = [tmp_path / f"{n:06d}-99999-2016" for n in range(3)]

    def parse(path: Path, max_measurements):
        time.sleep(0.01)
        return WeatherStation(usaf=path.name[:6], wban="99999")

    caplog.set_level(logging.INFO, logger="isdmap.services.ingest")
    ingest_files(paths, workers=1, progress_interval=0.0, parse=parse)

    progress = [
        r for r in caplog.records if r.name == "isdmap.services.ingest" and r.msg.startswith("processed")
    ]
    assert [r.args[0] for r in progress] == [1, 2, 3]
    for record in progress:
        assert record.getMessage().endswith("files / second")
        assert record.args[2] > 0


def test_system_exit_in_parser_fails_only_that_file(tmp_path):
    paths = [tmp_path / f"{n:06d}-99999-2016" for n in range(4)]

    def parse(path: Path, max_measurements):
        if path.name.startswith("000001"):
            raise SystemExit(3)
        return WeatherStation(usaf=path.name[:6], wban="99999")

    report = ingest_files(paths, workers=1, parse=parse)

    assert len(report.stations) == 3
    assert len(report.failures) == 1
    assert report.failures[0].message.endswith("failed: 3")


def test_failure_log_carries_file_context(station_dir):
    setup_logging()
    ingest_files(discover_input_files(station_dir), workers=2)

    bad_path = str(station_dir / "010030-99999-2016")
    entries = [e for e in get_log_buffer(limit=200) if e.get("path") == bad_path]
    assert any(e["level"] == "ERROR" and "line 5" in e["message"] for e in entries)


def test_profiling_section_requires_open_session():
    profiler = ProfilingSession()
    with pytest.raises(RuntimeError):
        with profiler.section("ingest"):
            pass
