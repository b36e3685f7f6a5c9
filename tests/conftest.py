from __future__ import annotations

import gzip
from pathlib import Path
from typing import Callable

import pytest


def build_isd_line(
    usaf: str = "010010",
    wban: str = "99999",
    date: str = "20160101",
    time: str = "0000",
    latitude: int = 70933,
    longitude: int = -8667,
    elevation: int = 9,
    wind_direction: int = 320,
    wind_type: str = "N",
    wind_speed: int = 50,
    air_temperature: int = -12,
    air_pressure: int = 10123,
) -> str:
    """Assemble a mandatory-section ISD record; numeric values are raw (unscaled)."""

    return "".join(
        [
            "0000",
            usaf,
            wban,
            date,
            time,
            "4",
            f"{latitude:+06d}",
            f"{longitude:+07d}",
            "FM-12",
            f"{elevation:+05d}",
            "99999",
            "V020",
            f"{wind_direction:03d}",
            "1",
            wind_type,
            f"{wind_speed:04d}",
            "1",
            "99999" "1" "9" "N" "999999" "9" "9" "9",
            f"{air_temperature:+05d}",
            "1",
            "+9999",
            "9",
            f"{air_pressure:05d}",
            "1",
        ]
    )


@pytest.fixture
def isd_line() -> Callable[..., str]:
    return build_isd_line


@pytest.fixture
def write_station_file(tmp_path: Path) -> Callable[..., Path]:
    def _write(name: str, lines: list[str], directory: Path | None = None) -> Path:
        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        content = "\n".join(lines) + "\n"
        if name.endswith(".gz"):
            with gzip.open(target, "wt", encoding="ascii") as handle:
                handle.write(content)
        else:
            target.write_text(content, encoding="ascii")
        return target

    return _write
