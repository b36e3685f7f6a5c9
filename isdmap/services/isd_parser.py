"""Decode ISD fixed-width records and aggregate them into stations."""

from __future__ import annotations

import gzip
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Iterable

from isdmap.core.errors import DataCorruptionError, RangeViolationError, StationMismatchError
from isdmap.models import CalmWind, NormalWind, VariableWind, WeatherMeasurement, WeatherStation, Wind
from isdmap.services.isd_schema import (
    AIR_PRESSURE,
    AIR_TEMPERATURE,
    DATE,
    ELEVATION,
    LATITUDE,
    LONGITUDE,
    RECORD_MIN_LENGTH,
    TIME,
    USAF,
    WBAN,
    WIND_DIRECTION,
    WIND_SPEED,
    WIND_TYPE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedRecord:
    """Everything a single line contributes to its station."""

    datetime: datetime
    latitude: float
    longitude: float
    elevation: int | None
    measurement: WeatherMeasurement | None
    missing: tuple[str, ...] = ()


def station_codes_from_path(path: str | Path) -> tuple[str, str]:
    """Return ``(usaf, wban)`` from a ``<USAF>-<WBAN>-<year>[.gz]`` file name."""

    parts = Path(path).stem.split("-")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise StationMismatchError(f"cannot derive station codes from file name {Path(path).name!r}")
    return parts[0], parts[1]


def _decode_datetime(line: str) -> datetime:
    date = DATE.token(line)
    time = TIME.token(line)
    if not (date.isdigit() and time.isdigit()):
        raise RangeViolationError("datetime", f"{date}{time}", "not numeric")
    try:
        return datetime(
            int(date[0:4]),
            int(date[4:6]),
            int(date[6:8]),
            int(time[0:2]),
            int(time[2:4]),
            tzinfo=timezone.utc,
        )
    except ValueError as exc:
        raise RangeViolationError("datetime", f"{date}{time}", str(exc)) from exc


def _decode_wind(line: str) -> Wind | None:
    direction = WIND_DIRECTION.parse_raw(line)
    raw_speed = WIND_SPEED.parse_raw(line)
    speed = WIND_SPEED.scaled(raw_speed) if raw_speed is not None else None
    wind_type = WIND_TYPE.token(line)

    if WIND_DIRECTION.in_bounds(direction) and WIND_SPEED.in_bounds(speed):
        return NormalWind(speed=float(speed), direction=int(direction))
    if wind_type == "C" or (wind_type == "9" and raw_speed == 0):
        return CalmWind()
    if wind_type == "V":
        return VariableWind()
    return None


def parse_line(line: str, usaf: str, wban: str) -> ParsedRecord:
    """Decode one record checked against the expected station codes.

    Raises a :class:`DataCorruptionError` subclass for structural problems.
    Optional fields outside their valid range are reported in
    ``ParsedRecord.missing`` rather than raised.
    """

    if len(line) < RECORD_MIN_LENGTH:
        raise DataCorruptionError(
            f"record has {len(line)} characters, expected at least {RECORD_MIN_LENGTH}"
        )

    line_usaf = USAF.token(line)
    if line_usaf != usaf:
        raise StationMismatchError(f"usaf {line_usaf!r} does not match {usaf!r}")
    line_wban = WBAN.token(line)
    if line_wban != wban:
        raise StationMismatchError(f"wban {line_wban!r} does not match {wban!r}")

    observed_at = _decode_datetime(line)
    latitude = LATITUDE.decode(line)
    longitude = LONGITUDE.decode(line)

    missing: list[str] = []
    elevation = ELEVATION.decode(line)
    if elevation is None:
        missing.append("elevation")
    wind = _decode_wind(line)
    if wind is None:
        missing.append("wind")
    air_temperature = AIR_TEMPERATURE.decode(line)
    if air_temperature is None:
        missing.append("air_temperature")
    air_pressure = AIR_PRESSURE.decode(line)
    if air_pressure is None:
        missing.append("air_pressure")

    measurement: WeatherMeasurement | None = WeatherMeasurement(
        datetime=observed_at,
        wind=wind,
        air_temperature=air_temperature,
        air_pressure=air_pressure,
    )
    if measurement.is_empty:
        measurement = None

    return ParsedRecord(
        datetime=observed_at,
        latitude=float(latitude),
        longitude=float(longitude),
        elevation=int(elevation) if elevation is not None else None,
        measurement=measurement,
        missing=tuple(missing),
    )


class StationAggregator:
    """Accumulates one station's series from successive records of a file."""

    def __init__(self, usaf: str, wban: str, max_measurements: int | None = None) -> None:
        self.usaf = usaf
        self.wban = wban
        self.max_measurements = max_measurements
        self.latitude: float | None = None
        self.longitude: float | None = None
        self.elevation: int | None = None
        self.missing: Counter[str] = Counter()
        self._measurements: list[WeatherMeasurement] = []

    @property
    def is_full(self) -> bool:
        return self.max_measurements is not None and len(self._measurements) >= self.max_measurements

    def add(self, record: ParsedRecord) -> None:
        # Location follows the records until the first measurement is kept.
        if not self._measurements:
            self.latitude = record.latitude
            self.longitude = record.longitude
        if self.elevation is None and record.elevation is not None:
            self.elevation = record.elevation
        self.missing.update(record.missing)
        if record.measurement is not None and not self.is_full:
            self._measurements.append(record.measurement)

    def build(self) -> WeatherStation:
        return WeatherStation(
            usaf=self.usaf,
            wban=self.wban,
            latitude=self.latitude,
            longitude=self.longitude,
            elevation=self.elevation,
            measurements=tuple(self._measurements),
            missing=dict(self.missing),
        )


def parse_station(
    lines: Iterable[str],
    usaf: str,
    wban: str,
    max_measurements: int | None = None,
) -> WeatherStation:
    """Parse every record of one station, failing fast on corrupt input."""

    aggregator = StationAggregator(usaf, wban, max_measurements=max_measurements)
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        if not line.strip():
            continue
        try:
            record = parse_line(line, usaf, wban)
        except DataCorruptionError as exc:
            exc.line_number = line_number
            raise
        aggregator.add(record)
        if aggregator.is_full:
            logger.debug(
                "Measurement cap reached for %s-%s after %d lines", usaf, wban, line_number
            )
            break
    return aggregator.build()


def open_records(path: str | Path) -> IO[str]:
    """Open an ISD file as text, decompressing ``.gz`` files on the fly."""

    path = Path(path)
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="ascii")
    return path.open("r", encoding="ascii")


def parse_file(path: str | Path, max_measurements: int | None = None) -> WeatherStation:
    usaf, wban = station_codes_from_path(path)
    with open_records(path) as handle:
        return parse_station(handle, usaf, wban, max_measurements=max_measurements)


__all__ = [
    "ParsedRecord",
    "StationAggregator",
    "open_records",
    "parse_file",
    "parse_line",
    "parse_station",
    "station_codes_from_path",
]
