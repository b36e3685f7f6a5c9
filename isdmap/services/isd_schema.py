"""Field layout of the ISD mandatory data section.

Data from https://www1.ncdc.noaa.gov/pub/data/noaa/
Format documentation: https://www1.ncdc.noaa.gov/pub/data/noaa/ish-format-document.pdf

Offsets are zero-based and half-open. Bounds are expressed in decoded units,
after dividing the raw integer by ``scale``.
"""

from __future__ import annotations

from dataclasses import dataclass

from isdmap.core.errors import RangeViolationError


@dataclass(frozen=True)
class FieldSpec:
    name: str
    start: int
    end: int
    scale: int = 1
    bounds: tuple[float, float] | None = None
    required: bool = False

    @property
    def width(self) -> int:
        return self.end - self.start

    def token(self, line: str) -> str:
        return line[self.start : self.end]

    def parse_raw(self, line: str) -> int | None:
        """Return the raw integer token, or ``None`` if it does not parse."""

        try:
            return int(self.token(line))
        except ValueError:
            return None

    def scaled(self, raw: int) -> float | int:
        return raw / self.scale if self.scale != 1 else raw

    def in_bounds(self, value: float | None) -> bool:
        if value is None:
            return False
        if self.bounds is None:
            return True
        low, high = self.bounds
        return low <= value <= high

    def decode(self, line: str) -> float | int | None:
        """Decode a numeric field.

        Required fields raise :class:`RangeViolationError` when the token is
        unparsable or out of bounds; optional fields return ``None`` instead.
        """

        raw = self.parse_raw(line)
        if raw is None:
            if self.required:
                raise RangeViolationError(self.name, self.token(line), "not an integer")
            return None
        value = self.scaled(raw)
        if not self.in_bounds(value):
            if self.required:
                low, high = self.bounds  # type: ignore[misc]
                raise RangeViolationError(self.name, value, f"outside [{low}, {high}]")
            return None
        return value


USAF = FieldSpec("usaf", 4, 10, required=True)
WBAN = FieldSpec("wban", 10, 15, required=True)
DATE = FieldSpec("date", 15, 23, required=True)
TIME = FieldSpec("time", 23, 27, required=True)
LATITUDE = FieldSpec("latitude", 28, 34, scale=1000, bounds=(-90.0, 90.0), required=True)
LONGITUDE = FieldSpec("longitude", 34, 41, scale=1000, bounds=(-180.0, 180.0), required=True)
ELEVATION = FieldSpec("elevation", 46, 51, bounds=(-400, 9000))
WIND_DIRECTION = FieldSpec("wind_direction", 60, 63, bounds=(0, 360))
WIND_TYPE = FieldSpec("wind_type", 64, 65)
WIND_SPEED = FieldSpec("wind_speed", 65, 69, scale=10, bounds=(0.0, 90.0))
AIR_TEMPERATURE = FieldSpec("air_temperature", 87, 92, scale=10, bounds=(-100.0, 100.0))
AIR_PRESSURE = FieldSpec("air_pressure", 99, 104, scale=10, bounds=(0.0, 2000.0))

ISD_FIELDS: tuple[FieldSpec, ...] = (
    USAF,
    WBAN,
    DATE,
    TIME,
    LATITUDE,
    LONGITUDE,
    ELEVATION,
    WIND_DIRECTION,
    WIND_TYPE,
    WIND_SPEED,
    AIR_TEMPERATURE,
    AIR_PRESSURE,
)

# Shortest line that still carries every field above.
RECORD_MIN_LENGTH = max(spec.end for spec in ISD_FIELDS)

# Keys of the soft-missing tally.
MISSING_FIELDS = ("elevation", "wind", "air_temperature", "air_pressure")

__all__ = [
    "AIR_PRESSURE",
    "AIR_TEMPERATURE",
    "DATE",
    "ELEVATION",
    "FieldSpec",
    "ISD_FIELDS",
    "LATITUDE",
    "LONGITUDE",
    "MISSING_FIELDS",
    "RECORD_MIN_LENGTH",
    "TIME",
    "USAF",
    "WBAN",
    "WIND_DIRECTION",
    "WIND_SPEED",
    "WIND_TYPE",
]
