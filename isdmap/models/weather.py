"""In-memory station and measurement models."""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from types import MappingProxyType
from typing import Mapping, Union


@dataclass(frozen=True)
class CalmWind:
    pass


@dataclass(frozen=True)
class VariableWind:
    pass


@dataclass(frozen=True)
class NormalWind:
    speed: float  # m/s
    direction: int  # degrees from true north


Wind = Union[CalmWind, VariableWind, NormalWind]


@dataclass(frozen=True)
class WeatherMeasurement:
    """One retained observation; at least one of the value fields is set."""

    datetime: datetime
    wind: Wind | None = None
    air_temperature: float | None = None
    air_pressure: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.wind is None and self.air_temperature is None and self.air_pressure is None


@dataclass(frozen=True)
class WeatherStation:
    """A station and its chronologically ordered measurement series."""

    usaf: str
    wban: str
    latitude: float | None = None
    longitude: float | None = None
    elevation: int | None = None
    measurements: tuple[WeatherMeasurement, ...] = ()
    missing: Mapping[str, int] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "missing", MappingProxyType(dict(self.missing)))

    @property
    def station_id(self) -> str:
        return f"{self.usaf}-{self.wban}"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @cached_property
    def timestamps(self) -> tuple[datetime, ...]:
        return tuple(m.datetime for m in self.measurements)

    def window(self, start: datetime, end: datetime) -> tuple[WeatherMeasurement, ...]:
        """Return the measurements with ``start <= datetime < end``."""

        times = self.timestamps
        lo = bisect_left(times, start)
        hi = bisect_left(times, end, lo)
        return self.measurements[lo:hi]


__all__ = [
    "CalmWind",
    "NormalWind",
    "VariableWind",
    "WeatherMeasurement",
    "WeatherStation",
    "Wind",
]
