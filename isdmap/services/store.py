"""Read-only station collection shared by the tile routes."""

from __future__ import annotations

from dataclasses import dataclass, field

from prometheus_client import Gauge

from isdmap.models import WeatherStation
from isdmap.services.ingest import IngestReport

STATIONS_LOADED = Gauge(
    "isdmap_stations_loaded",
    "Stations held in the published station store.",
)


@dataclass(frozen=True)
class StationStore:
    """Published once ingestion has finished; never mutated afterwards."""

    stations: tuple[WeatherStation, ...] = ()
    report: IngestReport = field(default_factory=IngestReport)

    @classmethod
    def from_report(cls, report: IngestReport) -> "StationStore":
        store = cls(stations=tuple(report.stations), report=report)
        STATIONS_LOADED.set(len(store.stations))
        return store

    def __len__(self) -> int:
        return len(self.stations)


__all__ = ["StationStore", "STATIONS_LOADED"]
