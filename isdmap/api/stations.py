"""Station listing and ingestion summary endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from isdmap.api.deps import get_store
from isdmap.models import WeatherStation
from isdmap.services.store import StationStore

router = APIRouter(tags=["stations"])


class StationSummary(BaseModel):
    station_id: str
    usaf: str
    wban: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[int] = None
    measurement_count: int = 0
    first_measurement: Optional[datetime] = None
    last_measurement: Optional[datetime] = None

    @classmethod
    def from_station(cls, station: WeatherStation) -> "StationSummary":
        times = station.timestamps
        return cls(
            station_id=station.station_id,
            usaf=station.usaf,
            wban=station.wban,
            latitude=station.latitude,
            longitude=station.longitude,
            elevation=station.elevation,
            measurement_count=len(station.measurements),
            first_measurement=times[0] if times else None,
            last_measurement=times[-1] if times else None,
        )


class StationList(BaseModel):
    total: int
    stations: List[StationSummary]


class FailureOut(BaseModel):
    path: str
    message: str


class IngestSummary(BaseModel):
    files_total: int
    stations: int
    measurements: int
    failures: List[FailureOut] = Field(default_factory=list)
    missing: dict[str, int] = Field(
        default_factory=dict,
        description="Optional values outside their valid range, by field.",
    )
    elapsed_seconds: float
    files_per_second: float


@router.get("/stations", response_model=StationList)
def list_stations(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    store: StationStore = Depends(get_store),
) -> StationList:
    page = store.stations[offset : offset + limit]
    return StationList(total=len(store), stations=[StationSummary.from_station(s) for s in page])


@router.get("/ingest", response_model=IngestSummary)
def ingest_summary(store: StationStore = Depends(get_store)) -> IngestSummary:
    report = store.report
    return IngestSummary(
        files_total=report.files_total,
        stations=len(report.stations),
        measurements=report.measurements_total,
        failures=[FailureOut(path=f.path, message=f.message) for f in report.failures],
        missing=dict(report.missing),
        elapsed_seconds=report.elapsed_seconds,
        files_per_second=report.files_per_second,
    )


__all__ = ["router"]
