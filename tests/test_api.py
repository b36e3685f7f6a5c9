from __future__ import annotations

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from isdmap import create_app
from isdmap.core.config import Settings
from isdmap.services.ingest import discover_input_files, ingest_files
from isdmap.services.store import StationStore


@pytest.fixture
def store(tmp_path, isd_line, write_station_file) -> StationStore:
    data = tmp_path / "isd"
    write_station_file(
        "010010-99999-2016",
        [isd_line(time="0000", air_temperature=250), isd_line(time="0100")],
        directory=data,
    )
    write_station_file(
        "010020-99999-2016",
        [isd_line(usaf="010020", latitude=-33000, longitude=151000)] * 5
        + [isd_line(usaf="010021")],
        directory=data,
    )
    report = ingest_files(discover_input_files(data), workers=2)
    return StationStore.from_report(report)


@pytest.fixture
def client(store) -> TestClient:
    with TestClient(create_app(store=store, config=Settings())) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_root_landing(client):
    assert "tile.png" in client.get("/").json()["message"]


def test_world_tile_is_png(client):
    response = client.get("/api/map/0/0/0/tile.png")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    image = Image.open(BytesIO(response.content))
    assert image.size == (256, 256)
    assert image.mode == "RGB"
    assert image.getbbox() is not None


def test_tile_outside_zoom_level_is_404(client):
    assert client.get("/api/map/2/4/0/tile.png").status_code == 404
    assert client.get("/api/map/30/0/0/tile.png").status_code == 404


def test_negative_tile_coordinates_are_rejected(client):
    assert client.get("/api/map/1/-1/0/tile.png").status_code == 422


def test_station_listing(client):
    payload = client.get("/api/stations").json()

    assert payload["total"] == 1
    station = payload["stations"][0]
    assert station["station_id"] == "010010-99999"
    assert station["measurement_count"] == 2
    assert station["latitude"] == pytest.approx(70.933)
    assert station["first_measurement"].startswith("2016-01-01T00:00:00")


def test_ingest_summary_lists_failures(client):
    payload = client.get("/api/ingest").json()

    assert payload["files_total"] == 2
    assert payload["stations"] == 1
    assert payload["measurements"] == 2
    assert len(payload["failures"]) == 1
    assert "010020-99999-2016" in payload["failures"][0]["path"]
    assert "line 6" in payload["failures"][0]["message"]


def test_logs_endpoint(client):
    payload = client.get("/api/logs", params={"limit": 5}).json()
    assert isinstance(payload["logs"], list)
    assert len(payload["logs"]) <= 5


def test_startup_ingests_configured_directory(tmp_path, isd_line, write_station_file):
    data = tmp_path / "isd"
    write_station_file("010010-99999-2016", [isd_line()], directory=data)
    app = create_app(config=Settings(data_directory=str(data), ingest_threads=1))

    with TestClient(app) as test_client:
        assert test_client.get("/api/stations").json()["total"] == 1


def test_logs_filter_by_station(client):
    payload = client.get("/api/logs", params={"station_id": "010020-99999", "limit": 200}).json()

    assert payload["logs"]
    assert all(entry["station_id"] == "010020-99999" for entry in payload["logs"])
    assert any(
        entry["level"] == "ERROR" and entry["path"].endswith("010020-99999-2016") for entry in payload["logs"]
    )
