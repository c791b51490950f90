import time
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.mock_readings import MockReadingTable
from services.anchor import SimulatedAnchor
from services.errors import SourceUnavailable
from services.feed import LiveFeed
from services.verifier import BatchVerifier
from services.window import WindowManager

EXPECTED_SINGLE_DIGEST = "0xb1864709f8c3fc4569e3cbab538ceffb8a42f3146d49951bab13a17b2803c187"


class _Factory:
    """Callable stand-in for an lru_cache'd factory."""

    def __init__(self, build) -> None:
        self._build = build
        self._instance = None

    def __call__(self, *args, **kwargs):
        if self._instance is None:
            self._instance = self._build()
        return self._instance

    def cache_clear(self) -> None:
        self._instance = None


@pytest.fixture
def services(tmp_path):
    table = MockReadingTable(name="test", persistence_path=tmp_path / "readings.json")
    window = WindowManager(capacity=3)
    anchor = SimulatedAnchor(delay=0)
    verifier = BatchVerifier(anchor=anchor, fetch_timeout=1.0, anchor_timeout=1.0)
    feed = LiveFeed(table, window)
    return {
        "table": table,
        "window": window,
        "anchor": anchor,
        "verifier": verifier,
        "feed": feed,
    }


@pytest.fixture
def api_client(services, monkeypatch) -> Iterator[TestClient]:
    factories = {
        "build_default_table": _Factory(lambda: services["table"]),
        "build_default_window": _Factory(lambda: services["window"]),
        "build_default_verifier": _Factory(lambda: services["verifier"]),
        "build_default_feed": _Factory(lambda: services["feed"]),
    }
    for name, factory in factories.items():
        monkeypatch.setattr(f"app.main.{name}", factory)
        if name != "build_default_feed":
            monkeypatch.setattr(f"app.api.{name}", factory)

    app = create_app()
    with TestClient(app) as client:
        yield client


def _wait_for_window(client: TestClient, reading_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    last_payload: dict | None = None
    while time.monotonic() < deadline:
        response = client.get("/readings/window")
        assert response.status_code == 200
        last_payload = response.json()
        if any(reading["id"] == reading_id for reading in last_payload["readings"]):
            return last_payload
        time.sleep(0.02)
    pytest.fail(f"Reading {reading_id} never reached the window: {last_payload}")


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_lifespan_starts_feed(services, api_client: TestClient) -> None:
    assert services["feed"].running
    assert services["table"].subscriber_count() == 1


def test_lifespan_releases_subscription_on_shutdown(services, monkeypatch) -> None:
    for name in ("build_default_table", "build_default_window", "build_default_verifier", "build_default_feed"):
        key = name.replace("build_default_", "")
        monkeypatch.setattr(f"app.main.{name}", _Factory(lambda key=key: services[key]))

    with TestClient(create_app()):
        assert services["table"].subscriber_count() == 1

    assert services["table"].subscriber_count() == 0
    assert not services["feed"].running


def test_ingested_readings_flow_into_window(api_client: TestClient) -> None:
    response = api_client.post("/readings", json={"device_id": "esp32-a", "co2_level": 1500})

    assert response.status_code == 201
    created = response.json()
    assert created["device_id"] == "esp32-a"
    assert created["co2_level"] == 1500

    view = _wait_for_window(api_client, created["id"])
    assert view["latest"]["id"] == created["id"]
    assert view["latest"]["air_quality"] == "moderate"
    assert view["summary"]["row_count"] == 1

    latest = api_client.get("/readings/latest")
    assert latest.status_code == 200
    assert latest.json()["id"] == created["id"]


def test_window_is_bounded_and_ascending(api_client: TestClient) -> None:
    for second in range(5):
        response = api_client.post(
            "/readings",
            json={
                "id": f"r-{second}",
                "device_id": "esp32-a",
                "co2_level": 400 + second,
                "created_at": f"2024-01-01T12:00:0{second}Z",
            },
        )
        assert response.status_code == 201

    view = _wait_for_window(api_client, "r-4")
    assert [reading["id"] for reading in view["readings"]] == ["r-2", "r-3", "r-4"]


def test_latest_without_readings_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/readings/latest")

    assert response.status_code == 404


def test_invalid_reading_is_rejected(api_client: TestClient) -> None:
    response = api_client.post("/readings", json={"device_id": "esp32-a", "co2_level": -4})

    assert response.status_code == 422


def test_verify_returns_record(api_client: TestClient, services) -> None:
    api_client.post(
        "/readings",
        json={"id": "9", "device_id": "A", "co2_level": 450, "created_at": "2024-01-01T12:00:05Z"},
    )

    response = api_client.post("/verify")

    assert response.status_code == 200
    body = response.json()
    assert body["digest"] == EXPECTED_SINGLE_DIGEST
    assert body["record_count"] == 1
    assert body["transaction_id"].startswith("0x")
    assert body["timestamp"]
    assert services["anchor"].submitted == [EXPECTED_SINGLE_DIGEST]


def test_verify_respects_count(api_client: TestClient) -> None:
    for second in range(4):
        api_client.post(
            "/readings",
            json={
                "id": f"r-{second}",
                "device_id": "A",
                "co2_level": 500,
                "created_at": f"2024-01-01T12:00:0{second}Z",
            },
        )

    assert api_client.post("/verify", params={"count": 2}).json()["record_count"] == 2
    assert api_client.post("/verify").json()["record_count"] == 4
    assert api_client.post("/verify", params={"count": 0}).status_code == 422


def test_verify_without_readings_returns_not_found(api_client: TestClient) -> None:
    response = api_client.post("/verify")

    assert response.status_code == 404
    assert response.json()["detail"] == "No data available to verify."


def test_verify_maps_anchor_failure(api_client: TestClient, services) -> None:
    api_client.post("/readings", json={"device_id": "A", "co2_level": 450})
    services["anchor"].fail_with = "ledger offline"

    response = api_client.post("/verify")

    assert response.status_code == 502
    assert "ledger offline" in response.json()["detail"]


def test_verify_maps_source_failure(api_client: TestClient, services, monkeypatch) -> None:
    def offline(limit: int):
        raise SourceUnavailable("store offline")

    monkeypatch.setattr(services["table"], "latest", offline)

    response = api_client.post("/verify")

    assert response.status_code == 503
    assert "store offline" in response.json()["detail"]
