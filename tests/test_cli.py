from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.verify_calls: List[Optional[int]] = []
        self.created: List[tuple[str, float]] = []
        self.reading_payload: Dict[str, Any] = {
            "id": "reading-1",
            "device_id": "esp32-a",
            "co2_level": 612.0,
            "created_at": "2024-01-01T12:00:00Z",
            "air_quality": "excellent",
        }
        self.closed = False

    def verify(self, count: Optional[int] = None) -> Dict[str, Any]:
        self.verify_calls.append(count)
        return {
            "digest": "0x" + "ab" * 32,
            "transaction_id": "0x" + "cd" * 32,
            "timestamp": "2024-01-01T12:00:10Z",
            "record_count": count or 5,
        }

    def get_window(self) -> Dict[str, Any]:
        return {
            "readings": [self.reading_payload],
            "latest": self.reading_payload,
            "summary": {
                "row_count": 1,
                "min_co2": 612.0,
                "max_co2": 612.0,
                "mean_co2": 612.0,
                "per_device_count": {"esp32-a": 1},
                "air_quality": "excellent",
            },
        }

    def get_latest(self) -> Dict[str, Any]:
        return self.reading_payload

    def create_reading(self, device_id: str, co2_level: float) -> Dict[str, Any]:
        self.created.append((device_id, co2_level))
        payload = dict(self.reading_payload)
        payload.update(device_id=device_id, co2_level=co2_level)
        payload.pop("air_quality")
        return payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_verify_command_uses_server_default(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["verify"])

    assert result.exit_code == 0
    assert "Verification Record" in result.stdout
    assert "record_count: 5" in result.stdout
    assert stub.verify_calls == [None]
    assert stub.closed is True


def test_verify_command_with_count(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://monitor:9000/", "verify", "--count", "3"])

    assert result.exit_code == 0
    assert stub.verify_calls == [3]
    assert stub.config.base_url == "http://monitor:9000"


def test_window_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["window"])

    assert result.exit_code == 0
    assert "esp32-a" in result.stdout
    assert "row_count: 1" in result.stdout
    assert "air_quality: excellent" in result.stdout


def test_latest_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["latest"])

    assert result.exit_code == 0
    assert "id: reading-1" in result.stdout
    assert "air_quality: excellent" in result.stdout


def test_ingest_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["ingest", "esp32-b", "950"])

    assert result.exit_code == 0
    assert "Reading stored" in result.stdout
    assert stub.created == [("esp32-b", 950.0)]
