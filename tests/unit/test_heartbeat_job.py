import pytest
import requests

from webtracker.jobs import heartbeat_job
from webtracker.jobs.heartbeat_job import HeartbeatJob


class _Response:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.mark.asyncio
async def test_heartbeat_skips_without_url():
    assert await HeartbeatJob("").run_once() == {"skipped": True, "reason": "not_configured"}


@pytest.mark.asyncio
async def test_heartbeat_ping_ok(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _Response(200)

    monkeypatch.setattr(heartbeat_job.requests, "get", fake_get)

    result = await HeartbeatJob("https://hc.example/ping").run_once()

    assert result == {"ok": True, "status_code": 200}
    assert calls == [("https://hc.example/ping", 5)]


@pytest.mark.asyncio
async def test_heartbeat_rejected(monkeypatch):
    monkeypatch.setattr(heartbeat_job.requests, "get", lambda url, timeout: _Response(503))

    result = await HeartbeatJob("https://hc.example/ping").run_once()

    assert result == {"ok": False, "status_code": 503}


@pytest.mark.asyncio
async def test_heartbeat_network_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(heartbeat_job.requests, "get", fake_get)

    result = await HeartbeatJob("https://hc.example/ping").run_once()

    assert result["ok"] is False
    assert "unreachable" in result["error"]
