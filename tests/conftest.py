"""Pytest configuration and shared fixtures."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from cosmos_agent.common.models import StatsSnapshot


def make_container_entry(container_id: str, name: str | None = None, **overrides: Any) -> dict:
    """Build a raw ``GET /containers/json`` entry."""
    entry = {
        "Id": container_id,
        "Image": "nginx:latest",
        "Status": "Up 2 minutes",
        "Command": "nginx -g 'daemon off;'",
        "Created": 1700000000,
        "Names": [f"/{name or container_id}"],
        "Ports": [{"IP": "0.0.0.0", "PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"}],
    }
    entry.update(overrides)
    return entry


def make_stats(
    cpu_total: int = 1000,
    per_cpu: list[int] | None = None,
    system_total: int = 50000,
    rx: int = 200,
    tx: int = 100,
    usage: int = 512,
    limit: int = 1024,
) -> dict:
    """Build a raw Docker stats body."""
    return {
        "cpu_stats": {
            "cpu_usage": {
                "total_usage": cpu_total,
                "percpu_usage": per_cpu if per_cpu is not None else [250, 250, 250, 250],
            },
            "system_cpu_usage": system_total,
            "online_cpus": len(per_cpu) if per_cpu else 4,
        },
        "memory_stats": {"usage": usage, "limit": limit},
        "networks": {"eth0": {"rx_bytes": rx, "tx_bytes": tx}},
    }


class FakeTransport:
    """In-memory runtime transport.

    ``stats`` maps a container ID to the list of bodies returned by
    successive stats calls. Every call is recorded in ``calls``.
    """

    def __init__(self, containers: list[dict] | None = None, stats: dict | None = None):
        self.containers = containers or []
        self.stats = {key: list(value) for key, value in (stats or {}).items()}
        self.calls: list[tuple[str, Any]] = []
        self.host_info = {"Name": "docker-host-1"}
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def list_containers(self, all: bool = False) -> list[dict]:
        self.calls.append(("list", all))
        return self.containers

    async def container_stats(self, container_id: str) -> dict:
        self.calls.append(("stats", container_id))
        return self.stats[container_id].pop(0)

    async def info(self) -> dict:
        self.calls.append(("info", None))
        return self.host_info


@pytest.fixture
def snapshot():
    """Factory for StatsSnapshot objects."""

    def _make(**kwargs: Any) -> StatsSnapshot:
        defaults = {
            "cpu_total": 1000,
            "per_cpu": [250, 250, 250, 250],
            "system_total": 50000,
            "memory_usage": 512,
            "memory_limit": 1024,
            "rx_bytes": 200,
            "tx_bytes": 100,
        }
        defaults.update(kwargs)
        return StatsSnapshot(**defaults)

    return _make


@pytest.fixture
def fake_transport():
    """Transport with two running containers, each answering two stats calls."""
    return FakeTransport(
        containers=[make_container_entry("aaa111", "web-1"), make_container_entry("bbb222", "db")],
        stats={
            "aaa111": [
                make_stats(cpu_total=1000, system_total=50000, rx=200),
                make_stats(cpu_total=1500, system_total=50500, rx=300),
            ],
            "bbb222": [
                make_stats(cpu_total=10, system_total=50000, rx=50),
                make_stats(cpu_total=10, system_total=50500, rx=50),
            ],
        },
    )


@pytest.fixture
def mock_aiodocker(monkeypatch):
    """Patch aiodocker.Docker to return a mock client."""
    import aiodocker

    client = MagicMock()
    client.version = AsyncMock(return_value={"Version": "24.0.0"})
    client.close = AsyncMock()
    client.containers.list = AsyncMock(return_value=[])
    client.system.info = AsyncMock(return_value={"Name": "docker-host-1"})

    monkeypatch.setattr(aiodocker, "Docker", MagicMock(return_value=client))
    return client
