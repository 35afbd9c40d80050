"""Tests for metrics module."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeTransport, make_container_entry, make_stats

from cosmos_agent.common.exceptions import DeliveryError, SerializationError, TransportError
from cosmos_agent.dockerhandler import ContainerLister, StatsSampler
from cosmos_agent.metrics import MetricsCollector, MetricsPublisher, PublisherState


def make_collector(transport, max_concurrency: int = 1) -> MetricsCollector:
    return MetricsCollector(
        lister=ContainerLister(transport),
        sampler=StatsSampler(transport),
        max_concurrency=max_concurrency,
    )


class SlowTransport(FakeTransport):
    """Transport whose stats calls for some containers take longer."""

    def __init__(self, delays: dict[str, float], **kwargs):
        super().__init__(**kwargs)
        self.delays = delays
        self.completed: list[str] = []

    async def container_stats(self, container_id: str) -> dict:
        await asyncio.sleep(self.delays.get(container_id, 0))
        result = await super().container_stats(container_id)
        self.completed.append(container_id)
        return result


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.mark.asyncio
    async def test_collect_end_to_end(self, fake_transport):
        """Test reports are assembled from list, samples and computation."""
        reports = await make_collector(fake_transport).collect()

        assert [r.id for r in reports] == ["aaa111", "bbb222"]
        web = reports[0]
        assert web.names == ["web-1"]
        assert web.image == "nginx:latest"
        assert web.ports[0].public_port == 8080
        assert web.stats.cpu.total_utilization == pytest.approx(400.0)
        assert web.stats.network.rx_bytes == 300
        assert web.stats.network.rx_bytes_delta == 100
        assert reports[1].stats.cpu.total_utilization == 0.0

    @pytest.mark.asyncio
    async def test_sequential_call_order(self, fake_transport):
        """Test list once, then two strictly ordered samples per container."""
        await make_collector(fake_transport).collect()

        assert fake_transport.calls == [
            ("list", False),
            ("stats", "aaa111"),
            ("stats", "aaa111"),
            ("stats", "bbb222"),
            ("stats", "bbb222"),
        ]

    @pytest.mark.asyncio
    async def test_empty_host(self):
        """Test no containers gives an empty report."""
        assert await make_collector(FakeTransport()).collect() == []

    @pytest.mark.asyncio
    async def test_concurrent_preserves_discovery_order(self):
        """Test report order follows discovery, not completion."""
        ids = ["A", "B", "C"]
        transport = SlowTransport(
            delays={"A": 0.05, "B": 0.0, "C": 0.02},
            containers=[make_container_entry(cid) for cid in ids],
            stats={cid: [make_stats(), make_stats(system_total=60000)] for cid in ids},
        )

        reports = await make_collector(transport, max_concurrency=3).collect()

        assert [r.id for r in reports] == ["A", "B", "C"]
        assert transport.completed[-1] == "A"

    @pytest.mark.asyncio
    async def test_concurrent_keeps_pair_order(self):
        """Test baseline is taken before advanced for every container."""
        ids = ["A", "B"]
        transport = SlowTransport(
            delays={"A": 0.01},
            containers=[make_container_entry(cid) for cid in ids],
            stats={
                cid: [make_stats(cpu_total=1000), make_stats(cpu_total=1500, system_total=50500)]
                for cid in ids
            },
        )

        reports = await make_collector(transport, max_concurrency=2).collect()

        assert all(r.stats.cpu.total_utilization == pytest.approx(400.0) for r in reports)

    @pytest.mark.asyncio
    async def test_sampling_failure_aborts_cycle(self, fake_transport):
        """Test one failing container means no report at all."""
        fake_transport.stats["bbb222"] = [{"bogus": True}, {"bogus": True}]

        with pytest.raises(TransportError):
            await make_collector(fake_transport).collect()

    @pytest.mark.asyncio
    async def test_concurrent_failure_reaps_other_containers(self):
        """Test a failing container leaves no sampling task behind."""
        transport = SlowTransport(
            delays={"B": 10.0},
            containers=[make_container_entry("A"), make_container_entry("B")],
            stats={"A": [{"bogus": True}], "B": [make_stats(), make_stats()]},
        )

        with pytest.raises(TransportError):
            await make_collector(transport, max_concurrency=2).collect()

        pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
        assert pending == []
        assert "B" not in transport.completed

    @pytest.mark.asyncio
    async def test_container_set_fixed_at_cycle_start(self, fake_transport):
        """Test containers appearing after listing are not reported."""
        collector = make_collector(fake_transport)
        original_sample = collector.sampler.sample_pair

        async def sample_pair(container_id):
            fake_transport.containers.append(make_container_entry("late"))
            return await original_sample(container_id)

        collector.sampler.sample_pair = sample_pair

        reports = await collector.collect()

        assert [r.id for r in reports] == ["aaa111", "bbb222"]

    def test_invalid_concurrency(self, fake_transport):
        """Test max_concurrency must be positive."""
        with pytest.raises(ValueError):
            make_collector(fake_transport, max_concurrency=0)


class TestMetricsPublisher:
    """Tests for MetricsPublisher."""

    def make_publisher(self, collect=None, export=None, **kwargs) -> MetricsPublisher:
        collector = MagicMock()
        collector.collect = collect or AsyncMock(return_value=[])
        exporter = MagicMock()
        exporter.export = export or AsyncMock(return_value=200)
        return MetricsPublisher(collector=collector, exporter=exporter, **kwargs)

    @pytest.mark.asyncio
    async def test_run_once_delivers(self):
        """Test a successful cycle exports the collected reports."""
        publisher = self.make_publisher(collect=AsyncMock(return_value=["r1"]))

        assert await publisher.run_once() is True

        publisher.exporter.export.assert_awaited_once_with(["r1"])
        assert publisher.cycles == 1
        assert publisher.failures == 0
        assert publisher.state is PublisherState.IDLE

    @pytest.mark.asyncio
    async def test_state_reporting_during_cycle(self):
        """Test state is REPORTING while a cycle runs."""
        seen = []

        async def collect():
            seen.append(publisher.state)
            return []

        publisher = self.make_publisher(collect=collect)
        await publisher.run_once()

        assert seen == [PublisherState.REPORTING]
        assert publisher.state is PublisherState.IDLE

    @pytest.mark.asyncio
    async def test_skip_policy_on_transport_error(self):
        """Test a failed fetch skips delivery and the cycle returns False."""
        publisher = self.make_publisher(
            collect=AsyncMock(side_effect=TransportError("down", {"operation": "list"}))
        )

        assert await publisher.run_once() is False

        publisher.exporter.export.assert_not_awaited()
        assert publisher.failures == 1
        assert publisher.state is PublisherState.IDLE

    @pytest.mark.asyncio
    async def test_skip_policy_on_delivery_error(self):
        """Test a failed delivery is counted and swallowed under skip."""
        publisher = self.make_publisher(export=AsyncMock(side_effect=DeliveryError("refused")))

        assert await publisher.run_once() is False
        assert publisher.failures == 1

    @pytest.mark.asyncio
    async def test_abort_policy_reraises(self):
        """Test abort policy propagates the error."""
        publisher = self.make_publisher(
            export=AsyncMock(side_effect=SerializationError("bad", {"operation": "serialize"})),
            error_policy="abort",
        )

        with pytest.raises(SerializationError):
            await publisher.run_once()

        assert publisher.state is PublisherState.IDLE

    @pytest.mark.asyncio
    async def test_loop_continues_after_failure(self):
        """Test skip policy keeps cycling after a failed cycle."""
        calls = {"n": 0}

        async def collect():
            calls["n"] += 1
            if calls["n"] == 1:
                raise TransportError("down")
            return []

        publisher = self.make_publisher(collect=collect, interval_seconds=0.001)

        await publisher.start()
        for _ in range(200):
            if publisher.cycles >= 3:
                break
            await asyncio.sleep(0.005)
        await publisher.stop()

        assert publisher.cycles >= 3
        assert publisher.failures == 1
        assert publisher.exporter.export.await_count >= 2

    @pytest.mark.asyncio
    async def test_abort_policy_stops_loop(self):
        """Test run_forever ends on the first failure under abort."""
        publisher = self.make_publisher(
            collect=AsyncMock(side_effect=TransportError("down")),
            error_policy="abort",
            interval_seconds=0.001,
        )

        with pytest.raises(TransportError):
            await publisher.run_forever()

        assert publisher.cycles == 1
        assert publisher.is_running is False

    @pytest.mark.asyncio
    async def test_interval_after_cycle(self, monkeypatch):
        """Test the loop sleeps the interval after every cycle."""
        sleeps = []
        publisher = self.make_publisher(interval_seconds=5.0)

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 2:
                publisher._running = False

        monkeypatch.setattr("cosmos_agent.metrics.asyncio.sleep", fake_sleep)
        await publisher.run_forever()

        assert sleeps == [5.0, 5.0]
        assert publisher.cycles == 2

    @pytest.mark.asyncio
    async def test_start_stop(self):
        """Test start runs in background and stop cancels it."""
        publisher = self.make_publisher(interval_seconds=10)

        await publisher.start()
        await asyncio.sleep(0.01)
        assert publisher.is_running is True

        await publisher.stop()
        assert publisher.is_running is False
        assert publisher._task is None

    @pytest.mark.asyncio
    async def test_stop_after_aborted_loop(self):
        """Test stop reaps a background loop that ended on an aborted cycle."""
        publisher = self.make_publisher(
            collect=AsyncMock(side_effect=TransportError("down", {"operation": "list"})),
            error_policy="abort",
            interval_seconds=0.001,
        )

        await publisher.start()
        await asyncio.sleep(0.05)
        assert publisher.is_running is False

        await publisher.stop()

        assert publisher._task is None
        assert publisher.failures == 1

    @pytest.mark.asyncio
    async def test_restart_after_aborted_loop(self):
        """Test start launches a new loop once the previous one has ended."""
        publisher = self.make_publisher(
            collect=AsyncMock(side_effect=TransportError("down")),
            error_policy="abort",
            interval_seconds=0.001,
        )
        await publisher.start()
        await asyncio.sleep(0.05)

        publisher.collector.collect = AsyncMock(return_value=[])
        await publisher.start()
        await asyncio.sleep(0.01)

        assert publisher.is_running is True
        await publisher.stop()

    def test_unknown_policy(self):
        """Test unknown error policies are refused."""
        with pytest.raises(ValueError):
            self.make_publisher(error_policy="retry")
