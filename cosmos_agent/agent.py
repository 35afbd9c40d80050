"""Agent wiring for the cosmos metrics agent.

Builds the transport, collector, exporter and publisher from an
:class:`AgentConfig` and owns their lifecycle.
"""

import logging

from cosmos_agent.common.config import AgentConfig
from cosmos_agent.common.exceptions import TransportError
from cosmos_agent.common.models import NormalizedContainerReport
from cosmos_agent.docker_handler.transport import DockerTransport
from cosmos_agent.dockerhandler import ContainerLister, StatsSampler
from cosmos_agent.exporter import ReportExporter
from cosmos_agent.metrics import MetricsCollector, MetricsPublisher

logger = logging.getLogger(__name__)


class CosmosAgent:
    """Agent running on a Docker host, reporting container metrics.

    Parameters
    ----------
    config : AgentConfig
        Loaded agent configuration.
    transport : DockerTransport, optional
        Runtime transport (default: built from ``config.docker``).
    """

    def __init__(self, config: AgentConfig, transport: DockerTransport | None = None):
        self.config = config
        self.transport = transport or DockerTransport(
            docker_url=config.docker.docker_host,
            request_timeout=config.docker.request_timeout_seconds,
        )
        self.hostname: str | None = None

        collector_settings = config.collector
        self.collector = MetricsCollector(
            lister=ContainerLister(self.transport),
            sampler=StatsSampler(self.transport, window=collector_settings.sampling_window_seconds),
            max_concurrency=collector_settings.max_concurrency,
        )
        self.exporter = ReportExporter(
            destination=collector_settings.cosmos_host,
            timeout_seconds=collector_settings.delivery_timeout_seconds,
        )
        self.publisher = MetricsPublisher(
            collector=self.collector,
            exporter=self.exporter,
            interval_seconds=collector_settings.report_interval_seconds,
            error_policy=collector_settings.error_policy,
        )
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the agent is running."""
        return self._running

    async def connect(self) -> None:
        """Connect to the runtime and look up the host name."""
        await self.transport.connect()
        try:
            info = await self.transport.info()
            self.hostname = info.get("Name") or None
        except TransportError as e:
            logger.warning(f"Could not read Docker host name: {e.message}")
        self.exporter.hostname = self.hostname
        logger.info(
            f"Reporting containers of {self.hostname or 'unknown host'} "
            f"to {self.config.collector.cosmos_host}"
        )

    async def start(self) -> None:
        """Start the agent's background publishing loop."""
        if self._running:
            return
        await self.connect()
        await self.publisher.start()
        self._running = True

    async def stop(self) -> None:
        """Stop the agent."""
        if not self._running:
            return
        self._running = False
        try:
            await self.publisher.stop()
        finally:
            await self.transport.close()

    async def run_forever(self) -> None:
        """Connect and publish in the foreground until cancelled or aborted."""
        await self.connect()
        self._running = True
        try:
            await self.publisher.run_forever()
        finally:
            self._running = False
            await self.transport.close()

    async def collect_once(self) -> list[NormalizedContainerReport]:
        """Collect one cycle's reports without delivering them."""
        await self.transport.connect()
        try:
            return await self.collector.collect()
        finally:
            await self.transport.close()

    async def report_once(self) -> bool:
        """Run exactly one collect-and-export cycle."""
        await self.connect()
        try:
            return await self.publisher.run_once()
        finally:
            await self.transport.close()
