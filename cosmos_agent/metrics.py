"""Metrics collection and publishing for the cosmos agent.

Provides the collector that assembles one cycle's container reports and the
publisher that runs collection and export on a fixed interval.
"""

import asyncio
import contextlib
import logging
from enum import Enum

from cosmos_agent.common.exceptions import AgentError
from cosmos_agent.common.models import ContainerDescriptor, NormalizedContainerReport
from cosmos_agent.compute import compute_metrics, normalize_names
from cosmos_agent.dockerhandler import ContainerLister, StatsSampler
from cosmos_agent.exporter import ReportExporter

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Assembles normalized reports for every running container.

    Parameters
    ----------
    lister : ContainerLister
        Source of the containers to report on.
    sampler : StatsSampler
        Takes the baseline/advanced snapshot pair of each container.
    max_concurrency : int
        Containers sampled at the same time (default: 1, strictly sequential).
    """

    def __init__(
        self,
        lister: ContainerLister,
        sampler: StatsSampler,
        max_concurrency: int = 1,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.lister = lister
        self.sampler = sampler
        self.max_concurrency = max_concurrency

    async def collect(self) -> list[NormalizedContainerReport]:
        """Collect reports for all containers running at the start of the cycle.

        Returns
        -------
        list[NormalizedContainerReport]
            One report per listed container, in discovery order.

        Raises
        ------
        AgentError
            If listing or sampling any container fails. No partial report
            is returned.
        """
        containers = await self.lister.list()

        if self.max_concurrency == 1:
            return [await self._report(container) for container in containers]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(container: ContainerDescriptor) -> NormalizedContainerReport:
            async with semaphore:
                return await self._report(container)

        tasks = [asyncio.ensure_future(bounded(container)) for container in containers]
        try:
            # gather keeps argument order whatever the completion order
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _report(self, container: ContainerDescriptor) -> NormalizedContainerReport:
        """Sample, compute and normalize one container."""
        baseline, advanced = await self.sampler.sample_pair(container.id)
        stats = compute_metrics(baseline, advanced)

        return NormalizedContainerReport(
            id=container.id,
            image=container.image,
            status=container.status,
            command=container.command,
            created=container.created,
            names=normalize_names(container.names),
            ports=container.ports,
            stats=stats,
        )


class PublisherState(str, Enum):
    """Publisher loop state."""

    IDLE = "idle"
    REPORTING = "reporting"


class MetricsPublisher:
    """Collects and exports reports at regular intervals.

    The interval is measured from the end of one cycle to the start of the
    next, so long cycles push later ones back rather than overlapping.

    Failure handling is decided here and only here. With the ``"skip"``
    policy a failed cycle is logged and counted, nothing is sent for it and
    the loop carries on. With ``"abort"`` the error propagates out of the
    loop and stops the agent.

    Parameters
    ----------
    collector : MetricsCollector
        Collector instance for gathering reports.
    exporter : ReportExporter
        Exporter that serializes and delivers a cycle's reports.
    interval_seconds : float
        Interval between cycles (default: 5.0).
    error_policy : str
        ``"skip"`` (default) or ``"abort"``.
    """

    def __init__(
        self,
        collector: MetricsCollector,
        exporter: ReportExporter,
        interval_seconds: float = 5.0,
        error_policy: str = "skip",
    ):
        if error_policy not in ("skip", "abort"):
            raise ValueError(f"Unknown error policy: {error_policy}")
        self.collector = collector
        self.exporter = exporter
        self.interval = interval_seconds
        self.error_policy = error_policy
        self.state = PublisherState.IDLE
        self.cycles = 0
        self.failures = 0
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        """Check if the publishing loop is running."""
        return self._running

    async def run_once(self) -> bool:
        """Run a single collect-and-export cycle.

        Returns
        -------
        bool
            True if the report was delivered, False if the cycle was skipped.

        Raises
        ------
        AgentError
            If the cycle failed and the policy is ``"abort"``.
        """
        self.state = PublisherState.REPORTING
        self.cycles += 1
        try:
            reports = await self.collector.collect()
            await self.exporter.export(reports)
            return True
        except AgentError as e:
            self.failures += 1
            operation = e.details.get("operation", type(e).__name__)
            if self.error_policy == "abort":
                logger.error(f"Cycle {self.cycles} failed during {operation}: {e.message}")
                raise
            logger.warning(
                f"Cycle {self.cycles} skipped, failed during {operation}: {e.message}"
            )
            return False
        finally:
            self.state = PublisherState.IDLE

    async def run_forever(self) -> None:
        """Run cycles until stopped or, under ``"abort"``, until one fails."""
        self._running = True
        try:
            while self._running:
                await self.run_once()
                await asyncio.sleep(self.interval)
        finally:
            self._running = False

    async def start(self) -> None:
        """Start the publishing loop in the background."""
        if self._task is not None:
            if not self._task.done():
                return
            await self.stop()
        self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        """Stop the publishing loop.

        A loop that already ended on an aborted cycle is reaped here; its
        error is logged rather than raised.
        """
        self._running = False
        if self._task is None:
            return
        task = self._task
        try:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        except AgentError as e:
            logger.error(f"Publishing loop had stopped after a failed cycle: {e.message}")
        finally:
            self._task = None
