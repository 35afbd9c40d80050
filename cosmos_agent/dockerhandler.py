"""Container discovery and stats sampling on top of a runtime transport."""

import asyncio
import logging
import time
from typing import Any

from pydantic import ValidationError

from cosmos_agent.common.exceptions import TransportError
from cosmos_agent.common.models import ContainerDescriptor, StatsSnapshot
from cosmos_agent.docker_handler.transport import RuntimeTransport

logger = logging.getLogger(__name__)


class ContainerLister:
    """Lists the running containers on the host.

    Parameters
    ----------
    transport : RuntimeTransport
        Transport used to reach the runtime.
    """

    def __init__(self, transport: RuntimeTransport):
        self.transport = transport

    async def list(self) -> list[ContainerDescriptor]:
        """Fetch running containers in the order the runtime returns them.

        Returns
        -------
        list[ContainerDescriptor]
            One descriptor per running container.

        Raises
        ------
        TransportError
            If the runtime is unreachable or an entry is malformed.
        """
        entries = await self.transport.list_containers(all=False)
        try:
            containers = [ContainerDescriptor.model_validate(entry) for entry in entries]
        except ValidationError as e:
            raise TransportError(
                "Malformed container entry from runtime",
                details={"operation": "list containers", "errors": e.errors(include_url=False)},
            ) from e

        logger.debug(f"Listed {len(containers)} running containers")
        return containers


class StatsSampler:
    """Takes statistics snapshots of a single container.

    A cycle calls :meth:`sample_pair`, which reads the same container twice.
    With the default ``window`` of 0 the two requests are issued back to
    back, so the sampling window is whatever the second round trip takes;
    the derived rates therefore depend on runtime latency. A positive
    ``window`` sleeps that many seconds between the two requests.

    Parameters
    ----------
    transport : RuntimeTransport
        Transport used to reach the runtime.
    window : float
        Extra delay between the baseline and advanced samples, in seconds.
    """

    def __init__(self, transport: RuntimeTransport, window: float = 0.0):
        if window < 0:
            raise ValueError(f"Sampling window must be >= 0, got {window}")
        self.transport = transport
        self.window = window

    async def sample(self, container_id: str) -> StatsSnapshot:
        """Take one snapshot.

        Parameters
        ----------
        container_id : str
            Container ID.

        Returns
        -------
        StatsSnapshot
            Counters at the time the response arrived.

        Raises
        ------
        TransportError
            If the runtime is unreachable or the body is malformed.
        """
        raw = await self.transport.container_stats(container_id)
        return self._parse_snapshot(container_id, raw, read_at=time.monotonic())

    async def sample_pair(self, container_id: str) -> tuple[StatsSnapshot, StatsSnapshot]:
        """Take the baseline snapshot, then the advanced one.

        Parameters
        ----------
        container_id : str
            Container ID.

        Returns
        -------
        tuple[StatsSnapshot, StatsSnapshot]
            ``(baseline, advanced)``, always in that order.
        """
        baseline = await self.sample(container_id)
        if self.window > 0:
            await asyncio.sleep(self.window)
        advanced = await self.sample(container_id)

        logger.debug(
            f"Sampled {container_id[:12]} over "
            f"{(advanced.read_at - baseline.read_at) * 1000:.1f} ms"
        )
        return baseline, advanced

    def _parse_snapshot(
        self, container_id: str, raw: dict[str, Any], read_at: float
    ) -> StatsSnapshot:
        """Map a Docker stats body onto a StatsSnapshot."""
        try:
            cpu_stats = raw["cpu_stats"]
            cpu_usage = cpu_stats["cpu_usage"]
            mem_stats = raw.get("memory_stats") or {}

            # Older engines report a single "network" block instead of "networks"
            networks = raw.get("networks")
            if networks is None:
                networks = {"default": raw["network"]} if raw.get("network") else {}

            return StatsSnapshot(
                cpu_total=cpu_usage["total_usage"],
                per_cpu=cpu_usage.get("percpu_usage") or [],
                system_total=cpu_stats.get("system_cpu_usage") or 0,
                online_cpus=cpu_stats.get("online_cpus") or 0,
                memory_usage=mem_stats.get("usage") or 0,
                memory_limit=mem_stats.get("limit") or 0,
                rx_bytes=sum(iface.get("rx_bytes", 0) for iface in networks.values()),
                tx_bytes=sum(iface.get("tx_bytes", 0) for iface in networks.values()),
                read_at=read_at,
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise TransportError(
                f"Malformed stats for container: {container_id}",
                details={"operation": "stats", "container_id": container_id, "error": str(e)},
            ) from e
