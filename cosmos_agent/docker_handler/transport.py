"""
Async Docker transport for the cosmos metrics agent.

This module is the only place that talks to the container runtime. It
provides:
- A ``RuntimeTransport`` protocol with the two runtime queries a cycle needs
  (list running containers, one stats snapshot) plus daemon info
- ``DockerTransport``, the aiodocker implementation of that protocol
- Translation of every runtime failure into ``TransportError``

Responses are returned as parsed JSON (dicts); interpreting them is left to
the lister and sampler.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

import aiodocker
import aiohttp
from aiodocker.exceptions import DockerError

from cosmos_agent.common.exceptions import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys of a `GET /containers/json` entry that the lister reads
LIST_FIELDS = ("Id", "Image", "Status", "Command", "Created", "Names", "Ports")


class RuntimeTransport(Protocol):
    """Request/response contract against the local container runtime."""

    async def list_containers(self, all: bool = False) -> list[dict[str, Any]]: ...

    async def container_stats(self, container_id: str) -> dict[str, Any]: ...

    async def info(self) -> dict[str, Any]: ...


class DockerTransport:
    """
    aiodocker-backed runtime transport.

    Parameters
    ----------
    docker_url : str, optional
        Docker daemon URL (default: unix:///var/run/docker.sock)
    request_timeout : float, optional
        Timeout for a single request in seconds (default: none)

    Examples
    --------
    >>> async def example():
    ...     async with DockerTransport() as transport:
    ...         containers = await transport.list_containers()
    ...         print(f"Found {len(containers)} containers")
    >>> asyncio.run(example())
    Found 0 containers
    """

    def __init__(
        self,
        docker_url: str = "unix:///var/run/docker.sock",
        request_timeout: float | None = None,
    ):
        self.docker_url = docker_url
        self.request_timeout = request_timeout
        self._client: aiodocker.Docker | None = None
        self._connected = False

    async def connect(self) -> None:
        """
        Connect to Docker daemon.

        Raises
        ------
        TransportError
            If the daemon cannot be reached
        """
        if self._connected and self._client:
            logger.debug("Already connected to Docker daemon")
            return

        try:
            self._client = aiodocker.Docker(url=self.docker_url)
        except (ValueError, OSError) as e:
            raise TransportError(
                f"Cannot create Docker client for {self.docker_url}",
                details={"url": self.docker_url, "error": str(e)},
            ) from e

        try:
            await self._request("version", self._client.version())
            self._connected = True
            logger.info(f"Connected to Docker daemon at {self.docker_url}")
        except TransportError:
            await self.close()
            raise

    async def close(self) -> None:
        """Close Docker client connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._connected = False
            logger.info("Closed Docker client connection")

    @property
    def client(self) -> aiodocker.Docker:
        """
        Get Docker client instance.

        Raises
        ------
        TransportError
            If not connected
        """
        if not self._connected or not self._client:
            raise TransportError(
                "Docker client not connected. Call connect() first.",
                details={"connected": self._connected},
            )
        return self._client

    async def __aenter__(self) -> "DockerTransport":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    # =========================================================================
    # Runtime Queries
    # =========================================================================

    async def list_containers(self, all: bool = False) -> list[dict[str, Any]]:
        """
        List containers as returned by ``GET /containers/json``.

        Parameters
        ----------
        all : bool
            Include stopped containers (default: False)

        Returns
        -------
        list[dict[str, Any]]
            Raw container entries, in runtime order

        Raises
        ------
        TransportError
            If listing fails
        """
        containers = await self._request(
            "list containers", self.client.containers.list(all=all)
        )
        return [
            {key: container[key] for key in LIST_FIELDS if key in container}
            for container in containers
        ]

    async def container_stats(self, container_id: str) -> dict[str, Any]:
        """
        Take one statistics snapshot of a container.

        Parameters
        ----------
        container_id : str
            Container ID

        Returns
        -------
        dict[str, Any]
            Raw stats body

        Raises
        ------
        TransportError
            If the request fails or the body is not a mapping
        """
        container = self.client.containers.container(container_id)
        stats = await self._request(
            f"stats {container_id[:12]}",
            container.stats(stream=False),
            container_id=container_id,
        )
        # aiodocker returns a list even with stream=False
        if isinstance(stats, list):
            stats = stats[0] if stats else None
        if not isinstance(stats, dict):
            raise TransportError(
                f"Malformed stats for container: {container_id}",
                details={"operation": "stats", "container_id": container_id},
            )
        return stats

    async def info(self) -> dict[str, Any]:
        """
        Get Docker daemon system information.

        Returns
        -------
        dict[str, Any]
            System information
        """
        return await self._request("info", self.client.system.info())

    async def _request(self, operation: str, call: Awaitable[T], **details: Any) -> T:
        """Await a runtime call, translating failures into TransportError."""
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout)
        except DockerError as e:
            raise TransportError(
                f"Docker API error during {operation}: {e.message}",
                details={"operation": operation, "status": e.status, **details},
            ) from e
        except TimeoutError as e:
            raise TransportError(
                f"Timed out during {operation}",
                details={"operation": operation, "timeout": self.request_timeout, **details},
            ) from e
        except TypeError as e:
            # aiodocker builds containers from each entry of the body
            raise TransportError(
                f"Malformed response from Docker daemon during {operation}",
                details={"operation": operation, "error": str(e), **details},
            ) from e
        except (aiohttp.ClientError, OSError, ValueError) as e:
            raise TransportError(
                f"Docker daemon unreachable during {operation}: {e}",
                details={"operation": operation, "error": str(e), **details},
            ) from e
