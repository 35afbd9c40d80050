"""Report serialization and delivery to the remote collector."""

import logging
from collections.abc import Sequence

import aiohttp
from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError

from cosmos_agent.common.exceptions import DeliveryError, SerializationError
from cosmos_agent.common.models import NormalizedContainerReport

logger = logging.getLogger(__name__)

_REPORT_ADAPTER = TypeAdapter(list[NormalizedContainerReport])

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "Connection": "close",
}


class ReportExporter:
    """Serializes cycle reports and POSTs them to the collector.

    Every delivery opens a fresh session and asks the server to close the
    connection afterwards; nothing is kept alive between cycles.

    Parameters
    ----------
    destination : str
        Collector URL.
    timeout_seconds : float
        Total timeout of one delivery.
    hostname : str, optional
        Runtime host name, sent as ``X-Agent-Host`` when known.
    """

    def __init__(
        self,
        destination: str,
        timeout_seconds: float = 10.0,
        hostname: str | None = None,
    ):
        self.destination = destination
        self.timeout_seconds = timeout_seconds
        self.hostname = hostname

    def serialize(self, reports: Sequence[NormalizedContainerReport]) -> bytes:
        """Encode reports as a JSON array using the wire field names.

        Raises
        ------
        SerializationError
            If the reports cannot be encoded.
        """
        try:
            return _REPORT_ADAPTER.dump_json(list(reports), by_alias=True, exclude_none=True)
        except (PydanticSerializationError, ValueError, TypeError) as e:
            raise SerializationError(
                "Encoding failed for container reports",
                details={"operation": "serialize", "count": len(reports), "error": str(e)},
            ) from e

    async def deliver(self, body: bytes) -> int:
        """POST an encoded report.

        Returns
        -------
        int
            HTTP status returned by the collector.

        Raises
        ------
        DeliveryError
            If the collector is unreachable, times out or answers >= 400.
        """
        headers = dict(JSON_HEADERS)
        if self.hostname:
            headers["X-Agent-Host"] = self.hostname

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.destination, data=body, headers=headers) as resp:
                    if resp.status >= 400:
                        text = await resp.text(errors="replace")
                        raise DeliveryError(
                            f"Collector rejected report with HTTP {resp.status}",
                            details={
                                "operation": "deliver",
                                "url": self.destination,
                                "status": resp.status,
                                "body": text[:200],
                            },
                        )
                    return resp.status
        except aiohttp.ClientError as e:
            raise DeliveryError(
                f"Collector unreachable: {e}",
                details={"operation": "deliver", "url": self.destination, "error": str(e)},
            ) from e
        except TimeoutError as e:
            raise DeliveryError(
                f"Delivery timed out after {self.timeout_seconds}s",
                details={"operation": "deliver", "url": self.destination},
            ) from e

    async def export(self, reports: Sequence[NormalizedContainerReport]) -> int:
        """Serialize and deliver one cycle's reports."""
        body = self.serialize(reports)
        status = await self.deliver(body)
        logger.info(f"Delivered {len(reports)} container reports ({len(body)} bytes, HTTP {status})")
        return status
