"""
Custom exceptions for the cosmos metrics agent.

This module defines the exception hierarchy for a reporting cycle:
- Runtime transport failures (Docker unreachable, malformed payloads)
- Inconsistent snapshot pairs
- Report serialization failures
- Report delivery failures
- Startup configuration errors

Every exception carries a message and an optional details dict for
structured logging.
"""

from typing import Any


class AgentError(Exception):
    """
    Base exception for all agent errors.

    Parameters
    ----------
    message : str
        Human-readable error message
    details : dict[str, Any], optional
        Structured error details for logging/debugging

    Examples
    --------
    >>> error = AgentError("Cycle failed", details={"operation": "list"})
    >>> error.message
    'Cycle failed'
    >>> error.details["operation"]
    'list'
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class TransportError(AgentError):
    """
    Raised when the container runtime cannot be queried.

    Examples include:
    - Docker socket unreachable
    - Request timed out
    - Response body malformed or missing required counters
    """

    pass


class SnapshotMismatchError(AgentError):
    """
    Raised when a baseline/advanced snapshot pair cannot be compared.

    Happens when the two snapshots disagree on the number of per-core
    counters, e.g. a CPU was hot-plugged between the two samples.
    """

    pass


class SerializationError(AgentError):
    """Raised when a report cannot be encoded to JSON."""

    pass


class DeliveryError(AgentError):
    """
    Raised when the collector is unreachable or rejects the report.

    Examples include:
    - Connection refused
    - Delivery timeout
    - HTTP status >= 400
    """

    pass


class ConfigurationError(AgentError):
    """Raised when required startup configuration is missing or invalid."""

    pass
