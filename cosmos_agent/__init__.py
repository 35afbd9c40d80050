"""Cosmos agent - container metrics collection and reporting."""

from cosmos_agent.agent import CosmosAgent
from cosmos_agent.common.config import (
    AgentConfig,
    CollectorSettings,
    DockerSettings,
    LoggingSettings,
    load_config,
)
from cosmos_agent.common.exceptions import (
    AgentError,
    ConfigurationError,
    DeliveryError,
    SerializationError,
    SnapshotMismatchError,
    TransportError,
)
from cosmos_agent.common.models import (
    ContainerDescriptor,
    MetricsRecord,
    NormalizedContainerReport,
    PortMapping,
    StatsSnapshot,
)
from cosmos_agent.compute import compute_metrics, cpu_percent, normalize_name
from cosmos_agent.docker_handler import DockerTransport, RuntimeTransport
from cosmos_agent.dockerhandler import ContainerLister, StatsSampler
from cosmos_agent.exporter import ReportExporter
from cosmos_agent.metrics import MetricsCollector, MetricsPublisher, PublisherState

__all__ = [
    # Config
    "AgentConfig",
    "CollectorSettings",
    "DockerSettings",
    "LoggingSettings",
    "load_config",
    # Errors
    "AgentError",
    "ConfigurationError",
    "DeliveryError",
    "SerializationError",
    "SnapshotMismatchError",
    "TransportError",
    # Models
    "ContainerDescriptor",
    "MetricsRecord",
    "NormalizedContainerReport",
    "PortMapping",
    "StatsSnapshot",
    # Runtime
    "DockerTransport",
    "RuntimeTransport",
    "ContainerLister",
    "StatsSampler",
    # Metrics
    "compute_metrics",
    "cpu_percent",
    "normalize_name",
    "MetricsCollector",
    "MetricsPublisher",
    "PublisherState",
    "ReportExporter",
    # Agent
    "CosmosAgent",
]
