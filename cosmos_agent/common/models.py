"""
Pydantic data models for the cosmos metrics agent.

This module defines the structures that flow through one reporting cycle:
- Container descriptors as listed by the runtime
- Raw statistics snapshots
- Derived metrics records
- Normalized container reports (the wire schema)

Wire field names (``Id``, ``Stats``, ``RxBytesDelta``...) are fixed by the
collector and are produced by serializing with ``by_alias=True``.
"""

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Runtime-side Models
# =============================================================================


class PortMapping(BaseModel):
    """
    A single port mapping of a container, passed through untouched.

    Parameters
    ----------
    private_port : int
        Port inside the container
    public_port : int, optional
        Port published on the host
    type : str, optional
        Protocol ("tcp", "udp", ...)
    ip : str, optional
        Host IP the port is bound to
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    private_port: int = Field(..., alias="PrivatePort")
    public_port: int | None = Field(None, alias="PublicPort")
    type: str | None = Field(None, alias="Type")
    ip: str | None = Field(None, alias="IP")


class ContainerDescriptor(BaseModel):
    """
    A running container as returned by the runtime's list call.

    Parameters
    ----------
    id : str
        Container ID, unique per container instance
    image : str
        Image reference
    status : str
        Human readable status ("Up 3 hours")
    command : str
        Command line
    created : int
        Creation timestamp (seconds since epoch)
    names : list[str]
        Raw names, each starting with "/"
    ports : list[PortMapping]
        Port mappings

    Examples
    --------
    >>> desc = ContainerDescriptor.model_validate(
    ...     {"Id": "abc", "Image": "nginx", "Status": "Up", "Command": "nginx",
    ...      "Created": 1, "Names": ["/web-1"], "Ports": []}
    ... )
    >>> desc.names
    ['/web-1']
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., alias="Id")
    image: str = Field(..., alias="Image")
    status: str = Field("", alias="Status")
    command: str = Field("", alias="Command")
    created: int = Field(..., alias="Created")
    names: list[str] = Field(default_factory=list, alias="Names")
    ports: list[PortMapping] = Field(default_factory=list, alias="Ports")


class StatsSnapshot(BaseModel):
    """
    Point-in-time read of a container's cumulative counters.

    All counters are cumulative for the lifetime of the container.

    Parameters
    ----------
    cpu_total : int
        Total CPU time consumed by the container (ns)
    per_cpu : list[int]
        Cumulative CPU time per logical core (empty on cgroup v2 hosts)
    system_total : int
        Cumulative host-wide CPU time (ns)
    online_cpus : int
        Number of online CPUs reported by the runtime (0 if unknown)
    memory_usage : int
        Memory usage in bytes
    memory_limit : int
        Memory limit in bytes
    rx_bytes : int
        Bytes received, summed over all interfaces
    tx_bytes : int
        Bytes sent, summed over all interfaces
    read_at : float
        Monotonic clock reading when the snapshot arrived
    """

    model_config = ConfigDict(frozen=True)

    cpu_total: int = Field(..., ge=0)
    per_cpu: list[int] = Field(default_factory=list)
    system_total: int = Field(0, ge=0)
    online_cpus: int = Field(0, ge=0)
    memory_usage: int = Field(0, ge=0)
    memory_limit: int = Field(0, ge=0)
    rx_bytes: int = Field(0, ge=0)
    tx_bytes: int = Field(0, ge=0)
    read_at: float = Field(0.0, exclude=True)


# =============================================================================
# Report Models
# =============================================================================


class NetworkMetrics(BaseModel):
    """Absolute network counters and their delta over the sampling window."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rx_bytes: int = Field(0, ge=0, alias="RxBytes")
    tx_bytes: int = Field(0, ge=0, alias="TxBytes")
    rx_bytes_delta: int = Field(0, ge=0, alias="RxBytesDelta")
    tx_bytes_delta: int = Field(0, ge=0, alias="TxBytesDelta")


class CpuMetrics(BaseModel):
    """Aggregate and per-core CPU utilization percentages."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_utilization: float = Field(0.0, ge=0, alias="TotalUtilization")
    per_cpu_utilization: list[float] = Field(
        default_factory=list, alias="PerCpuUtilization"
    )


class MemoryMetrics(BaseModel):
    """Memory usage and limit taken from the advanced snapshot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    limit: int = Field(0, ge=0, alias="Limit")
    usage: int = Field(0, ge=0, alias="Usage")


class MetricsRecord(BaseModel):
    """
    Metrics derived from one baseline/advanced snapshot pair.

    Examples
    --------
    >>> record = MetricsRecord(
    ...     network=NetworkMetrics(rx_bytes=180),
    ...     cpu=CpuMetrics(total_utilization=12.5),
    ...     memory=MemoryMetrics(limit=1024, usage=512),
    ... )
    >>> record.model_dump(by_alias=True)["Network"]["RxBytes"]
    180
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    network: NetworkMetrics = Field(default_factory=NetworkMetrics, alias="Network")
    cpu: CpuMetrics = Field(default_factory=CpuMetrics, alias="Cpu")
    memory: MemoryMetrics = Field(default_factory=MemoryMetrics, alias="Memory")


class NormalizedContainerReport(BaseModel):
    """
    Externally visible report for one container in one cycle.

    Parameters
    ----------
    id : str
        Container ID
    image : str
        Image reference
    status : str
        Human readable status
    command : str
        Command line
    created : int
        Creation timestamp
    names : list[str]
        Display names (leading "/" stripped)
    ports : list[PortMapping]
        Port mappings
    stats : MetricsRecord
        Derived metrics
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., alias="Id")
    image: str = Field(..., alias="Image")
    status: str = Field("", alias="Status")
    command: str = Field("", alias="Command")
    created: int = Field(..., alias="Created")
    names: list[str] = Field(default_factory=list, alias="Names")
    ports: list[PortMapping] = Field(default_factory=list, alias="Ports")
    stats: MetricsRecord = Field(..., alias="Stats")
