"""Metrics derivation and name normalization.

Pure functions that turn a baseline/advanced pair of stats snapshots into a
:class:`MetricsRecord`, and runtime container names into display names. No
I/O happens here.
"""

from collections.abc import Iterable

from cosmos_agent.common.exceptions import SnapshotMismatchError
from cosmos_agent.common.models import (
    CpuMetrics,
    MemoryMetrics,
    MetricsRecord,
    NetworkMetrics,
    StatsSnapshot,
)

NAME_SEPARATOR = "/"


def cpu_percent(
    cpu_base: int,
    cpu_adv: int,
    system_base: int,
    system_adv: int,
    cores: int,
) -> float:
    """Calculate CPU utilization between two counter readings.

    Uses the formula from Docker CLI:
    cpu_percent = (delta_container / delta_system) * num_cpus * 100

    Parameters
    ----------
    cpu_base, cpu_adv : int
        Container (or single core) CPU counter at baseline and advanced.
    system_base, system_adv : int
        Host-wide CPU counter at baseline and advanced.
    cores : int
        Number of logical cores.

    Returns
    -------
    float
        Utilization in ``[0, 100 * cores]``. ``0.0`` when the host counter
        did not move or either counter went backwards (reset).

    Examples
    --------
    >>> cpu_percent(1000, 1500, 50000, 50500, 4)
    400.0
    >>> cpu_percent(1000, 1500, 50000, 50000, 4)
    0.0
    """
    cpu_delta = cpu_adv - cpu_base
    system_delta = system_adv - system_base

    if system_delta <= 0:
        return 0.0
    if cpu_delta < 0:
        return 0.0

    percent = (cpu_delta / system_delta) * cores * 100.0
    return max(percent, 0.0)


def counter_delta(base: int, adv: int) -> int:
    """Difference of two cumulative counters, 0 if the counter was reset.

    >>> counter_delta(200, 180)
    0
    """
    return max(adv - base, 0)


def core_count(snapshot: StatsSnapshot) -> int:
    """Number of logical cores a snapshot reports.

    The per-core counter list is authoritative. Hosts on cgroup v2 omit it,
    in which case the runtime's ``online_cpus`` is used.
    """
    if snapshot.per_cpu:
        return len(snapshot.per_cpu)
    return snapshot.online_cpus


def compute_metrics(baseline: StatsSnapshot, advanced: StatsSnapshot) -> MetricsRecord:
    """Derive CPU, network and memory metrics from a snapshot pair.

    Parameters
    ----------
    baseline : StatsSnapshot
        First snapshot of the pair.
    advanced : StatsSnapshot
        Second snapshot of the pair.

    Returns
    -------
    MetricsRecord
        Derived metrics. Network absolutes and memory come from ``advanced``.

    Raises
    ------
    SnapshotMismatchError
        If the two snapshots report a different number of per-core counters.
    """
    if len(baseline.per_cpu) != len(advanced.per_cpu):
        raise SnapshotMismatchError(
            "Per-core counter count changed between samples",
            details={
                "baseline_cores": len(baseline.per_cpu),
                "advanced_cores": len(advanced.per_cpu),
            },
        )

    cores = core_count(baseline)
    total = cpu_percent(
        baseline.cpu_total,
        advanced.cpu_total,
        baseline.system_total,
        advanced.system_total,
        cores,
    )
    per_cpu = [
        cpu_percent(base, adv, baseline.system_total, advanced.system_total, cores)
        for base, adv in zip(baseline.per_cpu, advanced.per_cpu, strict=True)
    ]

    return MetricsRecord(
        network=NetworkMetrics(
            rx_bytes=advanced.rx_bytes,
            tx_bytes=advanced.tx_bytes,
            rx_bytes_delta=counter_delta(baseline.rx_bytes, advanced.rx_bytes),
            tx_bytes_delta=counter_delta(baseline.tx_bytes, advanced.tx_bytes),
        ),
        cpu=CpuMetrics(total_utilization=total, per_cpu_utilization=per_cpu),
        memory=MemoryMetrics(limit=advanced.memory_limit, usage=advanced.memory_usage),
    )


def normalize_name(name: str) -> str:
    """Strip the runtime's leading "/" from a container name.

    >>> normalize_name("/web-1")
    'web-1'
    >>> normalize_name("web-1")
    'web-1'
    """
    if name.startswith(NAME_SEPARATOR):
        return name[len(NAME_SEPARATOR) :]
    return name


def normalize_names(names: Iterable[str]) -> list[str]:
    """Normalize every name, keeping order."""
    return [normalize_name(name) for name in names]
