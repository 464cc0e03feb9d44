"""
Derivation of container resource usage from raw Docker stats counters.

The engine reports cumulative counters for the current sample and the previous
one (``cpu_stats`` / ``precpu_stats``) in a single stats call. Every function
here reads that dict field by field and returns ``None`` for anything it
cannot derive, so one corrupt field never blanks out the rest of a container.
"""

import math
from collections import namedtuple
from collections.abc import Mapping
from typing import Any, Optional, Union

from pulse_agent.models import ContainerStats

Number = Union[int, float]

MemoryUsage = namedtuple('MemoryUsage', ['usage', 'limit', 'percent'])
NetworkTotals = namedtuple('NetworkTotals', ['rx', 'tx'])
BlockIoTotals = namedtuple('BlockIoTotals', ['read', 'write'])


def safe_number(value: Any) -> Optional[Number]:
    """Return value if it is a finite int/float, otherwise None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


def dig(data: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None on the first missing level"""
    for key in keys:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _online_cpus(stats: Any) -> Number:
    """
    Core count used to scale the CPU delta.

    A zero ``online_cpus`` or an empty ``percpu_usage`` list counts as missing
    and falls through to the next source, so a container never reports 0%
    just because the engine left the count blank. A strict null-only fallback
    would multiply by zero there instead.
    """
    online = safe_number(dig(stats, 'cpu_stats', 'online_cpus'))
    if online is not None and online > 0:
        return online

    per_cpu = dig(stats, 'cpu_stats', 'cpu_usage', 'percpu_usage')
    if isinstance(per_cpu, list) and per_cpu:
        return len(per_cpu)

    return 1


def compute_cpu_percent(stats: Any) -> Optional[float]:
    """
    Container CPU usage as a percentage of one core.

    Returns None when any of the four counters is unusable, and exactly 0.0
    when either delta is not positive (an idle container reports zero load).
    """
    cpu_total = safe_number(dig(stats, 'cpu_stats', 'cpu_usage', 'total_usage'))
    pre_cpu_total = safe_number(dig(stats, 'precpu_stats', 'cpu_usage', 'total_usage'))
    sys_total = safe_number(dig(stats, 'cpu_stats', 'system_cpu_usage'))
    pre_sys_total = safe_number(dig(stats, 'precpu_stats', 'system_cpu_usage'))

    if None in (cpu_total, pre_cpu_total, sys_total, pre_sys_total):
        return None

    cpu_delta = cpu_total - pre_cpu_total
    sys_delta = sys_total - pre_sys_total
    if cpu_delta <= 0 or sys_delta <= 0:
        return 0.0

    try:
        percent = (cpu_delta / sys_delta) * _online_cpus(stats) * 100
    except OverflowError:
        return None
    return _finite_or_none(percent)


def compute_memory(stats: Any) -> MemoryUsage:
    """Memory usage, limit and percent-of-limit"""
    usage = safe_number(dig(stats, 'memory_stats', 'usage'))
    limit = safe_number(dig(stats, 'memory_stats', 'limit'))

    if usage is None or limit is None or limit <= 0:
        return MemoryUsage(usage, limit, None)

    try:
        percent = _finite_or_none(usage / limit * 100)
    except OverflowError:
        percent = None
    return MemoryUsage(usage, limit, percent)


def compute_network(stats: Any) -> NetworkTotals:
    """Sum rx/tx bytes across every interface"""
    networks = dig(stats, 'networks')
    if not isinstance(networks, Mapping):
        return NetworkTotals(None, None)

    rx = 0
    tx = 0
    for iface in networks.values():
        received = safe_number(dig(iface, 'rx_bytes'))
        sent = safe_number(dig(iface, 'tx_bytes'))
        if received is not None:
            rx += received
        if sent is not None:
            tx += sent

    return NetworkTotals(rx, tx)


def compute_block_io(stats: Any) -> BlockIoTotals:
    """Sum read/write bytes from the recursive blkio service list"""
    rows = dig(stats, 'blkio_stats', 'io_service_bytes_recursive')
    if not isinstance(rows, list):
        return BlockIoTotals(None, None)

    read = 0
    write = 0
    for row in rows:
        op = dig(row, 'op')
        value = safe_number(dig(row, 'value'))
        if not isinstance(op, str) or value is None:
            continue

        op = op.lower()
        if op == 'read':
            read += value
        elif op == 'write':
            write += value

    return BlockIoTotals(read, write)


def derive_container_metrics(container_id: str, name: str, stats: Any) -> ContainerStats:
    """Apply every derivation to one raw stats sample"""
    memory = compute_memory(stats)
    network = compute_network(stats)
    block = compute_block_io(stats)

    return ContainerStats(
        id=container_id,
        name=name,
        cpu_percent=compute_cpu_percent(stats),
        mem_usage_bytes=memory.usage,
        mem_limit_bytes=memory.limit,
        mem_percent=memory.percent,
        net_rx_bytes=network.rx,
        net_tx_bytes=network.tx,
        block_read_bytes=block.read,
        block_write_bytes=block.write,
    )
