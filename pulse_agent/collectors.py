"""
Host inventory collectors backed by psutil.
"""

import logging
import platform
import socket
import sys
import time
from typing import Iterable, List

import psutil

from pulse_agent.models import DiskUsage, MemoryTotals, OsInfo, ProcessInfo

logger = logging.getLogger(__name__)

TOP_PROCESS_LIMIT = 5


def rank_top_processes(processes: Iterable[ProcessInfo], limit: int = TOP_PROCESS_LIMIT) -> List[ProcessInfo]:
    """
    Rank processes by CPU usage, breaking ties on memory usage.

    Entries without a pid or with an empty name are dropped. Missing
    percentages rank as zero but are reported as-is.
    """
    candidates = [
        p for p in processes
        if p.pid is not None and p.name
    ]
    candidates.sort(
        key=lambda p: (p.cpu_percent or 0.0, p.mem_percent or 0.0),
        reverse=True
    )
    return candidates[:limit]


def _read_os_release() -> dict:
    try:
        return platform.freedesktop_os_release()
    except (AttributeError, OSError):
        # Not Linux, or no os-release file on this host
        return {}


class HostCollector:
    """Collects host-level metrics using psutil"""

    def __init__(self, cpu_sample_interval: float = 1.0, process_sample_interval: float = 0.5):
        self.cpu_sample_interval = cpu_sample_interval
        self.process_sample_interval = process_sample_interval

    def os_info(self) -> OsInfo:
        """Platform identity of this host"""
        os_release = _read_os_release()

        return OsInfo(
            platform=sys.platform,
            arch=platform.machine(),
            hostname=socket.gethostname(),
            distro=os_release.get('NAME') or None,
            release=os_release.get('VERSION_ID') or platform.release() or None,
        )

    def cpu_load(self) -> float:
        """Host CPU usage percentage averaged over the sample interval"""
        return psutil.cpu_percent(interval=self.cpu_sample_interval)

    def memory(self) -> MemoryTotals:
        mem = psutil.virtual_memory()
        return MemoryTotals(total=mem.total, used=mem.used, free=mem.free)

    def disks(self) -> List[DiskUsage]:
        """Usage of every mounted physical filesystem"""
        results = []

        for partition in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except OSError as e:
                # Unreadable or vanished mount, e.g. an empty cdrom drive
                logger.debug(
                    "Skipping filesystem",
                    extra={'context': {'mount': partition.mountpoint, 'error': str(e)}}
                )
                continue

            results.append(DiskUsage(
                fs=partition.device,
                size=usage.total,
                used=usage.used,
                available=usage.free,
                mount=partition.mountpoint
            ))

        return results

    def processes(self) -> List[ProcessInfo]:
        """Snapshot of every process with CPU and memory percentages"""
        # The first cpu_percent() call per process always reports 0.0, so
        # prime the counters and measure over a short window.
        if self.process_sample_interval > 0:
            for proc in psutil.process_iter():
                try:
                    proc.cpu_percent(interval=None)
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    continue
            time.sleep(self.process_sample_interval)

        results = []
        for proc in psutil.process_iter(attrs=['pid', 'name', 'cpu_percent', 'memory_percent']):
            info = proc.info
            results.append(ProcessInfo(
                pid=info.get('pid'),
                name=info.get('name') or '',
                cpu_percent=info.get('cpu_percent'),
                mem_percent=info.get('memory_percent')
            ))

        return results

    def top_processes(self, limit: int = TOP_PROCESS_LIMIT) -> List[ProcessInfo]:
        return rank_top_processes(self.processes(), limit=limit)
