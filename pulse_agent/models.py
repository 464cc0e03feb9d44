"""
Snapshot records collected each tick and their wire representation.

Optional fields are None when a value could not be collected or derived.
``to_dict()`` renders camelCase keys and leaves None values out entirely, so
the central collector never sees null standing in for a missing metric.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None"""
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class ContainerSummary:
    """Identity and lifecycle of one container"""
    id: str
    name: str
    image: str
    state: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[int] = None
    ports: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'id': self.id,
            'name': self.name,
            'image': self.image,
            'state': self.state,
            'status': self.status,
            'created': self.created_at,
            'ports': list(self.ports),
        })


@dataclass
class ContainerStats:
    """Resource usage derived from one stats sample"""
    id: str
    name: str
    cpu_percent: Optional[float] = None
    mem_usage_bytes: Optional[float] = None
    mem_limit_bytes: Optional[float] = None
    mem_percent: Optional[float] = None
    net_rx_bytes: Optional[float] = None
    net_tx_bytes: Optional[float] = None
    block_read_bytes: Optional[float] = None
    block_write_bytes: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'id': self.id,
            'name': self.name,
            'cpuPercent': self.cpu_percent,
            'memUsageBytes': self.mem_usage_bytes,
            'memLimitBytes': self.mem_limit_bytes,
            'memPercent': self.mem_percent,
            'netRxBytes': self.net_rx_bytes,
            'netTxBytes': self.net_tx_bytes,
            'blockReadBytes': self.block_read_bytes,
            'blockWriteBytes': self.block_write_bytes,
        })


@dataclass
class OsInfo:
    platform: str
    arch: str
    hostname: str
    distro: Optional[str] = None
    release: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'platform': self.platform,
            'distro': self.distro,
            'release': self.release,
            'arch': self.arch,
        })


@dataclass
class MemoryTotals:
    total: int
    used: int
    free: int


@dataclass
class DiskUsage:
    """Usage of one mounted filesystem"""
    fs: str
    size: int
    used: int
    available: int
    mount: str


@dataclass
class ProcessInfo:
    pid: int
    name: str
    cpu_percent: Optional[float] = None
    mem_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'pid': self.pid,
            'name': self.name,
            'cpuPercent': self.cpu_percent,
            'memPercent': self.mem_percent,
        })


@dataclass
class HostSnapshot:
    """Host-level metrics for one tick"""
    os: OsInfo
    cpu_load: float
    memory: MemoryTotals
    disks: List[DiskUsage]
    top_processes: Optional[List[ProcessInfo]] = None

    @property
    def hostname(self) -> str:
        return self.os.hostname

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'hostname': self.hostname,
            'os': self.os.to_dict(),
            'cpu': {'load': self.cpu_load},
            'mem': {
                'total': self.memory.total,
                'used': self.memory.used,
                'free': self.memory.free,
            },
            'disk': [
                {
                    'fs': d.fs,
                    'size': d.size,
                    'used': d.used,
                    'available': d.available,
                    'mount': d.mount,
                }
                for d in self.disks
            ],
        }
        if self.top_processes is not None:
            data['topProcesses'] = [p.to_dict() for p in self.top_processes]
        return data


@dataclass(frozen=True)
class DockerSnapshot:
    containers: List[ContainerSummary]
    stats: Optional[List[ContainerStats]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'containers': [c.to_dict() for c in self.containers],
            'stats': [s.to_dict() for s in self.stats] if self.stats is not None else None,
            'error': self.error,
        })


@dataclass(frozen=True)
class AgentPayload:
    """Everything reported to the central collector for one tick"""
    collected_at: str
    system: HostSnapshot
    docker: DockerSnapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            'collectedAt': self.collected_at,
            'system': self.system.to_dict(),
            'docker': self.docker.to_dict(),
        }
