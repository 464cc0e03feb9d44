"""
Assembly of one AgentPayload from the host and container sources.

Host identity, CPU, memory and disks are required: their failures propagate to
the caller. Top processes, container inventory and container stats are best
effort and degrade into absent fields or ``docker.error``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional

from pulse_agent.collectors import HostCollector
from pulse_agent.containers import DockerCollector
from pulse_agent.models import (
    AgentPayload,
    ContainerStats,
    ContainerSummary,
    DockerSnapshot,
    HostSnapshot,
)

logger = logging.getLogger(__name__)

ERROR_SEPARATOR = '; '


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and Z suffix"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _error_text(error: BaseException, fallback: str) -> str:
    return str(error) or f"{fallback} ({type(error).__name__})"


def join_errors(*errors: Optional[str]) -> Optional[str]:
    present = [e for e in errors if e]
    return ERROR_SEPARATOR.join(present) if present else None


class SnapshotAssembler:
    """Builds a complete payload per call, isolating optional sources"""

    def __init__(self, host: HostCollector, docker: DockerCollector, max_workers: int = 8):
        self.host = host
        self.docker = docker
        self.max_workers = max_workers

    def collect(self) -> AgentPayload:
        """Collect every source concurrently and assemble the payload"""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                'os': executor.submit(self.host.os_info),
                'cpu': executor.submit(self.host.cpu_load),
                'memory': executor.submit(self.host.memory),
                'disks': executor.submit(self.host.disks),
                'processes': executor.submit(self.host.top_processes),
                'containers': executor.submit(self.docker.list_containers),
            }

        top_processes = None
        try:
            top_processes = futures['processes'].result()
        except Exception as e:
            logger.warning(
                "Top process collection failed",
                extra={'context': {'error': str(e)}}
            )

        system = HostSnapshot(
            os=futures['os'].result(),
            cpu_load=futures['cpu'].result(),
            memory=futures['memory'].result(),
            disks=futures['disks'].result(),
            top_processes=top_processes
        )

        containers: List[ContainerSummary] = []
        stats: Optional[List[ContainerStats]] = None
        inventory_error = None
        stats_error = None

        try:
            containers = futures['containers'].result()
        except Exception as e:
            inventory_error = _error_text(e, 'docker-list-failed')
            logger.warning(
                "Container inventory failed",
                extra={'context': {'error': inventory_error}}
            )

        # Nothing to query when inventory failed
        if inventory_error is None:
            try:
                stats = self.docker.collect_stats(containers)
            except Exception as e:
                stats_error = _error_text(e, 'docker-stats-failed')
                logger.warning(
                    "Container stats collection failed",
                    extra={'context': {'error': stats_error}}
                )

        return AgentPayload(
            collected_at=utc_timestamp(),
            system=system,
            docker=DockerSnapshot(
                containers=containers,
                stats=stats,
                error=join_errors(inventory_error, stats_error)
            )
        )
