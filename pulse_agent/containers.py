"""
Container inventory and stats sampling through the Docker engine API.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import docker

from pulse_agent.counters import derive_container_metrics
from pulse_agent.models import ContainerStats, ContainerSummary

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_PATH = '/var/run/docker.sock'


def container_name(container: Dict[str, Any]) -> str:
    """Human name of a container, falling back to its short id"""
    names = container.get('Names') or []
    if names:
        name = names[0]
        return name[1:] if name.startswith('/') else name
    return (container.get('Id') or '')[:12]


def format_port(port: Dict[str, Any]) -> str:
    """
    Render a port mapping the way ``docker ps`` does.

    Published:   0.0.0.0:8080 -> 80/tcp
    Unpublished: 80/tcp
    """
    container_port = f"{port.get('PrivatePort')}/{port.get('Type')}"

    public_port = port.get('PublicPort')
    if not public_port:
        return container_port

    host_ip = port.get('IP') or '0.0.0.0'
    return f"{host_ip}:{public_port} -> {container_port}"


def _docker_base_url(socket_path: str) -> str:
    if '://' in socket_path:
        return socket_path
    return f"unix://{socket_path}"


class DockerCollector:
    """Lists containers and samples their stats over the engine socket"""

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET_PATH,
        timeout: float = 10,
        max_workers: int = 8,
        client: Optional[docker.APIClient] = None
    ):
        self.socket_path = socket_path
        self.timeout = timeout
        self.max_workers = max_workers
        self._client = client

    @property
    def client(self) -> docker.APIClient:
        # Connecting negotiates the API version with the daemon, so defer it
        # until the first call that needs it.
        if self._client is None:
            self._client = docker.APIClient(
                base_url=_docker_base_url(self.socket_path),
                timeout=self.timeout,
                max_pool_size=self.max_workers
            )
        return self._client

    def list_containers(self) -> List[ContainerSummary]:
        """Every container known to the engine, including stopped ones"""
        containers = []

        for raw in self.client.containers(all=True):
            containers.append(ContainerSummary(
                id=raw['Id'],
                name=container_name(raw),
                image=raw.get('Image', ''),
                state=raw.get('State'),
                status=raw.get('Status'),
                created_at=raw.get('Created'),
                ports=[format_port(p) for p in raw.get('Ports') or []]
            ))

        return containers

    def fetch_stats(self, container: ContainerSummary) -> ContainerStats:
        """
        Take one non-streaming stats sample for a container.

        A failure only affects this container: the result then carries its
        identity and no metrics.
        """
        try:
            raw = self.client.stats(container.id, stream=False)
        except Exception as e:
            logger.warning(
                "Stats unavailable for container",
                extra={'context': {'container': container.name, 'error': str(e)}}
            )
            return ContainerStats(id=container.id, name=container.name)

        return derive_container_metrics(container.id, container.name, raw)

    def collect_stats(self, containers: List[ContainerSummary]) -> List[ContainerStats]:
        """Sample every container concurrently, preserving input order"""
        if not containers:
            return []

        workers = min(self.max_workers, len(containers))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.fetch_stats, containers))
