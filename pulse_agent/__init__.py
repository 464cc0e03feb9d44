"""
pulse_agent: Lightweight host and container reporting agent

Collects host, process and Docker container metrics on a fixed interval and
pushes a JSON snapshot to a central collector over HTTP.
"""

from pulse_agent.agent import ReportingAgent
from pulse_agent.collectors import HostCollector
from pulse_agent.containers import DockerCollector
from pulse_agent.report import ReportClient, DeliveryError
from pulse_agent.snapshot import SnapshotAssembler

__all__ = [
    'ReportingAgent',
    'HostCollector',
    'DockerCollector',
    'ReportClient',
    'DeliveryError',
    'SnapshotAssembler',
]
__version__ = '1.0.0'
