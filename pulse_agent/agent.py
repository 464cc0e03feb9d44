#!/usr/bin/env python3
"""
Reporting agent daemon - collects a snapshot and delivers it on a fixed schedule.
"""

import logging
import signal
import sys
import threading
import time
from typing import Optional

import click
from dotenv import load_dotenv

from pulse_agent.collectors import HostCollector
from pulse_agent.config import AgentConfig, ConfigError, load_config
from pulse_agent.containers import DockerCollector
from pulse_agent.log import setup_logging
from pulse_agent.report import ReportClient
from pulse_agent.snapshot import SnapshotAssembler

logger = logging.getLogger(__name__)


class ReportingAgent:
    """Main reporting agent daemon"""

    def __init__(self, config: AgentConfig, assembler: SnapshotAssembler, client: ReportClient):
        self.config = config
        self.assembler = assembler
        self.client = client
        self._stop = threading.Event()
        self._clock = time.monotonic

    @classmethod
    def from_config(cls, config: AgentConfig) -> 'ReportingAgent':
        assembler = SnapshotAssembler(
            host=HostCollector(),
            docker=DockerCollector(
                socket_path=config.docker_socket_path,
                timeout=config.request_timeout
            )
        )
        client = ReportClient(
            central_api_url=config.central_api_url,
            api_key=config.agent_api_key,
            server_name=config.server_name,
            timeout=config.request_timeout
        )
        return cls(config, assembler, client)

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def install_signal_handlers(self):
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame):
        """Handle shutdown signals gracefully"""
        logger.info("Received signal, shutting down", extra={'context': {'signal': signum}})
        self.stop()

    def stop(self):
        self._stop.set()

    def tick(self) -> bool:
        """
        Run one collect-and-deliver cycle.

        Any failure is logged and reported through the return value so the
        schedule keeps going.
        """
        try:
            payload = self.assembler.collect()
            self.client.send(payload)
        except Exception:
            logger.exception("Report cycle failed")
            return False

        docker = payload.docker
        logger.info(
            "Report delivered",
            extra={'context': {
                'collected_at': payload.collected_at,
                'cpu_load': round(payload.system.cpu_load, 1),
                'containers': len(docker.containers),
                'docker_error': docker.error,
            }}
        )
        return True

    def run(self):
        """
        Tick now, then on every interval boundary until stopped.

        A tick that overruns its slot delays the next tick to the following
        boundary instead of starting a second tick alongside it.
        """
        interval = self.config.report_interval
        logger.info(
            "Starting reporting agent",
            extra={'context': {
                'server_name': self.config.server_name,
                'interval_seconds': interval,
                'report_url': self.client.report_url,
            }}
        )

        next_run = self._clock()
        while self.running:
            self.tick()

            next_run += interval
            now = self._clock()
            if now > next_run:
                skipped = int((now - next_run) // interval) + 1
                logger.warning(
                    "Report cycle overran its interval",
                    extra={'context': {'skipped_ticks': skipped}}
                )
                next_run += skipped * interval

            self._stop.wait(next_run - now)

        logger.info("Agent stopped")


@click.command()
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              default=None, envvar='AGENT_CONFIG_FILE',
              help='Optional YAML file with an "agent" section; environment variables take precedence')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='INFO', show_default=True, help='Logging level')
@click.option('--plain-logs', is_flag=True, help='Human-readable logs instead of JSON lines')
@click.option('--once', is_flag=True, help='Run a single report cycle and exit')
def main(config_file: Optional[str], log_level: str, plain_logs: bool, once: bool):
    """Run the host and container reporting agent"""
    setup_logging(level=getattr(logging, log_level.upper()), use_json=not plain_logs)

    # Real environment variables take precedence over .env entries
    load_dotenv('.env')

    try:
        config = load_config(config_file=config_file)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    agent = ReportingAgent.from_config(config)

    if once:
        sys.exit(0 if agent.tick() else 1)

    click.echo(f"Reporting to {agent.client.report_url} as {config.server_name} every {config.report_interval}s")
    agent.install_signal_handlers()
    agent.run()


if __name__ == '__main__':
    main()
