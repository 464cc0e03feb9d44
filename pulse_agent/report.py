"""
Delivery of snapshots to the central collector.
"""

import logging
from typing import Optional

import requests

from pulse_agent.models import AgentPayload

logger = logging.getLogger(__name__)

REPORT_PATH = 'agents/report'
API_KEY_HEADER = 'x-agent-key'


class DeliveryError(Exception):
    """Report could not be delivered"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ''):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def join_url(base_url: str, path: str) -> str:
    """Join base and relative path with exactly one slash between them"""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class ReportClient:
    """Posts agent payloads to the central API"""

    def __init__(self, central_api_url: str, api_key: str, server_name: str, timeout: float = 10):
        self.central_api_url = central_api_url
        self.api_key = api_key
        self.server_name = server_name
        self.timeout = timeout

    @property
    def report_url(self) -> str:
        return join_url(self.central_api_url, REPORT_PATH)

    def send(self, payload: AgentPayload) -> None:
        """
        Deliver one payload.

        Raises:
            DeliveryError: on a transport failure or a non-2xx response
        """
        body = {
            'serverName': self.server_name,
            'payload': payload.to_dict(),
        }

        try:
            response = requests.post(
                self.report_url,
                json=body,
                headers={API_KEY_HEADER: self.api_key},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise DeliveryError(f"Failed to reach central API at {self.report_url}: {e}") from e

        if not 200 <= response.status_code < 300:
            try:
                text = response.text
            except (requests.exceptions.RequestException, UnicodeDecodeError):
                text = ''
            raise DeliveryError(
                f"Central API responded {response.status_code}: {text}",
                status_code=response.status_code,
                body=text
            )

        logger.debug(
            "Report delivered",
            extra={'context': {'url': self.report_url, 'status_code': response.status_code}}
        )
