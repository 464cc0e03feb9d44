"""
Unit tests for report delivery.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from pulse_agent.models import (
    AgentPayload,
    DockerSnapshot,
    HostSnapshot,
    MemoryTotals,
    OsInfo,
)
from pulse_agent.report import DeliveryError, ReportClient, join_url


def make_payload():
    return AgentPayload(
        collected_at='2026-10-18T09:30:00.000Z',
        system=HostSnapshot(
            os=OsInfo(platform='linux', arch='aarch64', hostname='pi-01'),
            cpu_load=3.0,
            memory=MemoryTotals(total=4_000, used=1_000, free=2_500),
            disks=[],
        ),
        docker=DockerSnapshot(containers=[], error='socket unavailable'),
    )


def make_response(status_code, text=''):
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


class TestJoinUrl:
    """Test join_url"""

    @pytest.mark.parametrize('base,path', [
        ('https://host', 'agents/report'),
        ('https://host/', '/agents/report'),
        ('https://host/', 'agents/report'),
        ('https://host', '/agents/report'),
    ])
    def test_exactly_one_slash(self, base, path):
        assert join_url(base, path) == 'https://host/agents/report'

    def test_keeps_base_path(self):
        assert join_url('https://host/api/v1/', 'agents/report') == 'https://host/api/v1/agents/report'


class TestReportClient:
    """Test ReportClient"""

    def test_send_posts_payload(self):
        client = ReportClient('https://central.example.com/', 'secret-key', 'web-01', timeout=7)

        with patch('pulse_agent.report.requests.post', return_value=make_response(204)) as post:
            client.send(make_payload())

        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == 'https://central.example.com/agents/report'
        assert kwargs['headers'] == {'x-agent-key': 'secret-key'}
        assert kwargs['timeout'] == 7
        assert kwargs['json']['serverName'] == 'web-01'
        assert kwargs['json']['payload']['collectedAt'] == '2026-10-18T09:30:00.000Z'
        assert kwargs['json']['payload']['docker'] == {'containers': [], 'error': 'socket unavailable'}

    @pytest.mark.parametrize('status_code', [200, 201, 299])
    def test_success_statuses(self, status_code):
        client = ReportClient('https://central', 'key', 'web-01')

        with patch('pulse_agent.report.requests.post', return_value=make_response(status_code)):
            client.send(make_payload())

    def test_not_found_includes_status_and_body(self):
        """Should surface both the status code and response body"""
        client = ReportClient('https://central', 'key', 'web-01')

        with patch('pulse_agent.report.requests.post', return_value=make_response(404, 'not found')):
            with pytest.raises(DeliveryError) as exc_info:
                client.send(make_payload())

        error = exc_info.value
        assert '404' in str(error)
        assert 'not found' in str(error)
        assert error.status_code == 404
        assert error.body == 'not found'

    @pytest.mark.parametrize('status_code', [199, 300, 401, 500])
    def test_non_2xx_fails(self, status_code):
        client = ReportClient('https://central', 'key', 'web-01')

        with patch('pulse_agent.report.requests.post', return_value=make_response(status_code)):
            with pytest.raises(DeliveryError, match=str(status_code)):
                client.send(make_payload())

    def test_connection_error(self):
        client = ReportClient('https://central', 'key', 'web-01')

        with patch('pulse_agent.report.requests.post',
                   side_effect=requests.exceptions.ConnectionError('Connection refused')):
            with pytest.raises(DeliveryError, match='Connection refused') as exc_info:
                client.send(make_payload())

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)

    def test_timeout(self):
        client = ReportClient('https://central', 'key', 'web-01')

        with patch('pulse_agent.report.requests.post', side_effect=requests.exceptions.Timeout('timed out')):
            with pytest.raises(DeliveryError, match='timed out'):
                client.send(make_payload())
