"""
Agent configuration from the environment, optionally layered over a YAML file.

Environment variables win over the ``agent:`` section of the YAML file, which
wins over built-in defaults. Every field is validated up front and all
problems are reported together.
"""

import math
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import yaml

from pulse_agent.containers import DEFAULT_SOCKET_PATH

DEFAULT_REPORT_INTERVAL = 30
DEFAULT_REQUEST_TIMEOUT = 10.0

FIELDS = (
    'CENTRAL_API_URL',
    'SERVER_NAME',
    'AGENT_API_KEY',
    'REPORT_INTERVAL_SECONDS',
    'DOCKER_SOCKET_PATH',
    'REQUEST_TIMEOUT_SECONDS',
)


class ConfigError(Exception):
    """Configuration validation error"""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        self.errors = errors or {}
        if self.errors:
            details = '; '.join(f"{key}: {reason}" for key, reason in self.errors.items())
            message = f"{message} ({details})"
        super().__init__(message)


@dataclass(frozen=True)
class AgentConfig:
    central_api_url: str
    server_name: str
    agent_api_key: str
    report_interval: int = DEFAULT_REPORT_INTERVAL
    docker_socket_path: str = DEFAULT_SOCKET_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def read_config_file(config_path: str) -> Dict[str, Any]:
    """
    Read the ``agent:`` section of a YAML config file.

    Keys are the lower-case variable names, e.g. ``central_api_url``.
    String values may reference environment variables (``$VAR``/``${VAR}``).
    """
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    section = data.get('agent', {}) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ConfigError(f"'agent' section must be a mapping in {config_path}")

    return {
        str(key).upper(): os.path.expandvars(value) if isinstance(value, str) else value
        for key, value in section.items()
        if value is not None
    }


def _required_text(value: Any) -> str:
    text = str(value).strip() if value is not None else ''
    if not text:
        raise ValueError("required")
    return text


def _url(value: Any) -> str:
    text = _required_text(value)
    parsed = urlparse(text)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValueError(f"invalid URL '{text}'")
    return text


def _positive_int(value: Any) -> int:
    """Accepts integers and integral numbers such as '30.0'"""
    if isinstance(value, bool):
        raise ValueError(f"expected a positive integer, got '{value}'")
    text = str(value).strip()
    try:
        number = int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"expected a positive integer, got '{value}'")
        if not math.isfinite(number) or not number.is_integer():
            raise ValueError(f"expected a positive integer, got '{value}'")
        number = int(number)
    if number <= 0:
        raise ValueError(f"expected a positive integer, got '{value}'")
    return number


def _positive_float(value: Any) -> float:
    try:
        number = float(str(value).strip())
    except ValueError:
        raise ValueError(f"expected a positive number, got '{value}'")
    if not number > 0 or number == float('inf'):
        raise ValueError(f"expected a positive number, got '{value}'")
    return number


def load_config(environ: Optional[Mapping[str, str]] = None, config_file: Optional[str] = None) -> AgentConfig:
    """
    Build and validate the agent configuration.

    Args:
        environ: Environment mapping (default: os.environ)
        config_file: Optional YAML file supplying values underneath the environment

    Returns:
        Validated AgentConfig

    Raises:
        ConfigError: If any field is missing or malformed
    """
    if environ is None:
        environ = os.environ

    raw: Dict[str, Any] = read_config_file(config_file) if config_file else {}
    for key in FIELDS:
        if key in environ:
            raw[key] = environ[key]

    rules = {
        'CENTRAL_API_URL': (_url, None),
        'SERVER_NAME': (_required_text, None),
        'AGENT_API_KEY': (_required_text, None),
        'REPORT_INTERVAL_SECONDS': (_positive_int, DEFAULT_REPORT_INTERVAL),
        'DOCKER_SOCKET_PATH': (_required_text, DEFAULT_SOCKET_PATH),
        'REQUEST_TIMEOUT_SECONDS': (_positive_float, DEFAULT_REQUEST_TIMEOUT),
    }

    values: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    for key, (parse, default) in rules.items():
        if key not in raw and default is not None:
            values[key] = default
            continue
        try:
            values[key] = parse(raw.get(key))
        except ValueError as e:
            errors[key] = str(e)

    if errors:
        raise ConfigError("Invalid agent configuration", errors)

    return AgentConfig(
        central_api_url=values['CENTRAL_API_URL'],
        server_name=values['SERVER_NAME'],
        agent_api_key=values['AGENT_API_KEY'],
        report_interval=values['REPORT_INTERVAL_SECONDS'],
        docker_socket_path=values['DOCKER_SOCKET_PATH'],
        request_timeout=values['REQUEST_TIMEOUT_SECONDS'],
    )
