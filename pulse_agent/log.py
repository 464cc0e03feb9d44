"""
Structured JSON logging for the agent.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

ROOT_LOGGER = 'pulse_agent'
PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line.

    Output format:
    {
        "timestamp": "2026-10-18T09:30:00.123456Z",
        "level": "WARNING",
        "logger": "pulse_agent.snapshot",
        "message": "Container inventory failed",
        "context": {...}  # from extra={'context': {...}}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data = {
            'timestamp': timestamp.isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        context = getattr(record, 'context', None)
        if context:
            log_data['context'] = context

        if record.exc_info and record.exc_info[0] is not None:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if record.levelno <= logging.DEBUG:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO, use_json: bool = True, stream: Optional[object] = None) -> logging.Logger:
    """
    Configure the agent's logger tree.

    Safe to call more than once: the handler installed by a previous call is
    replaced rather than duplicated.

    Args:
        level: Logging level (default: INFO)
        use_json: Emit JSON lines instead of plain text (default: True)
        stream: Output stream (default: stderr)

    Returns:
        The ``pulse_agent`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, '_pulse_agent', False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler._pulse_agent = True
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    logger.addHandler(handler)
    return logger
