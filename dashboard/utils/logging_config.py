"""JSON log lines for the dashboard service"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

# Record attributes passed through `extra=` that end up in the JSON line
DASHBOARD_FIELDS = ('component', 'source', 'timeframes')

# Libraries that log every request or task at INFO
NOISY_LOGGERS = ('aiohttp', 'asyncio', 'urllib3', 'uvicorn.access')

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Always carries timestamp, level, logger and message; adds an exception
    block for records logged with exc_info and any of `fields` present on
    the record.
    """

    def __init__(self, fields: Iterable[str] = DASHBOARD_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def _exception(self, record: logging.LogRecord) -> Optional[Dict[str, Any]]:
        if not record.exc_info:
            return None
        exc_type, exc_value, _ = record.exc_info
        return {
            'type': exc_type.__name__ if exc_type else None,
            'message': str(exc_value) if exc_value else None,
            'traceback': self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        exception = self._exception(record)
        if exception is not None:
            payload['exception'] = exception

        payload.update({
            name: getattr(record, name)
            for name in self.fields
            if hasattr(record, name)
        })

        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", structured: bool = True) -> None:
    """
    Route all logging to stdout.

    Replaces whatever handlers the root logger has, so calling it twice
    leaves a single handler.

    Args:
        level: Log level name, case-insensitive
        structured: JSON lines if True, plain text otherwise
    """
    level = level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if structured else logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
