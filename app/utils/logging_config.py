"""
Logging setup.

One stdout handler on the root logger. LOG_FORMAT=json switches to
structured JSON lines (python-json-logger), the default is plain text.
"""
import logging
import os
import sys

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'
JSON_FIELDS = ('asctime', 'levelname', 'name', 'message')
FIELD_RENAME_MAP = {
    'levelname': 'level',
    'name': 'logger',
}

_configured = False


def create_json_formatter() -> JsonFormatter:
    """JSON formatter with the standard field names."""
    format_string = ' '.join(f'%({field})s' for field in JSON_FIELDS)
    return JsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)


def setup_logging(level: str = None, log_format: str = None) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Log level name, defaults to LOG_LEVEL or INFO
        log_format: 'json' or 'text', defaults to LOG_FORMAT or text
    """
    global _configured
    if _configured:
        return

    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_format = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()

    handler = logging.StreamHandler(sys.stdout)
    if log_format == 'json':
        handler.setFormatter(create_json_formatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))

    # Third-party noise
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)

    _configured = True
