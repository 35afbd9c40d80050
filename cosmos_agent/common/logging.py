"""Logging setup driven by LoggingSettings."""

import json
import logging
import sys
from datetime import UTC, datetime

from cosmos_agent.common.config import LoggingSettings

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """
    Configure the root logger once for the whole process.

    Parameters
    ----------
    settings : LoggingSettings, optional
        Logging configuration (default: read from environment)
    """
    settings = settings or LoggingSettings()

    if settings.log_file:
        handler: logging.Handler = logging.FileHandler(settings.log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.log_level)

    # aiohttp access chatter is not useful at INFO
    logging.getLogger("aiohttp").setLevel(max(logging.WARNING, root.level))
