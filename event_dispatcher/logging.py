from __future__ import annotations

import json
import logging
import os


class JsonFormatter(logging.Formatter):
    """Very small JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short
        payload = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "event_name": getattr(record, "event_name", None),
            "resolved_name": getattr(record, "resolved_name", None),
            "handler_count": getattr(record, "handler_count", None),
            "universal_count": getattr(record, "universal_count", None),
        }
        return json.dumps(payload, default=str)


def configure_logging(level: str | int | None = None, fmt: str | None = None) -> None:
    """Configure logging.

    Default format is human friendly, but when ``LOG_FORMAT=json`` is set (or
    ``fmt="json"`` is passed) the output becomes structured JSON carrying the
    dispatcher's event fields.
    """

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    if fmt is None:
        fmt = os.getenv("LOG_FORMAT", "plain")

    if fmt.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )
