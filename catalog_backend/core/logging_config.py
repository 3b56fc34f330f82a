# ==============================================================================
# LOGGING SETUP - Root Logger Configuration
# ==============================================================================
# Installs one handler on the root logger with json or text formatting
# ==============================================================================

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from catalog_backend.core.settings import Settings

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(settings: Settings) -> None:
    """
    Configure the root logger from settings.

    Replaces a handler installed by an earlier call so repeated calls
    (tests, reloads) do not duplicate output.

    Args:
        settings: Application settings (LOG_LEVEL, LOG_FORMAT)
    """
    handler = logging.StreamHandler()
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    handler._catalog_handler = True  # type: ignore[attr-defined]

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_catalog_handler", False):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())

    # SQL echo goes through the engine logger; keep it quiet unless asked
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )
