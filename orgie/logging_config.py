"""
orgie.logging_config — Log Formatting
======================================

Two output shapes for the same ``logging`` records:

* **text** (development) — ``[timestamp] LEVEL logger: message``
* **json** (production) — one JSON object per line with ``timestamp``,
  ``level``, ``logger``, ``message`` and any structured ``extra`` fields,
  so log shippers can index ids without parsing prose.

Call :func:`configure_logging` once at process start.  Uvicorn's loggers
are forced to propagate to the root so they share the same formatter.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

TEXT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def build_handler(json_output: bool) -> logging.Handler:
    """Create a stream handler with the requested formatter."""
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    return handler


def configure_logging(
    level: int = logging.INFO, *, json_output: bool = False
) -> logging.Handler:
    """Install the Orgie handler on the root logger (replacing earlier ones).

    Returns the installed handler.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_orgie", False):
            root.removeHandler(existing)

    handler = build_handler(json_output)
    handler._orgie = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)

    for logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        log = logging.getLogger(logger_name)
        log.handlers.clear()
        log.propagate = True

    return handler
