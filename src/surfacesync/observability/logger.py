"""Structured JSON logging for surfacesync.

Each record is rendered as one JSON object per line so that diagnostic
output from many canvas surfaces can be filtered by ``surface_id`` or
``selector`` without regex parsing.

Typical output of a skipped override::

    {"ts": "2026-03-02T09:14:07.512301+00:00", "level": "WARNING",
     "logger": "surfacesync.diff", "message": "selector matched no element",
     "op": "apply_overrides", "selector": "#hero-title"}

Usage::

    from surfacesync.observability import fields, get_logger

    log = get_logger("surfacesync.sync")
    log.warning("render target rejected geometry", extra=fields(surface_id="s1"))
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "surfacesync"


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON objects.

    Guaranteed keys are ``ts`` (ISO-8601 UTC), ``level``, ``logger`` and
    ``message``.  Structured fields passed through
    ``extra={"extra_fields": {...}}`` (see :func:`fields`) are merged at
    the top level; they never replace the guaranteed keys.
    """

    _RESERVED = frozenset({"ts", "level", "logger", "message"})

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if extra_fields:
            for key, value in extra_fields.items():
                if key not in self._RESERVED:
                    entry[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def fields(**values: Any) -> dict[str, dict[str, Any]]:
    """Build the ``extra`` mapping for a structured log call.

    ``None`` values are dropped so call sites can pass optional context
    unconditionally.
    """
    return {"extra_fields": {k: v for k, v in values.items() if v is not None}}


# One handler per configured logger name keeps get_logger idempotent.
_configured: set[str] = set()


def get_logger(
    name: str = ROOT_LOGGER,
    *,
    level: int | str = logging.WARNING,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Only the package root logger (``"surfacesync"``) receives a handler;
    child loggers such as ``"surfacesync.diff"`` propagate to it, so a
    host that wants different routing only has to reconfigure the root.

    Parameters
    ----------
    name:
        Logger name, ``"surfacesync"`` or a dotted child of it.
    level:
        Level applied the first time the root logger is configured.
        Accepts an ``int`` or a case-insensitive level name.
    stream:
        Output stream for the root handler.  Defaults to ``sys.stderr``.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if ROOT_LOGGER not in _configured:
        resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
        root.setLevel(resolved)
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
        root.propagate = False
        _configured.add(ROOT_LOGGER)

    if name == ROOT_LOGGER:
        return root
    return logging.getLogger(name)
