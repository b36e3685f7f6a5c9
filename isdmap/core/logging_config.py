"""Shared logging configuration for the API and the command-line tools."""

from __future__ import annotations

import logging
import os
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, MutableMapping, Optional

from pythonjsonlogger import jsonlogger

_CONFIGURED = False
_LOG_BUFFER: deque[dict[str, str]] = deque(maxlen=200)

# Ingestion context carried by StationLogAdapter records.
CONTEXT_FIELDS = ("station_id", "path")


class _ServiceNameFilter(logging.Filter):
    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.service = self.service_name
        return True


class StationLogAdapter(logging.LoggerAdapter):
    """Tags records with the input file and station they concern.

    The tags become top-level keys of the JSON line and of the ``/logs``
    entries, so one station's history can be filtered out of a batch run.
    """

    def __init__(
        self,
        logger: logging.Logger,
        path: str | Path | None = None,
        station_id: str | None = None,
    ) -> None:
        context = {"path": str(path) if path is not None else None, "station_id": station_id}
        super().__init__(logger, {key: value for key, value in context.items() if value is not None})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


class _BufferHandler(logging.Handler):
    """Keeps the most recent records around for the /logs endpoint."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            created = datetime.fromtimestamp(record.created, tz=timezone.utc)
            entry = {
                "time": created.isoformat().replace("+00:00", "Z"),
                "level": record.levelname,
                "name": record.name,
                "message": record.getMessage(),
            }
            for key in CONTEXT_FIELDS:
                value = getattr(record, key, None)
                if value is not None:
                    entry[key] = str(value)
            _LOG_BUFFER.appendleft(entry)
        except Exception:
            self.handleError(record)


def setup_logging(service_name: Optional[str] = None) -> None:
    """Configure root logging with a JSON formatter and the isdmap service tag."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    service = service_name or os.getenv("SERVICE_NAME", "isdmap")

    handler = logging.StreamHandler()
    handler.setFormatter(
        jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(service)s")
    )
    handler.addFilter(_ServiceNameFilter(service))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.addHandler(_BufferHandler())
    root.setLevel(log_level)
    logging.captureWarnings(True)
    _CONFIGURED = True


def get_log_buffer(limit: int = 100, station_id: str | None = None) -> list[dict[str, str]]:
    entries = list(_LOG_BUFFER)
    if station_id is not None:
        entries = [entry for entry in entries if entry.get("station_id") == station_id]
    return entries[:limit]


__all__ = ["StationLogAdapter", "get_log_buffer", "setup_logging"]
