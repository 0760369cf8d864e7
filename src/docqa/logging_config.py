"""Application logging configuration utilities."""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_LOGGER_NAME = "docqa.ingest.audit"

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# fields every docqa event may carry, emitted in this order right after the header
EVENT_FIELDS = ("step", "module", "document_id", "req_id", "duration_ms")


class MinimalJSONFormatter(logging.Formatter):
    """Render a record as one JSON line led by ``ts``, ``level`` and ``logger``.

    Dict messages (the shape produced by :func:`docqa.telemetry.log_event`) are
    merged into the line. Event fields passed either in the dict or as ``extra``
    are promoted to the front in :data:`EVENT_FIELDS` order so lines for the same
    document line up when grepping the audit log.
    """

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {}
        if isinstance(record.msg, dict):
            fields.update(record.msg)
        else:
            message = record.getMessage()
            if message:
                fields["message"] = message

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                fields.setdefault(key, value)

        if record.exc_info and "exc" not in fields:
            fields["exc_info"] = self.formatException(record.exc_info)

        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }
        for key in EVENT_FIELDS:
            if fields.get(key) is not None:
                line[key] = fields.pop(key)
        line.update((key, value) for key, value in fields.items() if value is not None)
        return json.dumps(line, ensure_ascii=False, default=str)


def configure_logging(log_dir: str | Path = "logs", level: str = "INFO") -> None:
    """Send JSON lines for ``docqa`` loggers to stderr and audit events to ``<log_dir>/ingest_audit.log``.

    ``level`` applies to the ``docqa`` package; third-party loggers stay at WARNING.
    The audit logger always records INFO so ingests and queries are never dropped.
    """

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"docqa_json": {"()": MinimalJSONFormatter}},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "docqa_json",
                },
                "audit_file": {
                    "class": "logging.FileHandler",
                    "filename": str(log_path / "ingest_audit.log"),
                    "encoding": "utf-8",
                    "formatter": "docqa_json",
                },
            },
            "root": {"level": "WARNING", "handlers": ["stderr"]},
            "loggers": {
                "docqa": {"level": level},
                AUDIT_LOGGER_NAME: {
                    "level": "INFO",
                    "handlers": ["audit_file"],
                    "propagate": False,
                },
            },
        }
    )


__all__ = ["AUDIT_LOGGER_NAME", "EVENT_FIELDS", "MinimalJSONFormatter", "configure_logging"]
