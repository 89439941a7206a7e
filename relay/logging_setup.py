from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

# Structured fields copied from ``extra=`` into the JSON line when present.
CONTEXT_KEYS = (
    "run_id",
    "job",
    "item_id",
    "state",
    "reason",
    "error",
    "attempts",
    "retry_limit",
    "duration_ms",
    "rows",
    "http_status",
    "elapsed_ms",
    "retry_class",
    "policy",
    "interval_ms",
    "active_count",
    "drain_attempt",
    "drain_limit",
    "item_ids",
    "report",
    "report_path",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: int | str = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
