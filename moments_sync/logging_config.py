from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

sync_run_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("sync_run_id", default=None)


def get_sync_run_id() -> str | None:
    return sync_run_id_var.get()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = get_sync_run_id()
        if run_id:
            log_entry["sync_run_id"] = run_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    log_format = (log_format or os.environ.get("LOG_FORMAT") or "json").strip().lower()
    level_str = (level or os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    resolved = getattr(logging, level_str, logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
