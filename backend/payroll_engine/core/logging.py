from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


PAYROLL_LOG_FIELDS = (
    "payroll_id",
    "company_id",
    "employee_id",
    "month",
    "status",
    "from_status",
    "to_status",
    "salary_type",
    "actor_id",
    "operation",
    "error_code",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in PAYROLL_LOG_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )
