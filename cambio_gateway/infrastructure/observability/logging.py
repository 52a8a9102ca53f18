"""Structured JSON logging for the teller workstation"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from cambio_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_window_transition(window_id: int, from_status: str, to_status: str, step: str) -> None:
    """Log a session state change"""
    logging.info(
        "Teller window transition",
        extra={
            "window_id": window_id,
            "step": step,
            "from_status": from_status,
            "to_status": to_status,
        },
    )


def log_submission(
    window_id: int | None,
    operation: str,
    success: bool,
    duration_ms: float,
    reason: str | None = None,
) -> None:
    """Log structured submission outcome"""
    logging.info(
        "Conversion submission completed",
        extra={
            "window_id": window_id,
            "step": "submission_complete",
            "operation": operation,
            "outcome": "accepted" if success else "rejected",
            "reason": reason,
            "duration_ms": duration_ms,
        },
    )
