"""Structured JSON logging utilities for event-based logging."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add event-specific fields if present
        if hasattr(record, "event_type"):
            log_data["event_type"] = record.event_type
        if hasattr(record, "event_data"):
            log_data.update(record.event_data)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure JSON logging on the root logger."""
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = [console_handler]

    # Suppress verbose logging from dependencies
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _event_data(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    event_data = dict(base)
    # Filter out None values from kwargs
    for key, value in extra.items():
        if value is not None:
            event_data[key] = value
    return event_data


def log_gateway_call(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    duration_ms: float | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a request/response exchange with the backend.

    Args:
        logger: Logger instance
        operation: Gateway operation (e.g., "list_stations", "create_intent")
        outcome: "ok" or "failed"
        duration_ms: Round trip duration in milliseconds
        **kwargs: Additional fields to include (never card data)
    """
    event_data = _event_data(
        {"operation": operation, "outcome": outcome},
        {"duration_ms": duration_ms, **kwargs},
    )
    extra = {
        "event_type": "gateway_call",
        "event_data": event_data,
    }
    level = logging.INFO if outcome == "ok" else logging.WARNING
    logger.log(level, f"Gateway {operation}: {outcome}", extra=extra)


def log_session_transition(
    logger: logging.Logger,
    from_step: str,
    to_step: str,
    station_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a payment session step change.

    Args:
        logger: Logger instance
        from_step: Step before the transition (e.g., "details")
        to_step: Step after the transition (e.g., "confirming")
        station_id: Bound station ID (if any)
        **kwargs: Additional fields to include
    """
    event_data = _event_data(
        {"from_step": from_step, "to_step": to_step},
        {"station_id": station_id, **kwargs},
    )
    extra = {
        "event_type": "session_transition",
        "event_data": event_data,
    }
    logger.info(f"Session {from_step} -> {to_step}", extra=extra)


def log_error(
    logger: logging.Logger,
    error_type: str,
    message: str,
    exc_info: Exception | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an error event.

    Args:
        logger: Logger instance
        error_type: Type of error (e.g., "poll_error", "plugin_error")
        message: Error message
        exc_info: Exception object (will extract traceback)
        **kwargs: Additional fields to include
    """
    event_data = _event_data({"error_type": error_type}, kwargs)
    extra = {
        "event_type": "error",
        "event_data": event_data,
    }
    logger.error(message, extra=extra, exc_info=exc_info)
