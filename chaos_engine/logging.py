"""
Structured logging configuration for the chaos engine.

Provides consistent logging format across all modules with:
- JSON structured output for production
- Human-readable output for development
- Chaos cycle tagging so every line of a cycle can be correlated
- An in-memory ring buffer served by the diagnostics endpoint
"""

import logging
import sys
from collections import deque
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variable for tagging log lines with the chaos cycle being served
current_cycle_id: ContextVar[int | None] = ContextVar("current_cycle_id", default=None)


class ChaosFormatter(logging.Formatter):
    """
    Custom formatter for chaos engine logs.

    Includes timestamp, level, module, cycle tag (if set), and message.
    """

    def format(self, record: logging.LogRecord) -> str:
        # Add timestamp in ISO format
        record.timestamp = datetime.now(UTC).isoformat()

        cycle_id = current_cycle_id.get()
        record.cycle = f"[cycle-{cycle_id}] " if cycle_id is not None else ""

        return super().format(record)


class InMemoryHandler(logging.Handler):
    """In-memory log handler for the diagnostics endpoint."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.logs: deque[dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            cycle_id = current_cycle_id.get()
            self.logs.append(
                {
                    "timestamp": getattr(record, "timestamp", datetime.now(UTC).isoformat()),
                    "level": record.levelname,
                    "level_no": record.levelno,
                    "logger": record.name,
                    "cycle": cycle_id,
                    "message": record.getMessage(),
                }
            )
        except Exception:
            self.handleError(record)


_in_memory_handler = InMemoryHandler()


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """
    Configure logging for the chaos engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format (for production)

    Returns:
        Configured root logger
    """
    root = logging.getLogger()
    root.handlers.clear()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_output:
        fmt = (
            '{"timestamp": "%(timestamp)s", "level": "%(levelname)s", '
            '"module": "%(name)s", "cycle": "%(cycle)s", "message": "%(message)s"}'
        )
    else:
        fmt = "%(timestamp)s | %(levelname)-8s | %(name)s | %(cycle)s%(message)s"

    formatter = ChaosFormatter(fmt)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    _in_memory_handler.setLevel(numeric_level)
    _in_memory_handler.setFormatter(formatter)
    root.addHandler(_in_memory_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_in_memory_logs(level: str = "INFO", limit: int = 50) -> list[dict[str, Any]]:
    """Get filtered logs from memory."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    filtered = [log for log in _in_memory_handler.logs if log["level_no"] >= numeric_level]
    return filtered[-limit:]


def clear_in_memory_logs() -> None:
    """Drop buffered log records (for testing)."""
    _in_memory_handler.logs.clear()


def set_cycle_id(cycle_id: int) -> None:
    """Set the current chaos cycle for log correlation."""
    current_cycle_id.set(cycle_id)


def clear_cycle_id() -> None:
    """Clear the current chaos cycle tag."""
    current_cycle_id.set(None)
