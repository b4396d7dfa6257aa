# activity_log.py
"""
Operation log feeding the terminal view.
Each orchestration collects its own list of entries (returned to the
caller); every entry is also mirrored to the Python logger and appended
as one JSON line to the shared, size-rotated log file.
"""

import json
import logging
import os
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

from .models import LogEntry

logger = logging.getLogger("reactors")

LOG_TYPES = ("info", "success", "error", "warning", "api", "operation")

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "api": logging.INFO,
    "operation": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_event_loggers: Dict[str, logging.Logger] = {}
_registry_lock = threading.Lock()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -------------------------------------------------------------------
# JSON-lines log file
# -------------------------------------------------------------------
class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(record.event, default=str)


def _event_logger(path: str) -> logging.Logger:
    with _registry_lock:
        events = _event_loggers.get(path)
        if events is None:
            handler = RotatingFileHandler(
                path,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
                delay=True,
            )
            handler.setFormatter(JsonLineFormatter())
            # standalone logger: not registered globally, never propagates
            events = logging.Logger(f"reactors.events:{path}", logging.DEBUG)
            events.propagate = False
            events.addHandler(handler)
            _event_loggers[path] = events
    return events


def close_event_logs() -> None:
    """Close every open log file handler (server shutdown, tests)."""
    with _registry_lock:
        for events in _event_loggers.values():
            for handler in list(events.handlers):
                handler.close()
                events.removeHandler(handler)
        _event_loggers.clear()


def log_event(path: Optional[str], level: str, message: str, **extra) -> Dict[str, Any]:
    """Append one entry to the log file at `path` (skipped when None)."""
    entry = {"time": now_iso(), "level": level, "message": message}
    if extra:
        entry.update(extra)
    if path:
        _event_logger(path).info(message, extra={"event": entry})
    return entry


def read_events(path: Optional[str], limit: int = 100) -> List[Dict[str, Any]]:
    """Last `limit` entries of the current log file, oldest first."""
    if not path or limit <= 0 or not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        tail = deque(f, maxlen=limit)
    events = []
    for line in tail:
        try:
            events.append(json.loads(line))
        except ValueError:
            logger.warning("Skipping unreadable line in %s", path)
    return events


# -------------------------------------------------------------------
# Per-operation log
# -------------------------------------------------------------------
class OperationLog:
    def __init__(self, log_file: Optional[str] = None, operation_id: Optional[str] = None):
        self.log_file = log_file
        self.operation_id = operation_id or uuid.uuid4().hex[:12]
        self.entries: List[LogEntry] = []

    def add(self, type: str, message: str, data: Any = None) -> LogEntry:
        if type not in LOG_TYPES:
            raise ValueError(f"Unknown log type: {type}")
        entry = LogEntry(
            id=f"{self.operation_id}-{len(self.entries) + 1}",
            timestamp=datetime.now(timezone.utc),
            type=type,
            message=message,
            data=data,
        )
        self.entries.append(entry)

        logger.log(_LEVELS[type], "[%s] %s", self.operation_id, message)
        extra = {"operation": self.operation_id, "type": type}
        if data is not None:
            extra["data"] = data
        log_event(self.log_file, logging.getLevelName(_LEVELS[type]), message, **extra)
        return entry

    def info(self, message: str, data: Any = None) -> LogEntry:
        return self.add("info", message, data)

    def success(self, message: str, data: Any = None) -> LogEntry:
        return self.add("success", message, data)

    def warning(self, message: str, data: Any = None) -> LogEntry:
        return self.add("warning", message, data)

    def error(self, message: str, data: Any = None) -> LogEntry:
        return self.add("error", message, data)

    def api(self, message: str, data: Any = None) -> LogEntry:
        return self.add("api", message, data)

    def operation(self, message: str, data: Any = None) -> LogEntry:
        return self.add("operation", message, data)
