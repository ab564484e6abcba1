"""Log formatters for the relayer.

This module provides:
- JSONFormatter: one JSON object per entry, with relay errors expanded
- TextFormatter: a single human readable line tagged with the message hash
"""

import json
import time
import traceback
from typing import Any, Dict, Optional

from .core import LogEntry, LogFormatter


def _utc_iso(timestamp: float) -> str:
    millis = int((timestamp % 1) * 1000)
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(timestamp)) + f".{millis:03d}Z"


class JSONFormatter(LogFormatter):
    """JSON log formatter.

    Exceptions with a ``to_dict`` method are emitted as structured data.
    """

    def __init__(self, include_context: bool = True, include_traceback: bool = False, indent: Optional[int] = None):
        self.include_context = include_context
        self.include_traceback = include_traceback
        self.indent = indent

    def format(self, entry: LogEntry) -> str:
        record: Dict[str, Any] = {
            "timestamp": _utc_iso(entry.timestamp),
            "level": entry.level.value,
            "logger": entry.logger_name,
            "message": entry.message,
        }

        if self.include_context:
            record["context"] = {
                key: value for key, value in entry.context.to_dict().items() if value
            }
        if entry.extra:
            record["extra"] = entry.extra
        if entry.exception is not None:
            record["error"] = self._describe(entry.exception)

        return json.dumps(record, indent=self.indent, default=str)

    def _describe(self, exc: BaseException) -> Dict[str, Any]:
        if hasattr(exc, "to_dict"):
            described = dict(exc.to_dict())
        else:
            described = {"type": type(exc).__name__, "message": str(exc)}
        if self.include_traceback:
            described["traceback"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return described


class TextFormatter(LogFormatter):
    """Text log formatter."""

    def __init__(
        self,
        include_timestamp: bool = True,
        include_logger: bool = False,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
    ):
        self.include_timestamp = include_timestamp
        self.include_logger = include_logger
        self.timestamp_format = timestamp_format

    def format(self, entry: LogEntry) -> str:
        parts = []
        if self.include_timestamp:
            parts.append(time.strftime(self.timestamp_format, time.gmtime(entry.timestamp)))
        parts.append(f"[{entry.level.value.upper()}]")
        if self.include_logger:
            parts.append(f"{entry.logger_name}:")
        parts.append(entry.message)
        if entry.context.message_hash:
            parts.append(f"message_hash={entry.context.message_hash}")
        if entry.exception is not None:
            parts.append(f"({type(entry.exception).__name__}: {entry.exception})")
        return " ".join(parts)
