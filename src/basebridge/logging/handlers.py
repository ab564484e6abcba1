"""Log handlers for the relayer.

This module provides the console handler used by the CLI and the memory
handler used to capture log output in tests.
"""

import sys
from collections import deque
from typing import Any, Dict, List, TextIO

from .core import LogEntry, LogHandler


class ConsoleHandler(LogHandler):
    """Write one line per entry to a stream, stderr by default.

    Stdout is left to the CLI for relay results.
    """

    def __init__(self, stream: TextIO = None):
        super().__init__()
        self.stream = stream if stream is not None else sys.stderr

    def emit(self, entry: LogEntry) -> None:
        if self.formatter is not None:
            line = self.formatter.format(entry)
        else:
            line = f"[{entry.level.value.upper()}] {entry.message}"
        with self._lock:
            print(line, file=self.stream, flush=True)


class MemoryHandler(LogHandler):
    """Keep the most recent entries in memory."""

    def __init__(self, max_size: int = 1000):
        super().__init__()
        self._records: deque = deque(maxlen=max_size)

    def emit(self, entry: LogEntry) -> None:
        record = entry.to_dict()
        record["formatted"] = self.formatter.format(entry) if self.formatter else None
        with self._lock:
            self._records.append(record)

    def get_logs(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._records)

    def messages(self) -> List[str]:
        """Messages only, oldest first."""
        with self._lock:
            return [record["message"] for record in self._records]

    def clear_logs(self) -> None:
        with self._lock:
            self._records.clear()

    def close(self) -> None:
        self.clear_logs()
