"""Log handlers for the DFG bridge."""

import sys
import threading
from typing import Any, Dict, List

from .core import LogEntry, LogHandler, LogLevel


class ConsoleHandler(LogHandler):
    """Console log handler.

    Without an explicit stream, entries go to whatever ``sys.stderr`` is at
    emit time, which keeps output capture in test runners working.
    """

    def __init__(self, stream: Any = None, level: LogLevel = LogLevel.DEBUG):
        super().__init__()
        self.stream = stream
        self.level = level
        self._closed = False

    def emit(self, entry: LogEntry) -> None:
        """Emit log entry to console."""
        with self._lock:
            if self._closed:
                return
            if self.formatter:
                formatted = self.formatter.format(entry)
            else:
                formatted = f"{entry.timestamp} [{entry.level.value.upper()}] {entry.logger_name}: {entry.message}"

            stream = self.stream or sys.stderr
            stream.write(formatted + "\n")
            stream.flush()

    def close(self) -> None:
        """Close handler; an explicitly supplied stream is closed too."""
        with self._lock:
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self._closed = True


class MemoryHandler(LogHandler):
    """Keeps the most recent entries in memory."""

    def __init__(self, max_size: int = 1000):
        super().__init__()
        self.max_size = max_size
        self.buffer: List[Dict[str, Any]] = []
        self._lock = threading.RLock()

    def emit(self, entry: LogEntry) -> None:
        """Emit log entry to memory."""
        with self._lock:
            record = entry.to_dict()
            if self.formatter:
                record["formatted"] = self.formatter.format(entry)
            self.buffer.append(record)

            if len(self.buffer) > self.max_size:
                self.buffer.pop(0)

    def get_logs(self) -> List[Dict[str, Any]]:
        """Get all logs from memory."""
        with self._lock:
            return self.buffer.copy()

    def find(self, message: str) -> List[Dict[str, Any]]:
        """Entries whose message contains ``message``."""
        with self._lock:
            return [record for record in self.buffer if message in record["message"]]

    def clear_logs(self) -> None:
        """Clear all logs from memory."""
        with self._lock:
            self.buffer.clear()

    def close(self) -> None:
        """Close handler."""
        self.clear_logs()
