"""Log formatters for the DFG bridge."""

import json
import time
import traceback
from typing import Any, Dict, Optional

from .core import LogEntry, LogFormatter


def _format_timestamp(timestamp: float, timestamp_format: str) -> str:
    if timestamp_format == "iso":
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(timestamp))
            + f".{int((timestamp % 1) * 1000000):06d}Z"
        )
    if timestamp_format == "unix":
        return str(timestamp)
    return time.strftime(timestamp_format, time.gmtime(timestamp))


class JSONFormatter(LogFormatter):
    """JSON log formatter."""

    def __init__(
        self,
        include_context: bool = True,
        include_exception: bool = True,
        include_extra: bool = True,
        timestamp_format: str = "iso",
        indent: Optional[int] = None,
    ):
        self.include_context = include_context
        self.include_exception = include_exception
        self.include_extra = include_extra
        self.timestamp_format = timestamp_format
        self.indent = indent

    def format(self, entry: LogEntry) -> str:
        """Format log entry as JSON."""
        data: Dict[str, Any] = {
            "timestamp": _format_timestamp(entry.timestamp, self.timestamp_format),
            "level": entry.level.value,
            "logger": entry.logger_name,
        }

        if self.include_context:
            data["context"] = {
                key: value
                for key, value in entry.context.to_dict().items()
                if value not in (None, {})
            }

        if self.include_exception and entry.exception:
            data["exception"] = {
                "type": type(entry.exception).__name__,
                "message": str(entry.exception),
                "traceback": "".join(
                    traceback.format_exception(
                        type(entry.exception),
                        entry.exception,
                        entry.exception.__traceback__,
                    )
                ),
            }

        if self.include_extra and entry.extra:
            data["extra"] = entry.extra

        data["message"] = entry.message

        return json.dumps(data, indent=self.indent, default=str)


class TextFormatter(LogFormatter):
    """Single-line human readable formatter.

    ``2026-01-01 12:00:00 [INFO] dfgbridge.bridge.adapter eid=40161 bridge_token: sent``
    """

    def __init__(self, timestamp_format: str = "%Y-%m-%d %H:%M:%S"):
        self.timestamp_format = timestamp_format

    def format(self, entry: LogEntry) -> str:
        parts = [
            _format_timestamp(entry.timestamp, self.timestamp_format),
            f"[{entry.level.value.upper()}]",
            entry.logger_name,
        ]
        if entry.context.eid is not None:
            parts.append(f"eid={entry.context.eid}")
        if entry.context.guid:
            parts.append(f"guid={entry.context.guid[:10]}")
        if entry.context.operation:
            parts.append(f"{entry.context.operation}:")
        parts.append(entry.message)
        if entry.extra:
            parts.append(" ".join(f"{k}={v}" for k, v in sorted(entry.extra.items())))
        if entry.exception:
            parts.append(f"({type(entry.exception).__name__}: {entry.exception})")
        return " ".join(parts)
