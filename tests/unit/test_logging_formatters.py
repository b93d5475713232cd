"""
Unit tests for log formatters.
"""

import json

from dfgbridge.logging import JSONFormatter, LogContext, LogEntry, LogLevel, TextFormatter


def make_entry(**overrides) -> LogEntry:
    data = dict(
        timestamp=0.25,
        level=LogLevel.INFO,
        message="bridged 10 of asset 0 to eid 2",
        logger_name="dfgbridge.bridge.adapter",
        context=LogContext(eid=1, operation="bridge_token", guid="0x" + "ab" * 32),
        extra={"fee": 5},
    )
    data.update(overrides)
    return LogEntry(**data)


class TestJSONFormatter:
    """Test JSONFormatter."""

    def test_format(self):
        """Test the JSON layout."""
        data = json.loads(JSONFormatter().format(make_entry()))

        assert data["timestamp"] == "1970-01-01T00:00:00.250000Z"
        assert data["level"] == "info"
        assert data["logger"] == "dfgbridge.bridge.adapter"
        assert data["context"] == {
            "eid": 1,
            "operation": "bridge_token",
            "guid": "0x" + "ab" * 32,
        }
        assert data["extra"] == {"fee": 5}
        assert data["message"] == "bridged 10 of asset 0 to eid 2"

    def test_exception(self):
        """Test exception details."""
        try:
            raise RuntimeError("lost")
        except RuntimeError as e:
            entry = make_entry(exception=e)

        data = json.loads(JSONFormatter().format(entry))
        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "lost"
        assert "Traceback" in data["exception"]["traceback"]

    def test_optional_sections(self):
        """Test switching sections off."""
        formatter = JSONFormatter(include_context=False, include_extra=False, timestamp_format="unix")
        data = json.loads(formatter.format(make_entry()))

        assert "context" not in data
        assert "extra" not in data
        assert data["timestamp"] == "0.25"


class TestTextFormatter:
    """Test TextFormatter."""

    def test_format(self):
        """Test the single-line layout."""
        line = TextFormatter().format(make_entry())
        assert line == (
            "1970-01-01 00:00:00 [INFO] dfgbridge.bridge.adapter eid=1 guid=0xabababab "
            "bridge_token: bridged 10 of asset 0 to eid 2 fee=5"
        )

    def test_minimal_entry(self):
        """Test an entry without context or extras."""
        line = TextFormatter().format(make_entry(context=LogContext(), extra={}))
        assert line == "1970-01-01 00:00:00 [INFO] dfgbridge.bridge.adapter bridged 10 of asset 0 to eid 2"

    def test_exception_suffix(self):
        """Test the exception suffix."""
        line = TextFormatter().format(make_entry(exception=ValueError("bad")))
        assert line.endswith("(ValueError: bad)")
