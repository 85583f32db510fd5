"""Structured logging — JSON lines carry the extra routing fields."""

import json
import logging

from crossapp.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("crossapp.test", logging.WARNING, __file__, 1, "queued %s", ("op",), None)
    record.__dict__.update(extra)
    return record


def test_json_line_includes_present_extras_only():
    line = JSONFormatter().format(_record(namespace="financial", attempt=2, connection=None))
    payload = json.loads(line)
    assert payload["message"] == "queued op"
    assert payload["level"] == "WARNING"
    assert payload["namespace"] == "financial"
    assert payload["attempt"] == 2
    assert "connection" not in payload


def test_setup_logging_is_idempotent():
    setup_logging("DEBUG", "text")
    setup_logging("INFO", "json")

    ours = [h for h in logging.root.handlers if h.get_name() == "crossapp"]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JSONFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING
    logging.root.removeHandler(ours[0])
