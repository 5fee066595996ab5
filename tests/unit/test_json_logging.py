import json
import logging

from chatbridge.logging.setup import JsonFormatter, trace_id_var


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("chatbridge.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_message_and_extra_fields():
    line = json.loads(JsonFormatter().format(_record(platform="telegram", plugin_id="telegram")))
    assert line["message"] == "hello world"
    assert line["level"] == "INFO"
    assert line["platform"] == "telegram"
    assert line["plugin_id"] == "telegram"
    assert "trace_id" not in line


def test_trace_id_comes_from_context():
    token = trace_id_var.set("trace-123")
    try:
        line = json.loads(JsonFormatter().format(_record()))
    finally:
        trace_id_var.reset(token)
    assert line["trace_id"] == "trace-123"
