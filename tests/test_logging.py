import logging

from jajanin.logging import ContextFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": "jajanin.stream.client", "levelno": logging.INFO, "levelname": "INFO"})
    record.msg = "stream.connected"
    record.__dict__.update(extra)
    return record


def test_extra_fields_follow_the_event_name() -> None:
    formatter = ContextFormatter("%(levelname)s | %(message)s")
    line = formatter.format(_record(key="sk-test", attempt=2))
    assert line == "INFO | stream.connected attempt=2 key=sk-test"


def test_plain_records_are_left_untouched() -> None:
    formatter = ContextFormatter("%(name)s | %(message)s")
    assert formatter.format(_record()) == "jajanin.stream.client | stream.connected"
