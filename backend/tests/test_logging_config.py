import logging

from slotwise.core.logging_config import CorrelationIdFilter, bind_logger, new_correlation_id


def test_filter_fills_placeholder():
    record = logging.LogRecord("slotwise", logging.INFO, __file__, 1, "hello", None, None)
    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "-"


def test_filter_keeps_existing_id():
    record = logging.LogRecord("slotwise", logging.INFO, __file__, 1, "hello", None, None)
    record.correlation_id = "abc"
    CorrelationIdFilter().filter(record)
    assert record.correlation_id == "abc"


def test_bind_logger_generates_id_when_missing():
    adapter = bind_logger(logging.getLogger("slotwise.test"))
    assert len(adapter.extra["correlation_id"]) == 12
    assert bind_logger(logging.getLogger("slotwise.test"), "req-1").extra["correlation_id"] == "req-1"


def test_new_correlation_ids_differ():
    assert new_correlation_id() != new_correlation_id()
