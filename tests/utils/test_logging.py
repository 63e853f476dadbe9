import logging

from entitylab.utils.logging import (
    SLOW_QUERY_ENV,
    get_correlation_id,
    get_logger,
    resolve_slow_query_ms,
    set_correlation_id,
    time_call,
)


def test_correlation_id_round_trip():
    token = set_correlation_id("test-token")
    assert token == "test-token"
    assert get_correlation_id() == "test-token"


def test_loggers_live_under_package_root():
    assert get_logger("services.lifecycle").name == "entitylab.services.lifecycle"


def test_time_call_logs_duration(caplog):
    logger = get_logger("tests.logging")
    caplog.set_level(logging.DEBUG, logger=logger.name)
    with time_call("unit-test", logger, threshold_ms=0):
        pass
    messages = [record.message for record in caplog.records if record.name == logger.name]
    assert any("unit-test took" in message for message in messages)


def test_time_call_below_threshold_is_debug(caplog):
    logger = get_logger("tests.logging")
    caplog.set_level(logging.DEBUG, logger=logger.name)
    with time_call("fast", logger, threshold_ms=60_000):
        pass
    levels = {record.levelno for record in caplog.records if record.name == logger.name}
    assert levels == {logging.DEBUG}


def test_resolve_slow_query_ms(monkeypatch):
    monkeypatch.delenv(SLOW_QUERY_ENV, raising=False)
    assert resolve_slow_query_ms(default=150) == 150
    monkeypatch.setenv(SLOW_QUERY_ENV, "25")
    assert resolve_slow_query_ms(default=150) == 25
    assert resolve_slow_query_ms(default=150, override=5) == 5


def test_resolve_slow_query_ms_ignores_garbage(monkeypatch, caplog):
    monkeypatch.setenv(SLOW_QUERY_ENV, "fast")
    caplog.set_level(logging.WARNING, logger="entitylab")
    assert resolve_slow_query_ms(default=80) == 80
    assert any(SLOW_QUERY_ENV in record.message for record in caplog.records)
