"""Property-based tests for logging and error handling"""
import json
import logging
import sys

import pytest

from dashboard.utils.error_handler import DataServiceError, ErrorHandler
from dashboard.utils.logging_config import StructuredFormatter, setup_logging


def make_record(msg="Test message", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="dashboard.test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# Feature: market-dashboard, Property 14: Structured log format
def test_structured_format_has_required_fields():
    log_data = json.loads(StructuredFormatter().format(make_record()))

    assert log_data['level'] == 'INFO'
    assert log_data['logger'] == 'dashboard.test'
    assert log_data['message'] == 'Test message'
    assert 'timestamp' in log_data
    assert 'exception' not in log_data


def test_structured_format_includes_known_extras():
    record = make_record(component='RefreshCoordinator', source='market_state', timeframes=(1, 5), other='x')

    log_data = json.loads(StructuredFormatter().format(record))

    assert log_data['component'] == 'RefreshCoordinator'
    assert log_data['source'] == 'market_state'
    assert log_data['timeframes'] == [1, 5]
    assert 'other' not in log_data


def test_structured_format_includes_exception():
    try:
        raise ValueError("Test exception")
    except ValueError:
        record = make_record("Error occurred", logging.ERROR, sys.exc_info())

    log_data = json.loads(StructuredFormatter().format(record))

    assert log_data['exception']['type'] == 'ValueError'
    assert log_data['exception']['message'] == 'Test exception'
    assert 'Traceback' in log_data['exception']['traceback']


@pytest.mark.parametrize("structured", [True, False])
def test_setup_logging_installs_single_handler(structured):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("debug", structured)
        setup_logging("debug", structured)

        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter) is structured
        assert logging.getLogger('aiohttp').level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_data_service_error_message():
    assert str(DataServiceError("Market state", 502)) == "Market state fetch failed: 502"
    assert str(DataServiceError("Bars", 404, "unknown ticker")) == "Bars fetch failed: 404 (unknown ticker)"


def test_cycle_error_is_logged_and_described(caplog):
    handler = ErrorHandler()

    with caplog.at_level(logging.ERROR):
        message = handler.handle_cycle_error("RefreshCoordinator", RuntimeError("boom"))

    assert message == "boom"
    assert caplog.records[-1].component == "RefreshCoordinator"
    assert caplog.records[-1].exc_info is not None
    assert handler.handle_cycle_error("RefreshCoordinator", RuntimeError()) == "Unknown error"


def test_source_error_logged_as_warning(caplog):
    with caplog.at_level(logging.WARNING):
        ErrorHandler().handle_source_error("chart_bars", DataServiceError("Bars", 500))

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.source == "chart_bars"


def test_formatter_fields_are_configurable():
    record = make_record(component='MarkerPipeline', symbol='@ES')

    log_data = json.loads(StructuredFormatter(fields=('symbol',)).format(record))

    assert log_data['symbol'] == '@ES'
    assert 'component' not in log_data


def test_timestamp_comes_from_record():
    record = make_record()
    record.created = 0.0

    assert json.loads(StructuredFormatter().format(record))['timestamp'] == '1970-01-01T00:00:00+00:00'
