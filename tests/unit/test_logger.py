"""Unit tests for logger configuration and the performance decorator."""

import logging

import pytest

from findash.config import reset_config
from findash.utils.logger import (
    ROOT_LOGGER,
    ContextFormatter,
    get_logger,
    log_async_performance,
    setup_logger
)


class RecordingHandler(logging.Handler):

    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def records():
    handler = RecordingHandler()
    root = logging.getLogger(ROOT_LOGGER)
    root.addHandler(handler)
    yield handler.records
    root.removeHandler(handler)


def make_record(**extra):
    record = logging.LogRecord("findash.test", logging.INFO, __file__, 1, "Cache miss for %s", ("quote_aapl",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFormatter:

    def test_extra_fields_are_appended(self):
        line = ContextFormatter("%(message)s").format(make_record(symbol="AAPL", duration_ms=12))
        assert line == "Cache miss for quote_aapl | duration_ms=12 symbol=AAPL"

    def test_no_extra_fields(self):
        assert ContextFormatter("%(message)s").format(make_record()) == "Cache miss for quote_aapl"


class TestGetLogger:

    def test_module_loggers_live_under_root(self):
        assert get_logger("findash.data.cache").logger.name == "findash.data.cache"
        assert get_logger("conftest").logger.name == "findash.conftest"

    def test_context_reaches_record(self, records):
        logger = get_logger("findash.test_context")
        logger.add_context(symbol="MSFT")
        logger.warning("stale", extra={'key': 'quote_msft'})

        assert records[-1].symbol == "MSFT"
        assert records[-1].key == "quote_msft"

    def test_log_file_from_config(self, tmp_path):
        log_file = tmp_path / "logs" / "findash.log"
        root = setup_logger(level="DEBUG", log_file=log_file, use_colors=False)
        try:
            get_logger("findash.test_file").info("written", extra={'symbol': 'AAPL'})
            for handler in root.handlers:
                handler.flush()
            assert "written | symbol=AAPL" in log_file.read_text()
        finally:
            setup_logger()

    def test_log_to_file_setting(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_TO_FILE", "true")
        monkeypatch.setenv("FINDASH_LOG_DIR", str(tmp_path))
        reset_config()
        root = setup_logger(use_colors=False)
        try:
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        finally:
            monkeypatch.setenv("LOG_TO_FILE", "false")
            reset_config()
            setup_logger()


class TestLogAsyncPerformance:

    @pytest.mark.asyncio
    async def test_success_records_duration_and_symbol(self, records):
        class Service:
            @log_async_performance()
            async def load(self, symbol):
                return symbol.lower()

        assert await Service().load("AAPL") == "aapl"
        record = records[-1]
        assert record.getMessage() == "Completed TestLogAsyncPerformance.test_success_records_duration_and_symbol.<locals>.Service.load"
        assert record.symbol == "AAPL"
        assert record.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_reraised(self, records):
        @log_async_performance()
        async def explode():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await explode()

        assert records[-1].levelno == logging.ERROR
        assert "boom" in records[-1].getMessage()
        assert not hasattr(records[-1], 'symbol')
