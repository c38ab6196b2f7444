# Area: Shared Tests
"""Tests for optional logging setup and invalidation logging."""

import json
import logging
import socket

import pytest

from socket_timeout import OperationTimeoutError, setup_logging, wrap
from socket_timeout._shared.logging_config import JSONFormatter, TerminalFormatter


@pytest.fixture
def restore_logger():
    pkg_logger = logging.getLogger("socket_timeout")
    saved = (list(pkg_logger.handlers), pkg_logger.level, pkg_logger.propagate)
    yield
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.handlers[:] = saved[0]
    pkg_logger.setLevel(saved[1])
    pkg_logger.propagate = saved[2]


class TestSetupLogging:
    def test_terminal_only_by_default(self, restore_logger):
        pkg_logger = setup_logging(level=logging.DEBUG)
        assert len(pkg_logger.handlers) == 1
        assert isinstance(pkg_logger.handlers[0].formatter, TerminalFormatter)
        assert pkg_logger.propagate is False

    def test_json_file_handler(self, restore_logger, tmp_path):
        log_file = tmp_path / "logs" / "sockets.log"
        pkg_logger = setup_logging(str(log_file), level=logging.INFO)
        assert len(pkg_logger.handlers) == 2

        logging.getLogger("socket_timeout.test").info("hello %s", "there")
        for handler in pkg_logger.handlers:
            handler.flush()
        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["message"] == "hello there"
        assert record["level"] == "INFO"
        assert record["logger"] == "socket_timeout.test"

    def test_repeated_setup_replaces_handlers(self, restore_logger):
        setup_logging()
        pkg_logger = setup_logging()
        assert len(pkg_logger.handlers) == 1


class TestFormatters:
    def test_terminal_formatter_does_not_leak_colour(self):
        record = logging.LogRecord("socket_timeout", logging.WARNING, __file__, 1, "msg", None, None)
        out = TerminalFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[33m" in out
        assert record.levelname == "WARNING"

    def test_json_formatter_includes_extras(self):
        record = logging.LogRecord("socket_timeout", logging.INFO, __file__, 1, "msg", None, None)
        record.operation = "read"
        data = json.loads(JSONFormatter().format(record))
        assert data["operation"] == "read"


class TestInvalidationLogging:
    def test_timeout_logged_as_warning(self, caplog):
        left, right = socket.socketpair()
        try:
            sock = wrap(left, read_timeout=0.1, timeout_strategy="Select")
            with caplog.at_level(logging.WARNING, logger="socket_timeout"):
                with pytest.raises(OperationTimeoutError):
                    sock.recv(1)
            assert any("socket invalidated" in r.getMessage() for r in caplog.records)
        finally:
            left.close()
            right.close()

    def test_timeout_record_carries_structured_fields(self, caplog):
        left, right = socket.socketpair()
        try:
            sock = wrap(left, read_timeout=0.1, timeout_strategy="Select")
            with caplog.at_level(logging.WARNING, logger="socket_timeout"):
                with pytest.raises(OperationTimeoutError):
                    sock.recv(1)
            record = next(r for r in caplog.records if "socket invalidated" in r.getMessage())
            assert record.operation == "read"
            assert record.deadline == 0.1
            assert record.strategy == "Select"
            assert json.loads(JSONFormatter().format(record))["strategy"] == "Select"
        finally:
            left.close()
            right.close()
