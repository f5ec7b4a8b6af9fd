"""
Tests for logging configuration.
"""

import logging

import pytest

from aphadon.core.observability.logging_config import PrefixFormatter, setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("aphadon.test", level, __file__, 1, msg, None, None)


class TestPrefixFormatter:
    @pytest.mark.parametrize("level,prefix", [
        (logging.INFO, "[INFO]"),
        (logging.WARNING, "[WARN]"),
        (logging.ERROR, "[ERROR]"),
        (logging.CRITICAL, "[ERROR]"),
    ])
    def test_plain_prefixes(self, level, prefix):
        assert PrefixFormatter(color=False).format(_record(level, "hello")) == f"{prefix} hello"

    def test_color(self):
        out = PrefixFormatter(color=True).format(_record(logging.ERROR, "x"))
        assert "\x1b[" in out
        assert out.endswith(" x")


class TestSetupLogging:
    def test_level_and_single_handler(self, restore_root):
        setup_logging("WARNING", color=False)
        setup_logging("ERROR", color=False)
        assert restore_root.level == logging.ERROR
        assert len(restore_root.handlers) == 1
        assert isinstance(restore_root.handlers[0].formatter, PrefixFormatter)

    def test_debug_uses_full_format(self, restore_root):
        setup_logging("debug", color=False)
        assert restore_root.level == logging.DEBUG
        assert not isinstance(restore_root.handlers[0].formatter, PrefixFormatter)

    def test_invalid_level_is_info(self, restore_root):
        setup_logging("LOUD", color=False)
        assert restore_root.level == logging.INFO

    def test_log_file(self, restore_root, tmp_path):
        log_file = tmp_path / "install.log"
        setup_logging("ERROR", log_file=str(log_file), log_file_level="DEBUG", color=False)
        assert restore_root.level == logging.DEBUG
        logging.getLogger("aphadon.test").debug("to file only")
        for handler in restore_root.handlers:
            handler.flush()
        assert "to file only" in log_file.read_text()
        for handler in restore_root.handlers[1:]:
            handler.close()
