"""Tests for CLI logging configuration."""

import logging

from casebuilder.logging_setup import setup_logging


class TestSetupLogging:
    def test_console_level_follows_verbose(self) -> None:
        logger = setup_logging("casebuilder.test_quiet")
        assert [h.level for h in logger.handlers] == [logging.WARNING]

        logger = setup_logging("casebuilder.test_quiet", verbose=True)
        assert [h.level for h in logger.handlers] == [logging.DEBUG]

    def test_file_handler_creates_directory(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "casebuilder.log"
        logger = setup_logging("casebuilder.test_file", log_file=str(log_file))

        logger.debug("written to file only")
        for handler in logger.handlers:
            handler.flush()

        assert "written to file only" in log_file.read_text()
        for handler in logger.handlers:
            handler.close()

    def test_noisy_loggers_quieted(self) -> None:
        setup_logging("casebuilder.test_noisy")
        assert logging.getLogger("httpx").level == logging.WARNING
