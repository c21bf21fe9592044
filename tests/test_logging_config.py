import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from testcase_runner.logging_config import LOGGER_NAME, setup_logging


@pytest.fixture
def _restore_logger():
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def test_setup_logging_installs_rich_and_file_handlers(_restore_logger, tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "tcr.log"

    logger = setup_logging("debug", log_file=log_file)
    logging.getLogger("testcase_runner.runner").debug("hello from runner")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in logger.handlers)
    assert "hello from runner" in log_file.read_text(encoding="utf-8")


def test_setup_logging_replaces_previous_handlers(_restore_logger) -> None:
    setup_logging("INFO")
    logger = setup_logging("WARNING")

    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_setup_logging_rejects_unknown_level(_restore_logger) -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        setup_logging("LOUD")
