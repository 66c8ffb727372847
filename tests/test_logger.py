import logging

from testwatcher.logger import setup_logger


def test_setup_logger_console_only():
    logger = setup_logger("testwatcher.test.console", level="debug")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)


def test_setup_logger_with_file(tmp_path):
    log_dir = tmp_path / "logs"
    logger = setup_logger("testwatcher.test.file", log_dir=str(log_dir), console=False)
    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in (log_dir / "testwatcher.log").read_text()


def test_setup_logger_replaces_handlers():
    setup_logger("testwatcher.test.repeat")
    logger = setup_logger("testwatcher.test.repeat")
    assert len(logger.handlers) == 1
