import logging

from dtfprint.logging_config import setup_logging


def test_setup_is_idempotent(restore_root_logger):
    setup_logging("debug")
    setup_logging("debug")

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1


def test_custom_format_and_stdout(restore_root_logger, capsys):
    setup_logging("INFO", "%(levelname)s|%(message)s")

    logging.getLogger("dtfprint.test").info("hello %s", "press")

    assert "INFO|hello press" in capsys.readouterr().out
