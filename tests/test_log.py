import io
import logging

from projvars.core.config import LoggingConfig
from projvars.core.log import add_file_handler, configure_logging, get_logger, temp_level


def test_configure_logging_sets_logger_level():
    logger = logging.getLogger("projvars")
    logger.setLevel(logging.WARNING)

    configure_logging(level="DEBUG")

    assert logger.level == logging.DEBUG


def test_configure_logging_installs_single_stream_handler():
    name = "projvars.test.single"
    stream = io.StringIO()
    configure_logging(level="INFO", stream=stream, logger_name=name)
    configure_logging(level="INFO", stream=stream, logger_name=name)
    logger = get_logger(name)
    stream_handlers = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    assert len(stream_handlers) == 1
    logger.info("hello")
    assert "hello" in stream.getvalue()


def test_temp_level_changes_and_restores():
    logger = logging.getLogger("projvars.test.temp")
    logger.setLevel(logging.WARNING)
    original_level = logger.level

    with temp_level(logging.DEBUG, name=logger.name):
        assert logger.level == logging.DEBUG

    assert logger.level == original_level


def test_logging_config_apply():
    LoggingConfig(level="WARNING", propagate=True, logger_name="projvars.test.cfg").apply()
    logger = logging.getLogger("projvars.test.cfg")
    assert logger.level == logging.WARNING
    assert logger.propagate is True


def test_add_file_handler(tmp_path):
    name = "projvars.test.file"
    logger = get_logger(name)
    logger.setLevel(logging.INFO)
    handler = add_file_handler(tmp_path / "x.log", logger_name=name)
    try:
        logger.info("to file")
    finally:
        logger.removeHandler(handler)
        handler.close()
    assert "to file" in (tmp_path / "x.log").read_text(encoding="utf-8")


def test_configure_logging_replaces_a_closed_stream():
    name = "projvars.test.closed"
    first = io.StringIO()
    configure_logging(level="INFO", stream=first, logger_name=name)
    first.close()
    second = io.StringIO()
    logger = configure_logging(level="INFO", stream=second, logger_name=name)
    logger.info("after close")
    assert "after close" in second.getvalue()
