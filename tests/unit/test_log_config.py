"""
Unit tests for logging configuration.
"""
from loguru import logger

from config import Settings
from src.core.log_config import configure_logging


def test_file_sink_receives_messages(tmp_path):
    log_file = tmp_path / "engine.log"
    configure_logging(Settings(_env_file=None, log_level="DEBUG", log_file=str(log_file)))

    logger.info("knowledge state updated")
    logger.complete()
    logger.remove()

    assert "knowledge state updated" in log_file.read_text(encoding="utf-8")


def test_level_filters_messages(tmp_path):
    log_file = tmp_path / "engine.log"
    configure_logging(Settings(_env_file=None, log_level="WARNING", log_file=str(log_file)))

    logger.info("hidden")
    logger.warning("shown")
    logger.complete()
    logger.remove()

    content = log_file.read_text(encoding="utf-8")
    assert "shown" in content
    assert "hidden" not in content
