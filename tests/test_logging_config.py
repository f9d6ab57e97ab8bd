"""Test unified logging setup.

Tests for pentrace.utils.logging_config:
    - File output in JSON mode carries contextual fields
    - Repeated setup_logging() does not duplicate handlers
    - push/pop context
    - Human format layout
"""

import json
import logging
import logging.handlers

import pytest

from pentrace.utils import logging_config


@pytest.fixture(autouse=True)
def clean_logging():
    logging_config.pop_context()
    yield
    logging_config.teardown_logging()
    logging_config.pop_context()


def test_logging_idempotency(tmp_path):
    log_path = tmp_path / "trace.log"
    for _ in range(2):
        logging_config.setup_logging(
            log_level="INFO",
            log_file=str(log_path),
            json=True,
            to_stderr=False,
            context={"app": "test"},
        )
    logger = logging_config.get_logger("pentrace_test")
    logger.info("hello")

    lines = log_path.read_text().strip().splitlines()
    assert len(lines) == 1
    rec = json.loads(lines[0])
    assert rec["msg"] == "hello"
    assert rec["lvl"] == "INFO"
    assert rec["app"] == "test"


def test_level_filters_records(tmp_path):
    log_path = tmp_path / "trace.log"
    logging_config.setup_logging(log_level="WARNING", log_file=str(log_path), to_stderr=False)
    logger = logging_config.get_logger("pentrace_test")
    logger.info("dropped")
    logger.warning("kept")
    text = log_path.read_text()
    assert "dropped" not in text
    assert "kept" in text


def test_context_push_pop():
    logging_config.push_context(app="trace", image="cat.png")
    assert logging_config.get_context() == {"app": "trace", "image": "cat.png"}
    logging_config.pop_context(keys=["image"])
    assert logging_config.get_context() == {"app": "trace"}
    logging_config.pop_context()
    assert logging_config.get_context() == {}


def test_human_format():
    logging_config.push_context(image="cat.png")
    formatter = logging_config.ContextFormatter("human", use_color=False)
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "Created skeleton", None, None)
    line = formatter.format(record)
    assert line.endswith("| image=cat.png | Created skeleton")
    assert "INFO" in line


def test_invalid_settings():
    with pytest.raises(ValueError):
        logging_config.setup_logging(log_level="LOUD")
    with pytest.raises(ValueError):
        logging_config.ContextFormatter("xml")


def test_rotating_file_handler(tmp_path):
    info = logging_config.setup_logging(
        log_file=str(tmp_path / "logs" / "trace.log"),
        to_stderr=False,
        rotate={"mode": "size", "max_bytes": 1000, "backup_count": 2},
    )
    (handler,) = info["handlers"]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert (tmp_path / "logs").is_dir()
