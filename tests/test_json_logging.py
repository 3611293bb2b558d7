import io
import json
import logging
import sys

import pytest

from florida_property_risk.logs import JsonLineFormatter, configure_logging


@pytest.fixture
def fpr_logger():
    logger = logging.getLogger("fpr")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    handlers, level, propagate = saved
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_json_lines_carry_extra_fields():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonLineFormatter())
    logger = logging.getLogger("fpr.test.json")
    logger.addHandler(handler)
    logger.propagate = False
    logger.setLevel(logging.INFO)
    try:
        logger.info("zoning for %s", "Putnam", extra={"county": "putnam", "basis": "local"})
    finally:
        logger.removeHandler(handler)
        logger.propagate = True

    payload = json.loads(stream.getvalue().strip())
    assert payload["msg"] == "zoning for Putnam"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "fpr.test.json"
    assert payload["county"] == "putnam"
    assert payload["basis"] == "local"
    assert payload["ts"].endswith("+00:00")


def test_exceptions_are_included():
    try:
        raise ValueError("bad payload")
    except ValueError:
        record = logging.LogRecord(
            "fpr.analyze", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )
    payload = json.loads(JsonLineFormatter().format(record))
    assert "ValueError: bad payload" in payload["exc"]


def test_configure_logging_replaces_handlers(fpr_logger):
    configure_logging("debug", json_lines=True)
    configure_logging("warning", json_lines=True)

    assert len(fpr_logger.handlers) == 1
    assert isinstance(fpr_logger.handlers[0].formatter, JsonLineFormatter)
    assert fpr_logger.level == logging.WARNING
    assert fpr_logger.propagate is False
