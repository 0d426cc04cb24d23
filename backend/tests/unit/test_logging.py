# backend/tests/unit/test_logging.py
import json
import logging

import pytest
import structlog

from marzi_bot.config.settings import settings
from marzi_bot.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_setup_logging_replaces_root_handler(mocker):
    mocker.patch.object(settings, "log_level", "debug")

    setup_logging()
    setup_logging()

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert logging.getLogger("pymongo").level == logging.WARNING


def test_unknown_log_level_falls_back_to_info(mocker):
    mocker.patch.object(settings, "log_level", "chatty")
    setup_logging()
    assert logging.getLogger().level == logging.INFO


def test_extra_fields_reach_json_output(mocker, capsys):
    mocker.patch.object(settings, "environment", "production")
    mocker.patch.object(settings, "log_level", "INFO")
    setup_logging()

    logging.getLogger("marzi_bot.test").info("turn_processed", extra={"mobile": "919845012345"})

    line = capsys.readouterr().out.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "turn_processed"
    assert event["mobile"] == "919845012345"
    assert event["level"] == "info"
