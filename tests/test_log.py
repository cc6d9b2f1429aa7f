import logging
from logging.handlers import RotatingFileHandler

import pytest

from log import setup_logging


@pytest.fixture
def log_dir(tmp_path):
    loggers = [logging.getLogger(), logging.getLogger("panel"), logging.getLogger("daemon")]
    before = {logger.name: list(logger.handlers) for logger in loggers}
    levels = {logger.name: logger.level for logger in loggers}
    yield tmp_path
    for logger in loggers:
        for handler in logger.handlers[:]:
            ours = isinstance(handler, RotatingFileHandler) or type(handler) is logging.StreamHandler
            if ours and handler not in before[logger.name]:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(levels[logger.name])


def _flush():
    for name in (None, "panel", "daemon"):
        for handler in logging.getLogger(name).handlers:
            handler.flush()


def test_actions_and_daemon_traffic_get_their_own_files(log_dir):
    setup_logging(str(log_dir))

    logging.getLogger("panel").info("reseller: scheduled deletion of customer account: client")
    logging.getLogger("daemon").error("Couldn't connect to the daemon")
    _flush()

    actions = (log_dir / "actions.log").read_text()
    assert "] INFO reseller: scheduled deletion of customer account: client" in actions
    assert "daemon" not in actions
    assert "Couldn't connect to the daemon" in (log_dir / "daemon.log").read_text()

    everything = (log_dir / "panel.log").read_text()
    assert "panel - INFO - reseller: scheduled deletion" in everything
    assert "daemon - ERROR - Couldn't connect" in everything


def test_setup_is_idempotent(log_dir):
    setup_logging(str(log_dir))
    setup_logging(str(log_dir))

    panel_files = [
        h for h in logging.getLogger("panel").handlers
        if isinstance(h, RotatingFileHandler) and h.baseFilename.endswith("actions.log")
    ]
    assert len(panel_files) == 1
