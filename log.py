import logging
from logging.handlers import RotatingFileHandler
import os

MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# One line per user action, e.g. "reseller: scheduled deletion of customer account: client"
ACTION_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"


def _add_rotating_handler(logger, path, formatter):
    """Attach a rotating file handler once per file."""
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == path:
            return handler
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return handler


def setup_logging(log_dir=None, level=logging.INFO):
    """
    Console plus three rotating files under ``log_dir``:

    - ``panel.log``: everything
    - ``actions.log``: user actions from the ``panel`` logger
    - ``daemon.log``: daemon requests and results from the ``daemon`` logger
    """
    if not log_dir:
        log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
    log_dir = os.path.abspath(log_dir)
    os.makedirs(log_dir, exist_ok=True)

    log_formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(log_formatter)
        root_logger.addHandler(console_handler)

    _add_rotating_handler(root_logger, os.path.join(log_dir, "panel.log"), log_formatter)

    panel_logger = logging.getLogger("panel")
    panel_logger.setLevel(level)
    _add_rotating_handler(
        panel_logger,
        os.path.join(log_dir, "actions.log"),
        logging.Formatter(ACTION_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"),
    )

    daemon_logger = logging.getLogger("daemon")
    daemon_logger.setLevel(level)
    _add_rotating_handler(daemon_logger, os.path.join(log_dir, "daemon.log"), log_formatter)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
