"""Logging setup.

Every subsystem logs through its own ``wren.*`` logger
(``wren.server``, ``wren.routing``, ``wren.security``, ``wren.data``).
``configure_logging`` attaches a single handler to the ``wren`` parent
logger; calling it again replaces that handler.
"""

import logging
import logging.handlers
from pathlib import Path

from wren.config import AppConfig

LOG_FORMAT = "[%(asctime)s] %(name)s.%(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_ATTR = "_wren_handler"


def configure_logging(config: AppConfig) -> logging.Logger:
    """Configure the ``wren`` logger from *config* and return it.

    Logs go to stderr, or to a size-rotated file when ``log_file`` is set.
    """
    logger = logging.getLogger("wren")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)
            handler.close()

    handler: logging.Handler
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    logger.setLevel("DEBUG" if config.debug else config.log_level.upper())
    return logger
