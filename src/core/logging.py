"""
CountyFix - Logging Configuration
One stdout handler for the whole process; modules log through
`logging.getLogger(__name__)`.
"""

import logging
import sys
from typing import Iterable, Optional

from src.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# Chatty client libraries, kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine", "alembic")


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    quiet: Iterable[str] = QUIET_LOGGERS
) -> logging.Logger:
    """
    Configure process logging and return the application logger.

    Safe to call more than once: the root handler is only installed the first
    time, later calls just adjust levels.

    Args:
        level: Log level name (defaults to LOG_LEVEL)
        format_string: Record format

    Returns:
        The "countyfix" logger
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=format_string or LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger().setLevel(log_level)

    # Module loggers live under the "src" package
    logging.getLogger("src").setLevel(log_level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("countyfix")
    logger.setLevel(log_level)
    return logger
