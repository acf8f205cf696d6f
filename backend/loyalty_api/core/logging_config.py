"""
Logging configuration

One stdout handler on the root logger, level from LOG_LEVEL. Modules keep
using logging.getLogger(__name__).
"""
import logging
import sys

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: str = None) -> None:
    """Install the console handler once; later calls only adjust the level."""
    global _configured

    level = (level or settings.LOG_LEVEL).upper()
    root = logging.getLogger()
    root.setLevel(level)

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    # anthropic request logs (via httpx) are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
