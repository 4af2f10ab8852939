import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """
    Configure the application logger with a single console handler.

    Calling it again replaces the handler instead of stacking a second one.
    """
    log = logging.getLogger("news_portal")
    log.setLevel(getattr(logging, level.upper(), logging.INFO))
    log.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    log.addHandler(handler)
    return log


# Global logger instance
logger = logging.getLogger("news_portal")
