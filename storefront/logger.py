"""Named loggers with a shared console configuration."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_root_level = logging.INFO


def configure_logging(level: str | int = "info") -> None:
    """Set the level applied to every logger handed out by :func:`get_logger`."""

    global _root_level
    _root_level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    logging.getLogger("storefront").setLevel(_root_level)


def get_logger(name: str) -> logging.Logger:
    """Create and return a logger with the given name."""

    logger = logging.getLogger(name)

    root = logging.getLogger("storefront")
    if not root.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console_handler)
        root.setLevel(_root_level)

    return logger
