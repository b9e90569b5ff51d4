"""Logging wiring shared by the services."""

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str):
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Calling it again only adjusts the level, so app reloads do not stack
    handlers.
    """

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    root.setLevel(str(level).upper())
