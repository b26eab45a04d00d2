import logging

from backend.core import config

LOG_FORMAT = '[%(levelname)s] %(name)s: %(message)s'


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel((level or config.LOG_LEVEL).upper())
