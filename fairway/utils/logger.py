import logging
from typing import Optional

_default_level: str | int = logging.INFO
_managed: set[str] = set()


def get_logger(name: str, level: Optional[str | int] = None) -> logging.Logger:
    """
    Logger shared by the FastAPI app, the CLI and the purge job.

    - Prevents duplicate log lines
    - Does not override the uvicorn root config
    - Attaches handler only once
    - Without *level*, follows the level set by ``set_log_level``
    """

    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        logger.setLevel(_default_level if level is None else level)

        logger.propagate = False
        _managed.add(name)

    return logger


def set_log_level(level: str | int) -> None:
    """Apply *level* to every logger from ``get_logger``, and to those created later."""
    global _default_level
    _default_level = level
    for name in _managed:
        logging.getLogger(name).setLevel(level)
