import logging
from contextlib import contextmanager


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Set up a logger with the specified name and logging level."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    ch = logging.StreamHandler()
    ch.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    ch.setFormatter(formatter)

    # Only attach once, modules call this at import time
    if not logger.hasHandlers():
        logger.addHandler(ch)

    return logger


def _package_loggers():
    return [
        logging.getLogger(name)
        for name in list(logging.Logger.manager.loggerDict)
        if name == "dectree" or name.startswith("dectree.")
    ]


@contextmanager
def log_level(level: int):
    """Temporarily set the level of every ``dectree`` logger and its handlers."""
    saved = []
    for logger in _package_loggers():
        saved.append((logger, logger.level))
        logger.setLevel(level)
        for handler in logger.handlers:
            saved.append((handler, handler.level))
            handler.setLevel(level)
    try:
        yield
    finally:
        for target, previous in saved:
            target.setLevel(previous)
