import logging

from ..config import LOG_FORMAT, LOG_LEVEL


def get_logger(name="fish_ledger", level=None):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(LOG_LEVEL if level is None else level)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)
    return logger
