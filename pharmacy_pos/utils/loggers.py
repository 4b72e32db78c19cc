import logging

from ..config import LOG_LEVEL


def get_logger(name="pharmacy_pos", level=None):
    """
    Console logger for the app. Installs one stream handler, once.
    urllib3 connection chatter stays at WARNING unless running at DEBUG.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level or LOG_LEVEL)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
        if logger.getEffectiveLevel() > logging.DEBUG:
            logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger
