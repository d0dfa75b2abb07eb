# src/dbs/utils/logs.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOGGER_NAME = "DebounceScheduler"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Attach stdout + rotating file handlers once; level/file default to DBS_LOG_LEVEL / DBS_LOG_FILE."""
    level = (level or os.getenv("DBS_LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("DBS_LOG_FILE", "debounce_lab.log")
    lvl = getattr(logging, level, logging.DEBUG)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(lvl)
    if not logger.handlers:
        fmt = logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        ch = logging.StreamHandler(stream=sys.stdout); ch.setLevel(lvl); ch.setFormatter(fmt)
        fh = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
        fh.setLevel(lvl); fh.setFormatter(fmt)
        logger.addHandler(ch); logger.addHandler(fh)
    return logger
