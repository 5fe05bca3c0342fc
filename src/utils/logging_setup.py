# ========================
# src/utils/logging_setup.py
# ========================

"""
Logging Configuration

Centralized logging setup for the speed insights pipeline and API.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ('urllib3', 'requests', 'uvicorn.access', 'multipart')


def setup_logging(log_level: str = "INFO",
                  log_file: Optional[str] = None,
                  log_dir: str = "logs") -> None:
    """
    Set up logging for the pipeline.

    Console output always goes to stdout at ``log_level``. When ``log_file``
    is given, a file handler under ``log_dir`` also receives DEBUG records,
    so dropped rows and coerced values can be audited after a run.

    Args:
        log_level (str): Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file (str): Optional log file name
        log_dir (str): Directory for log files
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_path = log_path / log_file
        file_handler = logging.FileHandler(file_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)
        logging.info(f"Logging to file: {file_path}")
    else:
        root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"Logging initialized - Level: {log_level}")
