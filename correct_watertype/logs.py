"""
Logging setup for scripts using the package.

The library modules only create module loggers; handlers are attached here,
once, by the application.
"""

import logging
from typing import Optional, Union

LOGGER_NAME = "correct_watertype"

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Parameters
    ----------
    level : int or str, optional
        Level of the console handler and the package logger.
    log_file : str, optional
        If given, all messages down to DEBUG are also written to this file.

    Returns
    -------
    logging.Logger
        The package logger.

    Notes
    -----
    Existing handlers of the package logger are removed, so repeated calls
    do not duplicate messages.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
        logger.info("Logging to %s", log_file)

    logger.propagate = False
    return logger
