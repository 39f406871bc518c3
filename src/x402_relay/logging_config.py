"""
Logging configuration for x402-relay
"""

import logging
import sys


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Configure logging with timestamp, file and line number information

    Args:
        level: Logging level (default: INFO); level names such as "DEBUG" are accepted
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)-8s %(name)s %(filename)s:%(lineno)d %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # web3 request logging is very chatty at DEBUG
    logging.getLogger("web3").setLevel(max(level, logging.INFO))
