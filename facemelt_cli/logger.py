"""Logging setup — loguru sink on stderr, level from --verbose or $LOG_LEVEL."""

import os
import sys

from loguru import logger


def setup_logger(*, level: str = "WARNING") -> None:
    """Configure loguru for the CLI.

    Console level controlled by LOG_LEVEL env (default: WARNING so that
    command output stays readable). --verbose passes DEBUG.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
            "<level>{message}</level>"
        ),
        level=console_level,
        colorize=True,
    )
