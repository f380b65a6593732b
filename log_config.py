import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from settings import get_settings


def setup_logging(log_level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    log_level = log_level or get_settings().log_level
    logger.remove()

    stderr_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{module}</cyan> | "
        "{message}"
    )

    logger.add(
        sys.stderr,
        format=stderr_format,
        level=log_level,
        colorize=True,
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {module} | {message}",
            level=log_level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            colorize=False,
        )

    logger.info(f"Logging initialized at {log_level} level")
