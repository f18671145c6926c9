"""Loguru setup. Logs go to a file so they never clobber the status line."""

from pathlib import Path

from loguru import logger


def setup_logging(log_file: Path, level: str = "INFO") -> None:
    """Replace loguru's stderr sink with a rotating file sink."""
    logger.remove()
    logger.add(
        log_file,
        rotation="5 MB",
        retention=3,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )
    logger.info(f"Logging to {log_file} (level={level})")
