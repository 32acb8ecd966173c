"""
Loguru setup shared by the API, the sweep task and the CLI scripts
"""
import os
import sys

from loguru import logger

from shopease.config import settings

_configured = False


def setup_logging(level: str = None, to_file: bool = None):
    global _configured
    if _configured:
        return logger

    level = level or settings.LOG_LEVEL
    to_file = settings.LOG_TO_FILE if to_file is None else to_file

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )

    if to_file:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        logger.add(
            os.path.join(settings.LOG_DIR, "shopease_{time}.log"),
            level=level,
            rotation="5 MB",
            retention="7 days",
        )

    _configured = True
    return logger
