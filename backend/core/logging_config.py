"""
Logging Configuration

Centralized logging using loguru with structured output.
"""

import sys
from pathlib import Path

from loguru import logger

from config import get_settings

_settings = get_settings().logging

# Remove default handler
logger.remove()

# Add console handler with custom format
logger.add(
    sys.stderr,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
    level=_settings.level,
    colorize=True,
)

# Add file handler for persistent logs
if _settings.file_enabled:
    logger.add(
        str(Path(_settings.dir) / "engine_{time:YYYY-MM-DD}.log"),
        rotation="10 MB",
        retention="7 days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message}",
        level=_settings.level,
    )

logger.configure(extra={"name": "app"})


def get_logger(name: str):
    """Get a logger with a specific name for component identification."""
    return logger.bind(name=name)


# Pre-configured loggers for different components
engine_logger = get_logger("engine")
store_logger = get_logger("store")
data_logger = get_logger("data")
api_logger = get_logger("api")
