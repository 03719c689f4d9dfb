"""
sitedeploy - Configuration Package

Modules:
    settings: Environment-based configuration using Pydantic
    logging: Console/file logging with credential censoring

Usage:
    from config.settings import get_settings, parse_flags
    from config.logging import setup_logging, get_logger

    settings = get_settings()
    setup_logging(settings=settings)
    logger = get_logger(__name__)
"""

from config.settings import (
    DeployConfig,
    RunFlags,
    Settings,
    get_settings,
    parse_flags,
)
from config.logging import setup_logging, get_logger

__all__ = [
    "DeployConfig",
    "RunFlags",
    "Settings",
    "get_settings",
    "parse_flags",
    "setup_logging",
    "get_logger",
]
