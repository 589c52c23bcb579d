"""Utility modules for configuration, logging, and error handling."""

from .config import AppConfig, get_config, load_config, reset_config
from .logger import (
    get_logger,
    log_event,
    log_execution_time,
    set_log_level,
)

__all__ = [
    # Configuration
    "AppConfig",
    "get_config",
    "load_config",
    "reset_config",
    # Logging
    "get_logger",
    "log_event",
    "log_execution_time",
    "set_log_level",
]
