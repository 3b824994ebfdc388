# src/copysink/core/__init__.py
"""Core infrastructure: Configuration, Logging."""

from copysink.core.config import (
    CopySinkSettings,
    DatabaseSettings,
    LoggingSettings,
    load_settings,
    resolve_config,
)
from copysink.core.logging import (
    configure_logging,
    get_logger,
)

__all__ = [
    "CopySinkSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "resolve_config",
]
