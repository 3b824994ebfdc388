# src/copysink/plugins/__init__.py
"""Plugin layer: sink protocol, base class, typed plugin configuration."""

from copysink.plugins.base import BaseSink
from copysink.plugins.config_base import PluginConfig
from copysink.plugins.protocols import SinkProtocol

__all__ = [
    "BaseSink",
    "PluginConfig",
    "SinkProtocol",
]
