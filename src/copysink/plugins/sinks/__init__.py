"""Built-in sink plugins for copysink."""

from copysink.plugins.sinks.copy_sink import CopySink, CopySinkConfig

__all__ = ["CopySink", "CopySinkConfig"]
