# src/copysink/plugins/config_base.py
"""Base class for typed plugin configurations.

Plugins inherit from PluginConfig to get:
- Strict validation (reject unknown fields)
- A factory method with a clear error message

Example usage:
    class CopySinkConfig(PluginConfig):
        url: str
        table: str
        delimiter: str = ","

    cfg = CopySinkConfig.from_dict(config)
    table = cfg.table  # Direct access, fails fast if missing
"""

from typing import Any, Self

from pydantic import BaseModel, ValidationError

from copysink.contracts.errors import ConfigurationError


class PluginConfig(BaseModel):
    """Base class for typed plugin configurations."""

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Args:
            config: Dictionary of configuration values.

        Returns:
            Validated configuration instance.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        try:
            return cls(**config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for {cls.__name__}: {e}"
            ) from e
