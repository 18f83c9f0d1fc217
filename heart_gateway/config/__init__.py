"""Configuration and logging setup."""

from heart_gateway.config.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
