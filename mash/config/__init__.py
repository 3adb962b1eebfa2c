"""Application configuration."""

from .settings import ApiConfig, Settings, get_settings

__all__ = ["ApiConfig", "Settings", "get_settings"]
