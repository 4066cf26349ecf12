"""Configuration helpers for the registry core."""

from .logging import configure_logging
from .settings import RegistrySettings, get_settings

__all__ = ["RegistrySettings", "configure_logging", "get_settings"]
