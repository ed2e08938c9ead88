"""Configuration module for ccrouter."""

from .core import LoggingSettings, TranslatorSettings, UpstreamSettings
from .settings import ConfigurationError, Settings, get_settings


__all__ = [
    "ConfigurationError",
    "LoggingSettings",
    "Settings",
    "TranslatorSettings",
    "UpstreamSettings",
    "get_settings",
]
