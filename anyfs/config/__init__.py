"""Configuration management for anyfs."""

from anyfs.exceptions import ConfigError, ValidationError
from .base import DEFAULT_SCHEMES, Settings, get_settings, set_settings
from .backends import FtpSettings, SftpSettings, SmbSettings

__all__ = [
    "DEFAULT_SCHEMES",
    "Settings",
    "get_settings",
    "set_settings",
    "ConfigError",
    "ValidationError",
    "FtpSettings",
    "SftpSettings",
    "SmbSettings",
]
