"""Installer settings and their YAML loader."""

from provisioner.core.config.loader import ConfigError, find_settings_file, load_settings
from provisioner.core.config.settings import InstallerSettings, Timeouts

__all__ = [
    "ConfigError",
    "InstallerSettings",
    "Timeouts",
    "find_settings_file",
    "load_settings",
]
