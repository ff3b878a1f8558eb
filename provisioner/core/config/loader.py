"""
Configuration loader — reads provisioner.yml into InstallerSettings.

A settings file is optional: without one every default applies. The
file is looked up from an explicit path, then ``$SBPROV_CONFIG``, then
``provisioner.yml`` in the working directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.config.settings import InstallerSettings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "provisioner.yml"

# Environment variable naming an explicit settings file
SETTINGS_ENV = "SBPROV_CONFIG"


class ConfigError(Exception):
    """Raised when installer settings are invalid or unreadable."""


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Locate the settings file, if any.

    Args:
        start_dir: Directory checked for provisioner.yml (default: cwd).

    Returns:
        Path to the settings file, or None when defaults should apply.
    """
    from_env = os.environ.get(SETTINGS_ENV)
    if from_env:
        return Path(from_env)

    candidate = (start_dir or Path.cwd()) / SETTINGS_FILE
    if candidate.is_file():
        return candidate

    return None


def load_settings(path: Path | None = None) -> InstallerSettings:
    """Load and validate installer settings.

    Args:
        path: Explicit settings file. If None, searches as described
            in the module docstring and falls back to defaults.

    Returns:
        Validated InstallerSettings.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    if path is None:
        path = find_settings_file()

    if path is None:
        logger.debug("No %s found, using built-in defaults", SETTINGS_FILE)
        return InstallerSettings()

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return InstallerSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "provisioner" key or be flat
    settings_data = data.get("provisioner", data)

    try:
        settings = InstallerSettings.model_validate(settings_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
