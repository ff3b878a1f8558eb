"""
Config writer — render the sing-box JSON config from a ServiceDescriptor.

The descriptor is the only input; the file at the canonical path is
overwritten on every run. ``read_config`` goes the other way for
commands that work from an already-installed server.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.core.config.loader import ConfigError
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.constants import INBOUND_TAG, LISTEN_ADDRESS, OUTBOUND_TAG, SS_METHOD
from provisioner.core.errors import ProvisionError
from provisioner.core.models.service import ServiceDescriptor

logger = logging.getLogger(__name__)

STAGE = "config"


def build_config(descriptor: ServiceDescriptor, log_level: str = "info") -> dict[str, Any]:
    """The config document as a plain dict."""
    return {
        "log": {"level": log_level},
        "inbounds": [
            {
                "type": "shadowsocks",
                "listen": descriptor.listen_address,
                "listen_port": descriptor.port,
                "method": descriptor.method,
                "password": descriptor.secret,
                "tag": descriptor.tag,
            },
        ],
        "outbounds": [
            {"type": "direct", "tag": OUTBOUND_TAG},
        ],
    }


def render_config(descriptor: ServiceDescriptor, settings: InstallerSettings) -> str:
    return json.dumps(build_config(descriptor, settings.log_level), indent=2) + "\n"


def write_config(
    descriptor: ServiceDescriptor,
    settings: InstallerSettings,
    filesystem: FilesystemAdapter,
) -> str:
    """Write the config to ``settings.config_path``.

    Returns:
        The path written.

    Raises:
        ProvisionError: If the directory or file cannot be written.
    """
    target = Path(settings.config_path)
    receipt = filesystem.write_text(target, render_config(descriptor, settings), mode=0o600)
    if receipt.failed:
        raise ProvisionError(STAGE, receipt.error or f"Cannot write {target}")
    logger.info("Wrote %s", target)
    return str(target)


def read_config(path: Path) -> ServiceDescriptor:
    """Load an existing sing-box config back into a ServiceDescriptor.

    The first ``shadowsocks`` inbound is used. The binary path is not
    stored in the config and comes back empty.

    Raises:
        ConfigError: If the file is missing, is not JSON, or has no
            usable shadowsocks inbound.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    inbounds = raw.get("inbounds") if isinstance(raw, dict) else None
    if not isinstance(inbounds, list):
        raise ConfigError(f"{path}: no inbounds list")

    for inbound in inbounds:
        if not isinstance(inbound, dict) or inbound.get("type") != "shadowsocks":
            continue
        try:
            return ServiceDescriptor(
                binary_path="",
                listen_address=inbound.get("listen", LISTEN_ADDRESS),
                port=inbound.get("listen_port"),
                method=inbound.get("method", SS_METHOD),
                secret=inbound.get("password", ""),
                tag=inbound.get("tag", INBOUND_TAG),
            )
        except ValidationError as e:
            raise ConfigError(f"{path}: invalid shadowsocks inbound: {e}") from e

    raise ConfigError(f"{path}: no shadowsocks inbound")
