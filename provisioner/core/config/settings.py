"""
Installer settings — every path, endpoint and timeout the pipeline uses.

Defaults reproduce the canonical layout of a sing-box host. A settings
file only needs to name what it changes (tests point every path into a
temporary directory this way).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

_RELEASE_BASE = "https://github.com/SagerNet/sing-box/releases"
_RELEASE_API = "https://api.github.com/repos/SagerNet/sing-box/releases/latest"


class Timeouts(BaseModel):
    """Per-operation timeouts in seconds."""

    model_config = ConfigDict(extra="forbid")

    metadata: int = Field(default=15, gt=0)
    download: int = Field(default=300, gt=0)
    address: int = Field(default=5, gt=0)
    packages: int = Field(default=600, gt=0)
    supervisor: int = Field(default=60, gt=0)
    tool: int = Field(default=10, gt=0)       # rand/shuf style one-shot tools


class InstallerSettings(BaseModel):
    """Validated installer configuration."""

    model_config = ConfigDict(extra="forbid")

    # ── Artifact ─────────────────────────────────────────────────
    binary_name: str = "sing-box"
    release_api_url: str = _RELEASE_API
    release_base_url: str = _RELEASE_BASE
    binary_paths: list[str] = Field(
        default_factory=lambda: ["/usr/bin/sing-box", "/usr/local/bin/sing-box"],
    )

    # ── Service ──────────────────────────────────────────────────
    service_name: str = "sing-box"
    service_description: str = "Sing-box Shadowsocks Server"
    config_path: str = "/etc/sing-box/config.json"
    openrc_script_path: str = "/etc/init.d/sing-box"
    systemd_unit_path: str = "/etc/systemd/system/sing-box.service"
    pidfile: str = "/run/sing-box.pid"
    log_level: str = "info"                   # sing-box's own log level

    # ── Host discovery ───────────────────────────────────────────
    os_release_path: str = "/etc/os-release"
    address_endpoints: list[str] = Field(
        default_factory=lambda: [
            "https://ipinfo.io/ip",
            "https://ipv4.icanhazip.com",
            "https://ifconfig.co/ip",
            "https://api.ipify.org",
        ],
    )

    # ── Policy ───────────────────────────────────────────────────
    require_strong_secret: bool = False

    timeouts: Timeouts = Field(default_factory=Timeouts)

    @field_validator("binary_paths", "address_endpoints")
    @classmethod
    def _not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("must list at least one entry")
        return value
