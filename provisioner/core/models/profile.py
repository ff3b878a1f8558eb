"""
SystemProfile model — what the profiler learned about the host.

Created once at the start of a run and never modified. Detection is
best-effort: an unrecognized OS yields ``unknown``/``none`` and an
unrecognized CPU yields ``amd64`` with ``arch_recognized=False``.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class OsFamily(str, Enum):
    ALPINE = "alpine"
    DEBIAN = "debian"
    RHEL = "rhel"
    UNKNOWN = "unknown"


class PackageManager(str, Enum):
    APK = "apk"
    APT = "apt"
    DNF = "dnf"      # dnf, or yum when dnf is absent
    NONE = "none"


ArchToken = Literal["amd64", "arm64", "armv7", "386"]


class SystemProfile(BaseModel):
    """Host OS family, package manager and release architecture."""

    model_config = ConfigDict(frozen=True)

    os_family: OsFamily = OsFamily.UNKNOWN
    package_manager: PackageManager = PackageManager.NONE
    arch_token: ArchToken = "amd64"

    # ── Raw inputs (for diagnostics) ─────────────────────────────
    machine: str = ""            # kernel-reported machine type (uname -m)
    arch_recognized: bool = True
    os_id: str = ""              # ID= from os-release, lowercased
    os_id_like: str = ""         # ID_LIKE= from os-release, lowercased

    @property
    def uses_openrc(self) -> bool:
        """Alpine hosts are supervised by OpenRC, everything else by systemd."""
        return self.os_family == OsFamily.ALPINE
