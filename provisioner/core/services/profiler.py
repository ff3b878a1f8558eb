"""
System profiler — OS family, package manager and CPU architecture.

Read-only probes: /etc/os-release and the kernel machine type. Nothing
here is fatal. An unrecognized distribution becomes ``unknown`` with no
package manager; an unrecognized CPU becomes ``amd64`` with a warning.
"""

from __future__ import annotations

import logging
import platform
import shlex
from pathlib import Path

from provisioner.core.constants import ARCH_SYNONYMS, DEFAULT_ARCH
from provisioner.core.models.profile import OsFamily, PackageManager, SystemProfile

logger = logging.getLogger(__name__)

# Checked in order against "<id> <id_like>"; the first keyword hit wins.
_FAMILY_KEYWORDS: tuple[tuple[tuple[str, ...], OsFamily, PackageManager], ...] = (
    (("alpine",), OsFamily.ALPINE, PackageManager.APK),
    (("debian", "ubuntu"), OsFamily.DEBIAN, PackageManager.APT),
    (("centos", "rhel", "fedora"), OsFamily.RHEL, PackageManager.DNF),
)


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release ``KEY=value`` lines, unquoting values."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        fields[key.strip()] = " ".join(parts)
    return fields


def read_os_release(path: Path) -> dict[str, str]:
    """Read and parse ``path``; an unreadable file yields no fields."""
    try:
        return parse_os_release(path.read_text(encoding="utf-8", errors="replace"))
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return {}


def classify_os(os_id: str, os_id_like: str) -> tuple[OsFamily, PackageManager]:
    """Match lowercased ID/ID_LIKE against known family keywords."""
    haystack = f"{os_id} {os_id_like}".lower()
    for keywords, family, manager in _FAMILY_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return family, manager
    return OsFamily.UNKNOWN, PackageManager.NONE


def map_arch(machine: str) -> tuple[str, bool]:
    """Map a kernel machine type to a release architecture token.

    Returns:
        ``(token, recognized)``; unknown machines give ``("amd64", False)``.
    """
    token = ARCH_SYNONYMS.get(machine.strip().lower())
    if token is None:
        return DEFAULT_ARCH, False
    return token, True


def detect_profile(
    os_release_path: Path = Path("/etc/os-release"),
    machine: str | None = None,
) -> SystemProfile:
    """Build the SystemProfile for this host.

    Args:
        os_release_path: os-release file to read.
        machine: Kernel machine type override (default: ``platform.machine()``).
    """
    fields = read_os_release(os_release_path)
    os_id = fields.get("ID", "").lower()
    os_id_like = fields.get("ID_LIKE", "").lower()
    family, manager = classify_os(os_id, os_id_like)

    if family == OsFamily.UNKNOWN:
        logger.warning(
            "Unrecognized distribution (ID=%r, ID_LIKE=%r); make sure curl, tar "
            "and openssl are available",
            os_id, os_id_like,
        )

    raw_machine = machine if machine is not None else platform.machine()
    arch, recognized = map_arch(raw_machine)
    if not recognized:
        logger.warning("Unrecognized architecture %r, falling back to %s", raw_machine, arch)

    profile = SystemProfile(
        os_family=family,
        package_manager=manager,
        arch_token=arch,
        machine=raw_machine,
        arch_recognized=recognized,
        os_id=os_id,
        os_id_like=os_id_like,
    )
    logger.info("Detected system: %s (%s), arch %s (%s)", family.value, manager.value, arch, raw_machine)
    return profile
