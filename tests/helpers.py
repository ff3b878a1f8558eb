"""
Shared test helpers — canned host files, archives and a fake registry.
"""

import io
import tarfile
from pathlib import Path

from provisioner.adapters.mock import MockCommandRunner, MockDownloader
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.system.packages import installer_for
from provisioner.adapters.system.supervisor import (
    NoSupervisor,
    OpenRCSupervisor,
    SystemdSupervisor,
)
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.models.profile import PackageManager

FAKE_BINARY = b"#!/bin/sh\necho sing-box\n"

DEBIAN_OS_RELEASE = 'ID=debian\nVERSION_ID="12"\nPRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\n'
UBUNTU_OS_RELEASE = 'ID=ubuntu\nID_LIKE=debian\nVERSION_ID="22.04"\n'
ALPINE_OS_RELEASE = 'NAME="Alpine Linux"\nID=alpine\nVERSION_ID=3.19.1\n'
ROCKY_OS_RELEASE = 'ID="rocky"\nID_LIKE="rhel centos fedora"\nVERSION_ID="9.3"\n'

RELEASE_API = "https://api.github.com/repos/SagerNet/sing-box/releases/latest"
RELEASE_BASE = "https://github.com/SagerNet/sing-box/releases"


def make_tarball(members: dict[str, tuple[bytes, int]]) -> bytes:
    """Build a tar.gz in memory from ``{name: (content, mode)}``."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, (content, mode) in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def release_archive(version: str = "1.9.0", arch: str = "amd64") -> bytes:
    """A release archive laid out like the upstream ones."""
    top = f"sing-box-{version}-linux-{arch}"
    return make_tarball({
        f"{top}/LICENSE": (b"GPL\n", 0o644),
        f"{top}/sing-box": (FAKE_BINARY, 0o755),
    })


def write_os_release(settings: InstallerSettings, text: str) -> Path:
    path = Path(settings.os_release_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def build_registry(
    runner: MockCommandRunner,
    settings: InstallerSettings,
    downloader: MockDownloader | None = None,
) -> AdapterRegistry:
    """A registry wired like ``default_registry`` but with fakes."""
    registry = AdapterRegistry(runner)
    if downloader is not None:
        registry.register_downloader(downloader)
    for manager in (PackageManager.APK, PackageManager.APT, PackageManager.DNF):
        installer = installer_for(manager, runner, timeout=settings.timeouts.packages)
        if installer is not None:
            registry.register_installer(installer)
    registry.register_supervisor(OpenRCSupervisor(runner, settings))
    registry.register_supervisor(SystemdSupervisor(runner, settings))
    registry.register_supervisor(NoSupervisor())
    return registry
