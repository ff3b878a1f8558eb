"""
Package installer adapters — one batched install per package manager.

    apk → apk add --no-cache PKG...
    apt → apt-get update -y (ignored) && apt-get install -y PKG...
    dnf → dnf install -y PKG...   (yum when dnf is absent)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from provisioner.adapters.base import PackageInstaller
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.profile import PackageManager
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class _CommandInstaller(PackageInstaller):
    tool: str = ""

    def __init__(self, runner: CommandRunner, timeout: int = 600):
        self._runner = runner
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self.manager.value

    def is_available(self) -> bool:
        return self._runner.has(self.tool)


class ApkInstaller(_CommandInstaller):
    manager = PackageManager.APK
    tool = "apk"

    def install(self, packages: Sequence[str]) -> Receipt:
        return self._runner.run(
            ["apk", "add", "--no-cache", *packages],
            timeout=self._timeout,
        )


class AptInstaller(_CommandInstaller):
    manager = PackageManager.APT
    tool = "apt-get"

    _ENV = {"DEBIAN_FRONTEND": "noninteractive"}

    def install(self, packages: Sequence[str]) -> Receipt:
        update = self._runner.run(
            ["apt-get", "update", "-y"],
            timeout=self._timeout,
            env=self._ENV,
        )
        if update.failed:
            logger.info("apt-get update failed, installing from cached lists: %s", update.error)
        return self._runner.run(
            ["apt-get", "install", "-y", *packages],
            timeout=self._timeout,
            env=self._ENV,
        )


class DnfInstaller(_CommandInstaller):
    manager = PackageManager.DNF
    tool = "dnf"

    def is_available(self) -> bool:
        return self._runner.has("dnf") or self._runner.has("yum")

    def install(self, packages: Sequence[str]) -> Receipt:
        tool = "dnf" if self._runner.has("dnf") else "yum"
        return self._runner.run(
            [tool, "install", "-y", *packages],
            timeout=self._timeout,
        )


_INSTALLERS: dict[PackageManager, type[_CommandInstaller]] = {
    PackageManager.APK: ApkInstaller,
    PackageManager.APT: AptInstaller,
    PackageManager.DNF: DnfInstaller,
}


def installer_for(
    manager: PackageManager,
    runner: CommandRunner,
    timeout: int = 600,
) -> PackageInstaller | None:
    """Build the installer for ``manager``; None for PackageManager.NONE."""
    cls = _INSTALLERS.get(manager)
    return cls(runner, timeout=timeout) if cls else None
