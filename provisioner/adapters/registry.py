"""
Adapter registry — central selection of host backends.

The registry is the single point of adapter management. Stages never
construct adapters; they ask the registry for "the downloader", "the
package installer for apt", or "the supervisor for this profile", and
the registry answers from what it holds. Tests build a registry out of
fakes; the CLI builds one with ``default_registry()``.
"""

from __future__ import annotations

import logging
from typing import Any

from provisioner.adapters.archive.tarball import TarballReader
from provisioner.adapters.base import (
    Adapter,
    ArchiveReader,
    Downloader,
    PackageInstaller,
    ServiceSupervisor,
)
from provisioner.adapters.network.transfer import CurlDownloader, WgetDownloader
from provisioner.adapters.shell.command import CommandRunner
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.adapters.system.packages import installer_for
from provisioner.adapters.system.supervisor import (
    NoSupervisor,
    OpenRCSupervisor,
    SystemdSupervisor,
)
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.models.profile import PackageManager, SystemProfile
from provisioner.core.models.service import ServiceKind

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Holds one set of host adapters and selects among them.

    Features:
        - Ordered downloaders: the first available one wins
        - Package installers keyed by package manager
        - Supervisors keyed by kind, selected from the system profile
        - Availability report for every registered adapter
    """

    def __init__(
        self,
        runner: CommandRunner,
        filesystem: FilesystemAdapter | None = None,
        archive_reader: ArchiveReader | None = None,
    ):
        self.runner = runner
        self.filesystem = filesystem or FilesystemAdapter()
        self.archive_reader: ArchiveReader = archive_reader or TarballReader()
        self._downloaders: list[Downloader] = []
        self._installers: dict[PackageManager, PackageInstaller] = {}
        self._supervisors: dict[ServiceKind, ServiceSupervisor] = {}

    # ── Registration ────────────────────────────────────────────

    def register_downloader(self, downloader: Downloader) -> None:
        """Append a downloader; earlier registrations are preferred."""
        self._downloaders.append(downloader)
        logger.debug("Registered downloader: %s", downloader.name)

    def register_installer(self, installer: PackageInstaller) -> None:
        if installer.manager in self._installers:
            logger.warning("Overwriting existing installer: %s", installer.manager.value)
        self._installers[installer.manager] = installer
        logger.debug("Registered installer: %s", installer.name)

    def register_supervisor(self, supervisor: ServiceSupervisor) -> None:
        if supervisor.kind in self._supervisors:
            logger.warning("Overwriting existing supervisor: %s", supervisor.kind.value)
        self._supervisors[supervisor.kind] = supervisor
        logger.debug("Registered supervisor: %s", supervisor.name)

    # ── Selection ───────────────────────────────────────────────

    def downloader(self) -> Downloader | None:
        """The first available downloader, or None when no transfer tool exists."""
        for candidate in self._downloaders:
            if candidate.is_available():
                return candidate
        return None

    def package_installer(self, manager: PackageManager) -> PackageInstaller | None:
        return self._installers.get(manager)

    def supervisor_for(self, profile: SystemProfile) -> ServiceSupervisor:
        """Pick exactly one supervisor for ``profile``.

        Alpine always gets OpenRC. Every other family, including
        ``unknown``, gets systemd when systemctl is available and the
        no-supervisor backend otherwise.
        """
        if profile.uses_openrc:
            openrc = self._supervisors.get(ServiceKind.OPENRC)
            if openrc is not None:
                return openrc
            return self._supervisors.get(ServiceKind.NONE) or NoSupervisor()

        systemd = self._supervisors.get(ServiceKind.SYSTEMD)
        if systemd is not None and systemd.is_available():
            return systemd
        return self._supervisors.get(ServiceKind.NONE) or NoSupervisor()

    # ── Reporting ───────────────────────────────────────────────

    def adapters(self) -> list[Adapter]:
        return [
            self.runner,
            self.filesystem,
            self.archive_reader,
            *self._downloaders,
            *self._installers.values(),
            *self._supervisors.values(),
        ]

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter."""
        status = {}
        for adapter in self.adapters():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[adapter.name] = {
                "name": adapter.name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def default_registry(
    settings: InstallerSettings,
    runner: CommandRunner | None = None,
) -> AdapterRegistry:
    """Build the registry for the real host.

    Downloader preference is curl, then wget.
    """
    runner = runner or CommandRunner()
    registry = AdapterRegistry(runner)

    registry.register_downloader(CurlDownloader(runner))
    registry.register_downloader(WgetDownloader(runner))

    for manager in (PackageManager.APK, PackageManager.APT, PackageManager.DNF):
        installer = installer_for(manager, runner, timeout=settings.timeouts.packages)
        if installer is not None:
            registry.register_installer(installer)

    registry.register_supervisor(OpenRCSupervisor(runner, settings))
    registry.register_supervisor(SystemdSupervisor(runner, settings))
    registry.register_supervisor(NoSupervisor())

    return registry
