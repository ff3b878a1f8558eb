"""
Adapter base — the capability contracts between pipeline and host.

The pipeline never shells out or touches a socket directly; it talks
to one of four capability interfaces, each with one implementation per
backend:

    PackageInstaller   apk / apt / dnf-yum
    Downloader         curl / wget
    ArchiveReader      tar.gz
    ServiceSupervisor  OpenRC / systemd / none

Tests substitute the fakes in ``provisioner.adapters.mock``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from provisioner.core.models.profile import PackageManager
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.service import ServiceDescriptor, ServiceKind, ServiceUnit


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt
    and the calling stage decides how serious they are.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'curl', 'apt', 'systemd')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is present.

        Should be fast and never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageInstaller(Adapter):
    """Installs a batch of named packages with one command."""

    manager: PackageManager = PackageManager.NONE

    @abstractmethod
    def install(self, packages: Sequence[str]) -> Receipt:
        """Install ``packages`` in one batched invocation."""


class Downloader(Adapter):
    """HTTP(S) transfer through an external tool."""

    @abstractmethod
    def fetch_text(self, url: str, timeout: int) -> Receipt:
        """GET ``url``; on success the body is in ``receipt.output``."""

    @abstractmethod
    def download(self, url: str, dest: Path, timeout: int) -> Receipt:
        """GET ``url`` into ``dest``; a failed receipt may leave a partial file."""


class ArchiveReader(Adapter):
    """Lists and unpacks release archives."""

    @abstractmethod
    def list_members(self, archive: Path) -> Receipt:
        """List the archive; fails for non-archives and truncated files.

        Member names are returned in ``receipt.metadata["members"]``.
        """

    @abstractmethod
    def extract(self, archive: Path, dest: Path) -> Receipt:
        """Unpack ``archive`` under ``dest``."""


class ServiceSupervisor(Adapter):
    """An init-system backend that owns one unit definition.

    The registrar writes ``render_unit()`` to ``unit_path`` (fatal if
    that fails) and then calls ``activate()``, whose enable/start steps
    are best-effort and reported through the returned ServiceUnit.
    """

    kind: ServiceKind = ServiceKind.NONE
    unit_mode: int = 0o644

    @property
    @abstractmethod
    def unit_path(self) -> str | None:
        """Where the unit definition lives, None if nothing is written."""

    @abstractmethod
    def render_unit(self, descriptor: ServiceDescriptor, config_path: str) -> str | None:
        """Render the unit definition for ``descriptor``."""

    @abstractmethod
    def activate(self) -> ServiceUnit:
        """Enable and start the unit, best-effort."""
