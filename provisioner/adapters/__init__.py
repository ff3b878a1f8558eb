"""Adapters — capability bindings to the host.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import (
    Adapter,
    ArchiveReader,
    Downloader,
    PackageInstaller,
    ServiceSupervisor,
)
from provisioner.adapters.registry import AdapterRegistry, default_registry
from provisioner.adapters.shell.command import CommandRunner

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ArchiveReader",
    "CommandRunner",
    "Downloader",
    "PackageInstaller",
    "ServiceSupervisor",
    "default_registry",
]
