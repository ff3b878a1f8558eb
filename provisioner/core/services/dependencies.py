"""
Dependency installer — make sure the helper tools exist.

Best-effort by design: later stages re-check each tool before using
it, so a failed or impossible install is a warning, never an abort.
"""

from __future__ import annotations

import logging

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.constants import DEPENDENCY_PACKAGES
from provisioner.core.models.profile import PackageManager, SystemProfile
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


def install_dependencies(profile: SystemProfile, registry: AdapterRegistry) -> Receipt:
    """Install the fixed package set with the profile's package manager.

    Returns:
        The install receipt; ``skipped`` when no package manager is known
        or its tool is missing, ``failed`` when the install command failed.
    """
    manager = profile.package_manager
    installer = registry.package_installer(manager) if manager != PackageManager.NONE else None

    if installer is None or not installer.is_available():
        logger.warning(
            "No usable package manager (%s); continuing, make sure curl, tar "
            "and openssl are installed",
            manager.value,
        )
        return Receipt.skip(
            adapter=manager.value,
            operation="install",
            reason="no package manager",
        )

    packages = DEPENDENCY_PACKAGES[manager.value]
    logger.info("Installing dependencies with %s: %s", installer.name, " ".join(packages))
    receipt = installer.install(packages)

    if receipt.failed:
        logger.warning(
            "%s could not install some packages (%s); install them manually if later steps fail",
            installer.name, receipt.error,
        )
    return receipt
