"""
Service registrar — make sing-box a supervised service.

One supervisor is chosen per run from the system profile (OpenRC on
Alpine, systemd elsewhere when present, nothing otherwise). Writing
the unit definition is fatal on failure; enabling and starting it is
best-effort and reported through the returned ServiceUnit.
"""

from __future__ import annotations

import logging
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.errors import ProvisionError
from provisioner.core.models.profile import SystemProfile
from provisioner.core.models.service import ServiceDescriptor, ServiceUnit

logger = logging.getLogger(__name__)

STAGE = "service"


def register_service(
    profile: SystemProfile,
    descriptor: ServiceDescriptor,
    registry: AdapterRegistry,
    config_path: str,
) -> ServiceUnit:
    """Write, enable and start the service unit for ``descriptor``.

    Raises:
        ProvisionError: If the binary is not executable or the unit
            file cannot be written.
    """
    binary = Path(descriptor.binary_path)
    if not registry.filesystem.is_executable(binary):
        raise ProvisionError(STAGE, f"{binary} is missing or not executable")

    supervisor = registry.supervisor_for(profile)
    logger.debug("Selected supervisor: %s", supervisor.name)

    content = supervisor.render_unit(descriptor, config_path)
    unit_path = supervisor.unit_path
    if content is not None and unit_path is not None:
        written = registry.filesystem.write_text(
            Path(unit_path), content, mode=supervisor.unit_mode,
        )
        if written.failed:
            raise ProvisionError(STAGE, written.error or f"Cannot write {unit_path}")
        logger.info("Wrote %s unit %s", supervisor.name, unit_path)

    unit = supervisor.activate()
    for message in unit.messages:
        logger.warning(message)

    if unit.degraded:
        logger.warning("Service %s: %s", supervisor.name, unit.outcome.value)
    else:
        logger.info("Service started via %s", supervisor.name)
    return unit
