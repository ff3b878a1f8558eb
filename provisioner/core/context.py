"""
Pipeline context — everything one install run knows, in one value.

Inputs are set once by the caller (CLI or test). Each stage fills in
its output field and later stages read it from here; nothing is kept
in module globals, so two runs in one process never share state.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.engine.fallback import Attempt
from provisioner.core.models.credential import Credential
from provisioner.core.models.link import ConnectionLink
from provisioner.core.models.profile import SystemProfile
from provisioner.core.models.release import FetchResult, ReleaseCandidate
from provisioner.core.models.service import ServiceDescriptor, ServiceUnit


@dataclass
class PipelineContext:
    """Inputs and accumulated stage outputs of one run."""

    settings: InstallerSettings
    registry: AdapterRegistry

    # ── Inputs ──────────────────────────────────────────────────
    user_port: str | None = None
    user_secret: str | None = None
    reinstall: bool = False
    machine: str | None = None               # kernel machine type override
    clock: Callable[[], float] = time.time
    rng: random.Random | None = None

    # ── Stage outputs ───────────────────────────────────────────
    profile: SystemProfile | None = None
    port: Attempt[int] | None = None
    release: ReleaseCandidate | None = None
    fetch: FetchResult | None = None
    binary_path: str | None = None
    credential: Credential | None = None
    descriptor: ServiceDescriptor | None = None
    config_path: str | None = None
    service_unit: ServiceUnit | None = None
    public_host: str | None = None
    links: ConnectionLink | None = None
