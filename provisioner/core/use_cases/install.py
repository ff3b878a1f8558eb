"""
Install use case — one full provisioning run from settings to links.

This is the single place where the fatal tier is caught: a
ProvisionError from any stage ends the run and lands in
``InstallResult.error``. Settings problems are reported the same way,
before anything on the host is touched.
"""

from __future__ import annotations

import logging
import os
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry, default_registry
from provisioner.core.config.loader import ConfigError, load_settings
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.context import PipelineContext
from provisioner.core.engine.pipeline import InstallReport, run_pipeline
from provisioner.core.errors import ProvisionError

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of an install run."""

    report: InstallReport = field(default_factory=InstallReport)
    settings: InstallerSettings | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result = self.report.to_dict()
        if self.error:
            result["ok"] = False
            result["error"] = self.error
        return result


def run_install(
    config_path: Path | None = None,
    settings: InstallerSettings | None = None,
    registry: AdapterRegistry | None = None,
    port: str | None = None,
    password: str | None = None,
    reinstall: bool = False,
    machine: str | None = None,
    clock: Callable[[], float] = time.time,
    rng: random.Random | None = None,
) -> InstallResult:
    """Provision sing-box on this host.

    Args:
        config_path: Optional explicit settings file.
        settings: Pre-built settings (skips loading; used by tests).
        registry: Pre-configured adapter registry (default: real host).
        port: Explicit listening port as typed by the operator.
        password: Explicit PSK, used verbatim.
        reinstall: Download the binary even if one is already installed.
        machine: Kernel machine type override.
        clock: Time source for the last-resort port and secret.
        rng: Random source for the in-process port strategy.

    Returns:
        InstallResult; ``error`` is set when the run was aborted.
    """
    result = InstallResult()

    # ── Settings ─────────────────────────────────────────────────
    if settings is None:
        try:
            settings = load_settings(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result
    result.settings = settings

    if hasattr(os, "geteuid") and os.geteuid() != 0:
        logger.warning("Not running as root; writes under /etc and /usr will likely fail")

    # ── Pipeline ─────────────────────────────────────────────────
    ctx = PipelineContext(
        settings=settings,
        registry=registry or default_registry(settings),
        user_port=port or None,
        user_secret=password or None,
        reinstall=reinstall,
        machine=machine,
        clock=clock,
        rng=rng,
    )

    try:
        run_pipeline(ctx, result.report)
    except ProvisionError as e:
        logger.error("%s", e)
        result.error = str(e)
        result.report.error = str(e)

    return result
