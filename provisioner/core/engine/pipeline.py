"""
Install pipeline — the fixed stage sequence of one run.

Flow:
    profile → port → dependencies → fetch → secret → config
    → service → address → links

Each stage reads what it needs from the PipelineContext, stores its
output there, and reports one StageRecord. A stage that raises
ProvisionError is recorded as ``failed`` and the error propagates;
no later stage runs and nothing is rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from provisioner.core.constants import PLACEHOLDER_HOST, SS_METHOD
from provisioner.core.context import PipelineContext
from provisioner.core.errors import ProvisionError
from provisioner.core.models.credential import Credential
from provisioner.core.models.link import ConnectionLink
from provisioner.core.models.profile import OsFamily
from provisioner.core.models.service import ServiceDescriptor, ServiceUnit
from provisioner.core.services.config_writer import write_config
from provisioner.core.services.credentials import (
    build_credential,
    generate_port,
    generate_secret,
    port_providers,
    secret_providers,
)
from provisioner.core.services.dependencies import install_dependencies
from provisioner.core.services.fetcher import fetch_artifact
from provisioner.core.services.links import encode_links
from provisioner.core.services.profiler import detect_profile
from provisioner.core.services.public_address import resolve_public_address
from provisioner.core.services.registrar import register_service
from provisioner.core.services.release import resolve_release

logger = logging.getLogger(__name__)

StageStatus = Literal["ok", "degraded", "skipped", "failed"]


@dataclass
class StageRecord:
    """What one stage did."""

    name: str
    status: StageStatus = "ok"
    message: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "status": self.status, "message": self.message}


@dataclass
class InstallReport:
    """Result of a pipeline run, complete or aborted."""

    stages: list[StageRecord] = field(default_factory=list)
    version_tag: str = ""
    binary_path: str | None = None
    config_path: str | None = None
    credential: Credential | None = None
    service_unit: ServiceUnit | None = None
    public_host: str | None = None
    links: ConnectionLink | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def degraded(self) -> list[StageRecord]:
        return [s for s in self.stages if s.status == "degraded"]

    def stage(self, name: str) -> StageRecord | None:
        for record in self.stages:
            if record.name == name:
                return record
        return None

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "stages": [s.to_dict() for s in self.stages],
        }
        if self.error:
            result["error"] = self.error
        if self.version_tag:
            result["version"] = self.version_tag
        if self.binary_path:
            result["binary_path"] = self.binary_path
        if self.config_path:
            result["config_path"] = self.config_path
        if self.credential:
            result["credential"] = self.credential.model_dump(mode="json")
        if self.service_unit:
            result["service"] = self.service_unit.model_dump(mode="json")
        if self.public_host:
            result["public_host"] = self.public_host
        if self.links:
            result["links"] = self.links.model_dump(mode="json")
        return result


StageResult = tuple[StageStatus, str]
Stage = Callable[[PipelineContext], StageResult]


# ── Stages ──────────────────────────────────────────────────────


def _stage_profile(ctx: PipelineContext) -> StageResult:
    profile = detect_profile(Path(ctx.settings.os_release_path), machine=ctx.machine)
    ctx.profile = profile

    summary = f"{profile.os_family.value}/{profile.package_manager.value}, {profile.arch_token}"
    if profile.os_family == OsFamily.UNKNOWN or not profile.arch_recognized:
        return "degraded", summary
    return "ok", summary


def _stage_port(ctx: PipelineContext) -> StageResult:
    providers = port_providers(
        ctx.registry.runner,
        user_port=ctx.user_port,
        timeout=ctx.settings.timeouts.tool,
        rng=ctx.rng,
        clock=ctx.clock,
    )
    ctx.port = generate_port(providers)
    return "ok", f"{ctx.port.value} ({ctx.port.tag})"


def _stage_dependencies(ctx: PipelineContext) -> StageResult:
    assert ctx.profile is not None
    receipt = install_dependencies(ctx.profile, ctx.registry)
    if receipt.ok:
        return "ok", receipt.adapter
    return "degraded", receipt.reason


def _existing_binary(ctx: PipelineContext) -> str | None:
    found = ctx.registry.runner.which(ctx.settings.binary_name)
    if found:
        return found
    for path in ctx.settings.binary_paths:
        if ctx.registry.filesystem.is_executable(Path(path)):
            return path
    return None


def _stage_fetch(ctx: PipelineContext) -> StageResult:
    assert ctx.profile is not None

    existing = _existing_binary(ctx)
    if existing and not ctx.reinstall:
        logger.info("%s already installed at %s, skipping download", ctx.settings.binary_name, existing)
        ctx.binary_path = existing
        return "skipped", f"already installed at {existing}"

    downloader = ctx.registry.downloader()
    ctx.release = resolve_release(downloader, ctx.profile.arch_token, ctx.settings)
    ctx.fetch = fetch_artifact(ctx.release, ctx.registry, ctx.settings)
    ctx.binary_path = ctx.fetch.installed_path

    if not ctx.release.resolved:
        return "degraded", f"installed {ctx.binary_path} from {ctx.fetch.source_url} (version unknown)"
    return "ok", f"installed {ctx.binary_path} ({ctx.release.version_tag})"


def _stage_secret(ctx: PipelineContext) -> StageResult:
    assert ctx.port is not None
    providers = secret_providers(
        ctx.registry.runner,
        user_secret=ctx.user_secret,
        binary_path=ctx.binary_path,
        timeout=ctx.settings.timeouts.tool,
        clock=ctx.clock,
    )
    secret = generate_secret(providers, require_strong=ctx.settings.require_strong_secret)
    ctx.credential = build_credential(ctx.port, secret)

    if ctx.credential.weak:
        return "degraded", "weak timestamp secret"
    return "ok", ctx.credential.secret_origin.value


def _stage_config(ctx: PipelineContext) -> StageResult:
    assert ctx.credential is not None and ctx.binary_path is not None
    ctx.descriptor = ServiceDescriptor(
        binary_path=ctx.binary_path,
        port=ctx.credential.port,
        secret=ctx.credential.secret,
    )
    ctx.config_path = write_config(ctx.descriptor, ctx.settings, ctx.registry.filesystem)
    return "ok", ctx.config_path


def _stage_service(ctx: PipelineContext) -> StageResult:
    assert ctx.profile is not None and ctx.descriptor is not None and ctx.config_path is not None
    unit = register_service(ctx.profile, ctx.descriptor, ctx.registry, ctx.config_path)
    ctx.service_unit = unit

    message = f"{unit.kind.value}: {unit.outcome.value}"
    return ("degraded" if unit.degraded else "ok"), message


def _stage_address(ctx: PipelineContext) -> StageResult:
    host = resolve_public_address(ctx.registry.downloader(), ctx.settings)
    if host is None:
        logger.warning(
            "Cannot determine the public address; replace %s in the links below",
            PLACEHOLDER_HOST,
        )
        ctx.public_host = PLACEHOLDER_HOST
        return "degraded", f"using placeholder {PLACEHOLDER_HOST}"

    ctx.public_host = host
    return "ok", host


def _stage_links(ctx: PipelineContext) -> StageResult:
    assert ctx.credential is not None and ctx.public_host is not None
    ctx.links = encode_links(SS_METHOD, ctx.credential.secret, ctx.public_host, ctx.credential.port)
    return "ok", ""


STAGES: tuple[tuple[str, Stage], ...] = (
    ("profile", _stage_profile),
    ("port", _stage_port),
    ("dependencies", _stage_dependencies),
    ("fetch", _stage_fetch),
    ("secret", _stage_secret),
    ("config", _stage_config),
    ("service", _stage_service),
    ("address", _stage_address),
    ("links", _stage_links),
)


def _fill_report(report: InstallReport, ctx: PipelineContext) -> None:
    report.version_tag = ctx.release.version_tag if ctx.release else ""
    report.binary_path = ctx.binary_path
    report.config_path = ctx.config_path
    report.credential = ctx.credential
    report.service_unit = ctx.service_unit
    report.public_host = ctx.public_host
    report.links = ctx.links


def run_pipeline(ctx: PipelineContext, report: InstallReport | None = None) -> InstallReport:
    """Run every stage in order, recording each into ``report``.

    Raises:
        ProvisionError: From the first stage that cannot continue. The
            report (when passed in) holds every stage up to and
            including the failed one.
    """
    report = report if report is not None else InstallReport()

    for name, stage in STAGES:
        logger.debug("Stage: %s", name)
        try:
            status, message = stage(ctx)
        except ProvisionError as e:
            report.stages.append(StageRecord(name=name, status="failed", message=e.message))
            _fill_report(report, ctx)
            raise
        report.stages.append(StageRecord(name=name, status=status, message=message))

    _fill_report(report, ctx)
    return report
