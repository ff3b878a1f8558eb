"""
sing-box SS2022 provisioner — CLI entrypoint.

Usage:
    provisioner --help
    provisioner install [--port N] [--password S]
    provisioner profile
    provisioner links --host 203.0.113.7
"""

from __future__ import annotations

import json
import platform
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import setup_from_env

if TYPE_CHECKING:
    from provisioner.core.config.settings import InstallerSettings
    from provisioner.core.engine.pipeline import InstallReport


@click.group()
@click.version_option(version=__version__, prog_name="provisioner")
@click.option("--verbose", "-v", is_flag=True, help="Show each step as it runs.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provisioner.yml (default: $SBPROV_CONFIG or ./provisioner.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Install and configure a sing-box Shadowsocks-2022 server."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_env(debug, verbose, quiet)


def _settings_or_exit(ctx: click.Context) -> InstallerSettings:
    from provisioner.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


# ── install ─────────────────────────────────────────────────────


_STATUS_MARKS = {
    "ok": ("✓", "green"),
    "degraded": ("!", "yellow"),
    "skipped": ("-", "white"),
    "failed": ("✗", "red"),
}


def _installed_paths(report: InstallReport) -> list[str]:
    """Everything a successful install leaves on the host."""
    paths: list[str] = []
    if report.binary_path:
        paths.append(report.binary_path)
    if report.config_path:
        paths.append(str(Path(report.config_path).parent))
    if report.service_unit and report.service_unit.path:
        paths.append(report.service_unit.path)
    return paths


@cli.command()
@click.option("--port", envvar="SBPROV_PORT", default=None, help="Listening port (10000-60000).")
@click.option(
    "--password",
    envvar="SBPROV_PASSWORD",
    default=None,
    help="SS2022 pre-shared key, used verbatim (default: 16 random bytes, base64).",
)
@click.option("--reinstall", is_flag=True, help="Download sing-box even if already installed.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    port: str | None,
    password: str | None,
    reinstall: bool,
    as_json: bool,
) -> None:
    """Install sing-box, write its config and start the service."""
    from provisioner.core.use_cases.install import run_install

    if not as_json and sys.stdin.isatty():
        if port is None:
            port = click.prompt(
                "Port (empty for random)", default="", show_default=False,
            ).strip()
        if password is None:
            password = click.prompt(
                "Password (empty to generate)", default="", show_default=False, hide_input=True,
            )

    result = run_install(
        config_path=ctx.obj.get("config_path"),
        port=port,
        password=password,
        reinstall=reinstall,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    report = result.report
    if not ctx.obj.get("quiet"):
        click.echo()
        for stage in report.stages:
            mark, color = _STATUS_MARKS[stage.status]
            click.secho(f"   {mark} ", fg=color, nl=False)
            label = f"{stage.name:<13}"
            click.echo(f"{label} {stage.message}".rstrip())
        click.echo()

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    credential = report.credential
    assert credential is not None and report.links is not None

    click.secho("✅ sing-box SS2022 server installed", fg="green", bold=True)
    click.echo(f"   Config:   {report.config_path}")
    click.echo(f"   Port:     {credential.port}")
    click.echo(f"   Password: {credential.secret}")
    unit = report.service_unit
    click.echo(f"   Service:  {unit.path if unit and unit.path else 'manual start'}")
    if credential.weak:
        click.secho("   ⚠️  Weak timestamp password; replace it before use", fg="yellow")
    click.echo()
    click.secho("   Links:", bold=True)
    for line in report.links.lines():
        click.echo(f"   {line}")
    click.echo()
    click.echo("   To uninstall, remove: " + ", ".join(_installed_paths(report)))
    click.echo()


# ── profile ─────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def profile(ctx: click.Context, as_json: bool) -> None:
    """Show the detected system profile and available host tools."""
    from provisioner.adapters.registry import default_registry
    from provisioner.core.services.profiler import detect_profile

    settings = _settings_or_exit(ctx)
    detected = detect_profile(Path(settings.os_release_path))
    registry = default_registry(settings)
    supervisor = registry.supervisor_for(detected)
    adapters = registry.adapter_status()

    if as_json:
        click.echo(json.dumps({
            "profile": detected.model_dump(mode="json"),
            "supervisor": supervisor.name,
            "adapters": adapters,
        }, indent=2))
        return

    click.secho("\n🖥️  System profile", fg="cyan", bold=True)
    click.echo(f"   OS family:       {detected.os_family.value} (ID={detected.os_id or '?'})")
    click.echo(f"   Package manager: {detected.package_manager.value}")
    arch_note = "" if detected.arch_recognized else "  (unrecognized, fallback)"
    click.echo(f"   Architecture:    {detected.arch_token} [{detected.machine}]{arch_note}")
    click.echo(f"   Supervisor:      {supervisor.name}")

    click.echo()
    click.secho("   Adapters:", bold=True)
    for name, info in adapters.items():
        icon = "✅" if info["available"] else "❌"
        click.echo(f"     {icon} {name}")
    click.echo()


# ── candidates ──────────────────────────────────────────────────


@cli.command()
@click.option("--version", "version", default=None, help="Release version (default: query latest).")
@click.option(
    "--arch",
    type=click.Choice(["amd64", "arm64", "armv7", "386"]),
    default=None,
    help="Architecture token (default: this host).",
)
@click.pass_context
def candidates(ctx: click.Context, version: str | None, arch: str | None) -> None:
    """Print the download URLs an install would try, in order."""
    from provisioner.adapters.registry import default_registry
    from provisioner.core.services.profiler import map_arch
    from provisioner.core.services.release import candidate_urls, resolve_latest_version

    settings = _settings_or_exit(ctx)

    if arch is None:
        arch, _ = map_arch(platform.machine())
    if version is None:
        version = resolve_latest_version(default_registry(settings).downloader(), settings)
    version = version.removeprefix("v")

    for url in candidate_urls(version, arch, settings):
        click.echo(url)


# ── links ───────────────────────────────────────────────────────


@cli.command()
@click.option("--host", required=True, help="Public address clients connect to.")
@click.option(
    "--config-file",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="sing-box config to read (default: the configured config path).",
)
@click.pass_context
def links(ctx: click.Context, host: str, config_file: str | None) -> None:
    """Print connection links for an already-installed server."""
    from provisioner.core.config.loader import ConfigError
    from provisioner.core.services.config_writer import read_config
    from provisioner.core.services.links import encode_links

    path = Path(config_file) if config_file else Path(_settings_or_exit(ctx).config_path)

    try:
        descriptor = read_config(path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    for line in encode_links(descriptor.method, descriptor.secret, host, descriptor.port).lines():
        click.echo(line)


if __name__ == "__main__":
    cli()
