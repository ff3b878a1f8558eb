"""
Service supervisor adapters — OpenRC, systemd, or nothing.

Each backend renders its own unit definition and runs its own
enable/start commands. Enable/start failures never raise: they come
back as a ServiceUnit with outcome ``enable-failed`` and a message
telling the operator what to run by hand.
"""

from __future__ import annotations

import textwrap

from provisioner.adapters.base import ServiceSupervisor
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.models.service import (
    ServiceDescriptor,
    ServiceKind,
    ServiceUnit,
    UnitOutcome,
)


class _CommandSupervisor(ServiceSupervisor):
    def __init__(self, runner: CommandRunner, settings: InstallerSettings):
        self._runner = runner
        self._settings = settings

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def _service(self) -> str:
        return self._settings.service_name

    @property
    def _timeout(self) -> int:
        return self._settings.timeouts.supervisor


class OpenRCSupervisor(_CommandSupervisor):
    """``/etc/init.d`` script + rc-update/rc-service (Alpine)."""

    kind = ServiceKind.OPENRC
    unit_mode = 0o755

    @property
    def unit_path(self) -> str:
        return self._settings.openrc_script_path

    def is_available(self) -> bool:
        # The script is written even when the rc tools are missing.
        return True

    def render_unit(self, descriptor: ServiceDescriptor, config_path: str) -> str:
        s = self._settings
        return textwrap.dedent(f"""\
            #!/sbin/openrc-run
            command={descriptor.binary_path}
            command_args="run -c {config_path}"
            command_background=true
            pidfile={s.pidfile}
            name={s.service_name}
            description="{s.service_description}"

            depend() {{
                need net
            }}
            """)

    def activate(self) -> ServiceUnit:
        messages: list[str] = []

        if self._runner.has("rc-update"):
            added = self._runner.run(
                ["rc-update", "add", self._service, "default"],
                timeout=self._timeout,
            )
            if added.failed:
                messages.append(
                    f"rc-update add {self._service} default failed: {added.error}",
                )

        if not self._runner.has("rc-service"):
            messages.append(
                f"rc-service not found; start manually: rc-service {self._service} start",
            )
            return ServiceUnit(
                kind=self.kind,
                outcome=UnitOutcome.REGISTERED,
                path=self.unit_path,
                messages=messages,
            )

        started = self._runner.run(
            ["rc-service", self._service, "start"],
            timeout=self._timeout,
        )
        if started.failed:
            messages.append(
                f"Starting {self._service} failed ({started.error}); "
                f"run manually: rc-service {self._service} start",
            )
            outcome = UnitOutcome.ENABLE_FAILED
        else:
            outcome = UnitOutcome.STARTED

        return ServiceUnit(kind=self.kind, outcome=outcome, path=self.unit_path, messages=messages)


class SystemdSupervisor(_CommandSupervisor):
    """``.service`` unit + systemctl enable --now."""

    kind = ServiceKind.SYSTEMD

    @property
    def unit_path(self) -> str:
        return self._settings.systemd_unit_path

    def is_available(self) -> bool:
        return self._runner.has("systemctl")

    def render_unit(self, descriptor: ServiceDescriptor, config_path: str) -> str:
        return textwrap.dedent(f"""\
            [Unit]
            Description={self._settings.service_description}
            After=network.target

            [Service]
            ExecStart={descriptor.binary_path} run -c {config_path}
            Restart=on-failure
            LimitNOFILE=1048576

            [Install]
            WantedBy=multi-user.target
            """)

    def activate(self) -> ServiceUnit:
        messages: list[str] = []

        reload = self._runner.run(["systemctl", "daemon-reload"], timeout=self._timeout)
        if reload.failed:
            messages.append(f"systemctl daemon-reload failed: {reload.error}")

        enabled = self._runner.run(
            ["systemctl", "enable", "--now", self._service],
            timeout=self._timeout,
        )
        if enabled.failed:
            messages.append(
                f"systemctl enable --now {self._service} failed ({enabled.error}); "
                f"run manually: systemctl start {self._service}",
            )
            outcome = UnitOutcome.ENABLE_FAILED
        else:
            outcome = UnitOutcome.STARTED

        return ServiceUnit(kind=self.kind, outcome=outcome, path=self.unit_path, messages=messages)


class NoSupervisor(ServiceSupervisor):
    """Selected when no supported service manager is present."""

    kind = ServiceKind.NONE

    @property
    def name(self) -> str:
        return "none"

    @property
    def unit_path(self) -> None:
        return None

    def is_available(self) -> bool:
        return True

    def render_unit(self, descriptor: ServiceDescriptor, config_path: str) -> None:
        return None

    def activate(self) -> ServiceUnit:
        return ServiceUnit(
            kind=self.kind,
            outcome=UnitOutcome.SKIPPED_NO_SUPERVISOR,
            messages=["systemctl not found; service registration skipped"],
        )
