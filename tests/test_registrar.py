"""
Tests for the service registrar — one supervisor per run, fatal unit writes.
"""

import logging
import stat
from pathlib import Path

import pytest

from provisioner.adapters.mock import MockCommandRunner
from provisioner.core.errors import ProvisionError
from provisioner.core.models.profile import OsFamily, PackageManager, SystemProfile
from provisioner.core.models.service import ServiceDescriptor, ServiceKind, UnitOutcome
from provisioner.core.services.registrar import register_service
from tests.helpers import FAKE_BINARY, build_registry

ALPINE = SystemProfile(os_family=OsFamily.ALPINE, package_manager=PackageManager.APK)
DEBIAN = SystemProfile(os_family=OsFamily.DEBIAN, package_manager=PackageManager.APT)
UNKNOWN = SystemProfile()


@pytest.fixture
def binary(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "sing-box"
    path.parent.mkdir()
    path.write_bytes(FAKE_BINARY)
    path.chmod(0o755)
    return path


@pytest.fixture
def descriptor(binary: Path) -> ServiceDescriptor:
    return ServiceDescriptor(binary_path=str(binary), port=23456, secret="c2VjcmV0")


class TestRegisterService:
    def test_alpine_uses_openrc_only(self, settings, descriptor):
        runner = MockCommandRunner(tools=["rc-update", "rc-service", "systemctl"])
        unit = register_service(ALPINE, descriptor, build_registry(runner, settings), settings.config_path)

        assert unit.kind == ServiceKind.OPENRC
        assert unit.outcome == UnitOutcome.STARTED
        script = Path(settings.openrc_script_path)
        assert script.read_text().startswith("#!/sbin/openrc-run")
        assert stat.S_IMODE(script.stat().st_mode) == 0o755
        assert not Path(settings.systemd_unit_path).exists()
        assert runner.calls_to("systemctl") == []

    def test_debian_uses_systemd_only(self, settings, descriptor):
        runner = MockCommandRunner(tools=["rc-update", "rc-service", "systemctl"])
        unit = register_service(DEBIAN, descriptor, build_registry(runner, settings), settings.config_path)

        assert unit.kind == ServiceKind.SYSTEMD
        assert unit.outcome == UnitOutcome.STARTED
        content = Path(settings.systemd_unit_path).read_text()
        assert f"ExecStart={descriptor.binary_path} run -c {settings.config_path}" in content
        assert not Path(settings.openrc_script_path).exists()
        assert runner.calls_to("rc-update") == []
        assert runner.calls_to("rc-service") == []

    def test_unknown_family_with_systemctl(self, settings, descriptor):
        runner = MockCommandRunner(tools=["systemctl"])
        unit = register_service(UNKNOWN, descriptor, build_registry(runner, settings), settings.config_path)
        assert unit.kind == ServiceKind.SYSTEMD

    def test_no_supervisor(self, settings, descriptor, caplog):
        runner = MockCommandRunner()
        with caplog.at_level(logging.WARNING):
            unit = register_service(DEBIAN, descriptor, build_registry(runner, settings), settings.config_path)
        assert unit.kind == ServiceKind.NONE
        assert unit.outcome == UnitOutcome.SKIPPED_NO_SUPERVISOR
        assert unit.path is None
        assert not Path(settings.systemd_unit_path).exists()
        assert not Path(settings.openrc_script_path).exists()
        assert "systemctl not found" in caplog.text

    def test_enable_failure_is_degraded_not_fatal(self, settings, descriptor, caplog):
        runner = MockCommandRunner(tools=["systemctl"])
        runner.set_failure("systemctl", "enable", error="unit masked")
        with caplog.at_level(logging.WARNING):
            unit = register_service(DEBIAN, descriptor, build_registry(runner, settings), settings.config_path)
        assert unit.outcome == UnitOutcome.ENABLE_FAILED
        assert "unit masked" in caplog.text

    def test_openrc_without_rc_tools_registers(self, settings, descriptor):
        runner = MockCommandRunner()
        unit = register_service(ALPINE, descriptor, build_registry(runner, settings), settings.config_path)
        assert unit.outcome == UnitOutcome.REGISTERED
        assert Path(settings.openrc_script_path).is_file()

    def test_binary_not_executable(self, settings, descriptor, binary):
        binary.chmod(0o644)
        with pytest.raises(ProvisionError) as exc:
            register_service(DEBIAN, descriptor, build_registry(MockCommandRunner(), settings),
                             settings.config_path)
        assert exc.value.stage == "service"

    def test_binary_missing(self, settings, tmp_path):
        descriptor = ServiceDescriptor(binary_path=str(tmp_path / "nope"), port=23456, secret="x")
        with pytest.raises(ProvisionError, match="not executable"):
            register_service(DEBIAN, descriptor, build_registry(MockCommandRunner(), settings),
                             settings.config_path)

    def test_unit_write_failure_is_fatal(self, settings, descriptor, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        bad = settings.model_copy(update={"systemd_unit_path": str(blocker / "sing-box.service")})
        runner = MockCommandRunner(tools=["systemctl"])
        with pytest.raises(ProvisionError):
            register_service(DEBIAN, descriptor, build_registry(runner, bad), bad.config_path)
        assert runner.call_log == []
