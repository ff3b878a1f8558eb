"""
Tests for adapters — shell runner, filesystem, transfer tools, tarball,
supervisors, registry and mocks.
"""

import os
import stat
from pathlib import Path

import pytest

from provisioner.adapters.archive.tarball import TarballReader
from provisioner.adapters.mock import MockCommandRunner, MockDownloader
from provisioner.adapters.network.transfer import CurlDownloader, WgetDownloader
from provisioner.adapters.registry import AdapterRegistry, default_registry
from provisioner.adapters.shell.command import CommandRunner
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.adapters.system.supervisor import (
    NoSupervisor,
    OpenRCSupervisor,
    SystemdSupervisor,
)
from provisioner.core.models.profile import OsFamily, PackageManager, SystemProfile
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.service import ServiceDescriptor, ServiceKind, UnitOutcome
from tests.helpers import build_registry, make_tarball, release_archive

DESCRIPTOR = ServiceDescriptor(binary_path="/usr/bin/sing-box", port=23456, secret="c2VjcmV0")

# ── Receipt ──────────────────────────────────────────────────────────


class TestReceipt:
    def test_success(self):
        r = Receipt.success(adapter="a", operation="op", output="hi")
        assert r.ok and not r.failed
        assert r.reason == "hi"

    def test_failure(self):
        r = Receipt.failure(adapter="a", operation="op", error="boom")
        assert r.failed
        assert r.error == "boom"
        assert r.reason == "boom"

    def test_skip(self):
        r = Receipt.skip(adapter="a", operation="op", reason="n/a")
        assert r.status == "skipped"
        assert not r.ok and not r.failed
        assert r.output == "n/a"


# ── Shell ────────────────────────────────────────────────────────────


class TestCommandRunner:
    def test_success(self):
        receipt = CommandRunner().run(["sh", "-c", "echo hello"])
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.metadata["return_code"] == 0

    def test_nonzero_exit(self):
        receipt = CommandRunner().run(["sh", "-c", "echo oops >&2; exit 3"])
        assert receipt.failed
        assert receipt.error == "oops"
        assert receipt.metadata["return_code"] == 3

    def test_missing_binary_does_not_raise(self):
        receipt = CommandRunner().run(["definitely-not-a-real-tool-xyz"])
        assert receipt.failed
        assert "execution error" in receipt.error

    def test_timeout(self):
        receipt = CommandRunner().run(["sh", "-c", "sleep 5"], timeout=1)
        assert receipt.failed
        assert "timed out" in receipt.error

    def test_env_layered(self):
        receipt = CommandRunner().run(["sh", "-c", "printf %s \"$SBPROV_X\""], env={"SBPROV_X": "42"})
        assert receipt.output == "42"

    def test_which(self):
        runner = CommandRunner()
        assert runner.has("sh")
        assert not runner.has("definitely-not-a-real-tool-xyz")


class TestFilesystemAdapter:
    def test_write_creates_parents_and_mode(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "file.txt"
        receipt = FilesystemAdapter().write_text(target, "content", mode=0o600)
        assert receipt.ok
        assert target.read_text() == "content"
        assert stat.S_IMODE(target.stat().st_mode) == 0o600

    @pytest.mark.parametrize("existing", [False, True])
    def test_mode_applied_before_content(self, tmp_path: Path, monkeypatch, existing):
        target = tmp_path / "etc" / "config.json"
        if existing:
            target.parent.mkdir()
            target.write_text("old")
            target.chmod(0o644)

        modes: list[int] = []
        real_fdopen = os.fdopen

        def recording_fdopen(fd, *args, **kwargs):
            modes.append(stat.S_IMODE(os.fstat(fd).st_mode))
            return real_fdopen(fd, *args, **kwargs)

        monkeypatch.setattr(os, "fdopen", recording_fdopen)
        receipt = FilesystemAdapter().write_text(target, "psk", mode=0o600)

        assert receipt.ok
        assert modes == [0o600]
        assert target.read_text() == "psk"

    def test_write_overwrites(self, tmp_path: Path):
        target = tmp_path / "file.txt"
        target.write_text("old")
        FilesystemAdapter().write_text(target, "new")
        assert target.read_text() == "new"

    def test_write_failure_is_receipt(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        receipt = FilesystemAdapter().write_text(blocker / "file.txt", "content")
        assert receipt.failed
        assert "Cannot write" in receipt.error

    def test_install_executable(self, tmp_path: Path):
        source = tmp_path / "source"
        source.write_bytes(b"#!/bin/sh\n")
        target = tmp_path / "bin" / "tool"
        receipt = FilesystemAdapter().install_executable(source, target)
        assert receipt.ok
        assert stat.S_IMODE(target.stat().st_mode) == 0o755
        assert FilesystemAdapter.is_executable(target)
        assert [p.name for p in target.parent.iterdir()] == ["tool"]   # no temp leftovers

    def test_install_missing_source(self, tmp_path: Path):
        receipt = FilesystemAdapter().install_executable(tmp_path / "nope", tmp_path / "bin" / "tool")
        assert receipt.failed
        assert list((tmp_path / "bin").iterdir()) == []


# ── Transfer ─────────────────────────────────────────────────────────


class TestTransfer:
    def test_curl_commands(self, tmp_path: Path):
        runner = MockCommandRunner(tools=["curl"])
        runner.set_output("curl", output="1.2.3.4")
        curl = CurlDownloader(runner)
        assert curl.is_available()

        receipt = curl.fetch_text("https://x.invalid/ip", timeout=5)
        assert receipt.ok
        assert receipt.adapter == "curl"
        assert receipt.metadata["url"] == "https://x.invalid/ip"

        curl.download("https://x.invalid/a.tgz", tmp_path / "a.tgz", timeout=300)
        assert runner.call_log == [
            ["curl", "-fsSL", "--max-time", "5", "https://x.invalid/ip"],
            ["curl", "-fsSL", "--max-time", "300", "-o", str(tmp_path / "a.tgz"), "https://x.invalid/a.tgz"],
        ]

    def test_wget_commands(self, tmp_path: Path):
        runner = MockCommandRunner(tools=["wget"])
        wget = WgetDownloader(runner)
        wget.fetch_text("https://x.invalid/ip", timeout=5)
        wget.download("https://x.invalid/a.tgz", tmp_path / "a.tgz", timeout=300)
        assert runner.call_log == [
            ["wget", "-qO-", "--timeout=5", "https://x.invalid/ip"],
            ["wget", "-qO", str(tmp_path / "a.tgz"), "--timeout=300", "https://x.invalid/a.tgz"],
        ]

    def test_unavailable(self):
        assert not CurlDownloader(MockCommandRunner()).is_available()

    def test_failure_relabelled(self):
        runner = MockCommandRunner(tools=["curl"])
        runner.set_failure("curl", error="curl: (22) 404")
        receipt = CurlDownloader(runner).fetch_text("https://x.invalid/", timeout=5)
        assert receipt.failed
        assert receipt.operation == "fetch"
        assert "404" in receipt.error


# ── Tarball ──────────────────────────────────────────────────────────


class TestTarballReader:
    def test_list(self, tmp_path: Path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(release_archive())
        receipt = TarballReader().list_members(archive)
        assert receipt.ok
        assert "sing-box-1.9.0-linux-amd64/sing-box" in receipt.metadata["members"]

    def test_html_page_rejected(self, tmp_path: Path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(b"<!DOCTYPE html><html>rate limited</html>")
        assert TarballReader().list_members(archive).failed

    def test_empty_archive_rejected(self, tmp_path: Path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(make_tarball({}))
        receipt = TarballReader().list_members(archive)
        assert receipt.failed
        assert "empty" in receipt.error

    def test_extract_keeps_exec_bit(self, tmp_path: Path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(release_archive())
        dest = tmp_path / "out"
        assert TarballReader().extract(archive, dest).ok
        binary = dest / "sing-box-1.9.0-linux-amd64" / "sing-box"
        assert os.access(binary, os.X_OK)

    def test_extract_refuses_path_traversal(self, tmp_path: Path):
        archive = tmp_path / "evil.tar.gz"
        archive.write_bytes(make_tarball({"../escaped": (b"x", 0o644)}))
        receipt = TarballReader().extract(archive, tmp_path / "out")
        assert receipt.failed
        assert not (tmp_path / "escaped").exists()


# ── Supervisors ──────────────────────────────────────────────────────


class TestOpenRCSupervisor:
    def test_render(self, settings):
        unit = OpenRCSupervisor(MockCommandRunner(), settings).render_unit(
            DESCRIPTOR, "/etc/sing-box/config.json",
        )
        assert unit.startswith("#!/sbin/openrc-run\n")
        assert "command=/usr/bin/sing-box\n" in unit
        assert 'command_args="run -c /etc/sing-box/config.json"' in unit
        assert f"pidfile={settings.pidfile}" in unit
        assert "need net" in unit

    def test_activate_started(self, settings):
        runner = MockCommandRunner(tools=["rc-update", "rc-service"])
        unit = OpenRCSupervisor(runner, settings).activate()
        assert unit.outcome == UnitOutcome.STARTED
        assert runner.call_log == [
            ["rc-update", "add", "sing-box", "default"],
            ["rc-service", "sing-box", "start"],
        ]

    def test_activate_without_tools(self, settings):
        runner = MockCommandRunner()
        unit = OpenRCSupervisor(runner, settings).activate()
        assert unit.outcome == UnitOutcome.REGISTERED
        assert runner.call_log == []
        assert any("rc-service" in m for m in unit.messages)

    def test_start_failure(self, settings):
        runner = MockCommandRunner(tools=["rc-update", "rc-service"])
        runner.set_failure("rc-service", error="crashed")
        unit = OpenRCSupervisor(runner, settings).activate()
        assert unit.outcome == UnitOutcome.ENABLE_FAILED
        assert unit.degraded


class TestSystemdSupervisor:
    def test_render(self, settings):
        unit = SystemdSupervisor(MockCommandRunner(), settings).render_unit(DESCRIPTOR, "/cfg.json")
        assert "Description=Sing-box Shadowsocks Server" in unit
        assert "After=network.target" in unit
        assert "ExecStart=/usr/bin/sing-box run -c /cfg.json" in unit
        assert "Restart=on-failure" in unit
        assert "LimitNOFILE=1048576" in unit
        assert "WantedBy=multi-user.target" in unit

    def test_activate(self, settings):
        runner = MockCommandRunner(tools=["systemctl"])
        unit = SystemdSupervisor(runner, settings).activate()
        assert unit.outcome == UnitOutcome.STARTED
        assert runner.call_log == [
            ["systemctl", "daemon-reload"],
            ["systemctl", "enable", "--now", "sing-box"],
        ]

    def test_daemon_reload_failure_ignored(self, settings):
        runner = MockCommandRunner(tools=["systemctl"])
        runner.set_failure("systemctl", "daemon-reload")
        unit = SystemdSupervisor(runner, settings).activate()
        assert unit.outcome == UnitOutcome.STARTED

    def test_enable_failure(self, settings):
        runner = MockCommandRunner(tools=["systemctl"])
        runner.set_failure("systemctl", "enable", error="Failed to enable unit")
        unit = SystemdSupervisor(runner, settings).activate()
        assert unit.outcome == UnitOutcome.ENABLE_FAILED
        assert any("systemctl start sing-box" in m for m in unit.messages)


class TestNoSupervisor:
    def test_skipped(self):
        sup = NoSupervisor()
        assert sup.unit_path is None
        assert sup.render_unit(DESCRIPTOR, "/x") is None
        assert sup.activate().outcome == UnitOutcome.SKIPPED_NO_SUPERVISOR


# ── Registry ─────────────────────────────────────────────────────────


def _profile(family: OsFamily) -> SystemProfile:
    return SystemProfile(os_family=family, package_manager=PackageManager.NONE)


class TestAdapterRegistry:
    def test_downloader_preference(self, settings):
        registry = AdapterRegistry(MockCommandRunner())
        first = MockDownloader(available=False, adapter_name="curl")
        second = MockDownloader(adapter_name="wget")
        registry.register_downloader(first)
        registry.register_downloader(second)
        assert registry.downloader() is second

    def test_no_downloader(self):
        assert AdapterRegistry(MockCommandRunner()).downloader() is None

    def test_default_registry_prefers_curl(self, settings):
        runner = MockCommandRunner(tools=["curl", "wget"])
        assert default_registry(settings, runner).downloader().name == "curl"
        runner.remove_tool("curl")
        assert default_registry(settings, runner).downloader().name == "wget"

    def test_alpine_gets_openrc_even_with_systemctl(self, settings):
        registry = build_registry(MockCommandRunner(tools=["systemctl"]), settings)
        assert registry.supervisor_for(_profile(OsFamily.ALPINE)).kind == ServiceKind.OPENRC

    @pytest.mark.parametrize("family", [OsFamily.DEBIAN, OsFamily.RHEL, OsFamily.UNKNOWN])
    def test_others_get_systemd(self, settings, family):
        registry = build_registry(MockCommandRunner(tools=["systemctl"]), settings)
        assert registry.supervisor_for(_profile(family)).kind == ServiceKind.SYSTEMD

    def test_no_systemctl(self, settings):
        registry = build_registry(MockCommandRunner(tools=["rc-service"]), settings)
        assert registry.supervisor_for(_profile(OsFamily.DEBIAN)).kind == ServiceKind.NONE

    def test_package_installer(self, settings):
        registry = build_registry(MockCommandRunner(), settings)
        assert registry.package_installer(PackageManager.APT).name == "apt"
        assert registry.package_installer(PackageManager.NONE) is None

    def test_adapter_status(self, settings):
        registry = build_registry(MockCommandRunner(tools=["systemctl"]), settings)
        status = registry.adapter_status()
        assert status["systemd"]["available"] is True
        assert status["apk"]["available"] is False
        assert status["filesystem"]["type"] == "FilesystemAdapter"


# ── Mocks ────────────────────────────────────────────────────────────


class TestMockCommandRunner:
    def test_missing_tool_fails(self):
        runner = MockCommandRunner()
        assert runner.run(["curl"]).failed
        assert runner.call_log == [["curl"]]

    def test_prefix_match_newest_first(self):
        runner = MockCommandRunner(tools=["systemctl"])
        runner.set_output("systemctl", output="generic")
        runner.set_output("systemctl", "enable", output="specific")
        assert runner.run(["systemctl", "enable", "x"]).output == "specific"
        assert runner.run(["systemctl", "status"]).output == "generic"

    def test_reset(self):
        runner = MockCommandRunner(tools=["x"])
        runner.set_failure("x")
        runner.run(["x"])
        runner.reset()
        assert runner.call_log == []
        assert runner.run(["x"]).ok


class TestMockDownloader:
    def test_pages_and_files(self, tmp_path: Path):
        dl = MockDownloader(pages={"u1": "text"}, files={"u2": b"bytes"})
        assert dl.fetch_text("u1", timeout=1).output == "text"
        assert dl.fetch_text("missing", timeout=1).failed
        assert dl.download("u2", tmp_path / "f", timeout=1).ok
        assert (tmp_path / "f").read_bytes() == b"bytes"
        assert dl.requests == ["u1", "missing", "u2"]
