"""
Tests for the install use case — settings loading and fatal-error capture.
"""

import json
import textwrap
from pathlib import Path

from provisioner.adapters.mock import MockCommandRunner, MockDownloader
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.use_cases.install import run_install
from tests.helpers import (
    DEBIAN_OS_RELEASE,
    RELEASE_API,
    RELEASE_BASE,
    build_registry,
    release_archive,
    write_os_release,
)

SECRET = "AAECAwQFBgcICQoLDA0ODw=="


def _registry(settings):
    downloader = MockDownloader(
        pages={RELEASE_API: '{"tag_name": "v1.9.0"}', "https://ipinfo.io/ip": "203.0.113.7"},
        files={f"{RELEASE_BASE}/download/v1.9.0/sing-box-1.9.0-linux-amd64.tar.gz": release_archive()},
    )
    return build_registry(MockCommandRunner(tools=["apt-get", "systemctl"]), settings, downloader)


class TestRunInstall:
    def test_success(self, settings):
        write_os_release(settings, DEBIAN_OS_RELEASE)
        result = run_install(
            settings=settings,
            registry=_registry(settings),
            port="23456",
            password=SECRET,
            machine="x86_64",
        )
        assert result.ok, result.error
        assert result.report.credential.port == 23456
        data = result.to_dict()
        assert data["ok"] is True
        assert "error" not in data

    def test_fatal_is_captured(self, settings):
        write_os_release(settings, DEBIAN_OS_RELEASE)
        result = run_install(settings=settings, registry=_registry(settings), port="abc")
        assert not result.ok
        assert "[credentials]" in result.error
        assert result.report.error == result.error
        data = json.loads(json.dumps(result.to_dict()))
        assert data["ok"] is False
        assert data["stages"][-1]["status"] == "failed"

    def test_empty_inputs_mean_generate(self, settings):
        write_os_release(settings, DEBIAN_OS_RELEASE)
        result = run_install(
            settings=settings, registry=_registry(settings), port="", password="", machine="x86_64",
        )
        assert result.ok, result.error
        assert result.report.credential.port_origin.value != "user_supplied"
        assert result.report.credential.secret_origin.value != "user_supplied"

    def test_bad_settings_file(self, tmp_path: Path):
        bad = tmp_path / "provisioner.yml"
        bad.write_text(textwrap.dedent("""\
            timeouts:
              download: -1
        """))
        result = run_install(config_path=bad, registry=_registry(InstallerSettings()))
        assert not result.ok
        assert "Invalid settings" in result.error
        assert result.report.stages == []

    def test_missing_settings_file(self, tmp_path: Path):
        result = run_install(config_path=tmp_path / "nope.yml", registry=_registry(InstallerSettings()))
        assert not result.ok
        assert "not found" in result.error

