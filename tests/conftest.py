"""
Shared test fixtures and configuration.

Every host path in ``settings`` points into ``tmp_path``, and every
host interaction goes through the fakes in ``provisioner.adapters.mock``,
so no test touches the real system.
"""

from pathlib import Path

import pytest

from provisioner.adapters.mock import MockCommandRunner, MockDownloader
from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.config.settings import InstallerSettings
from tests.helpers import build_registry


@pytest.fixture
def settings(tmp_path: Path) -> InstallerSettings:
    """Settings with every host path under ``tmp_path``."""
    root = tmp_path / "host"
    return InstallerSettings(
        binary_paths=[str(root / "usr/bin/sing-box"), str(root / "usr/local/bin/sing-box")],
        config_path=str(root / "etc/sing-box/config.json"),
        openrc_script_path=str(root / "etc/init.d/sing-box"),
        systemd_unit_path=str(root / "etc/systemd/system/sing-box.service"),
        pidfile=str(root / "run/sing-box.pid"),
        os_release_path=str(root / "etc/os-release"),
    )


@pytest.fixture
def runner() -> MockCommandRunner:
    """A host with the usual helper tools and systemd."""
    return MockCommandRunner(tools=["sh", "shuf", "openssl", "apt-get", "systemctl"])


@pytest.fixture
def downloader() -> MockDownloader:
    return MockDownloader(adapter_name="curl")


@pytest.fixture
def registry(runner, settings, downloader) -> AdapterRegistry:
    return build_registry(runner, settings, downloader)
