"""
Transfer adapters — HTTP(S) through curl or wget.

Both wrap the CLI tool through the CommandRunner, carry an explicit
timeout on every call, and report HTTP errors as failed receipts
(``curl -f``; wget fails on 4xx/5xx by default).
"""

from __future__ import annotations

from pathlib import Path

from provisioner.adapters.base import Downloader
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.receipt import Receipt


class _ToolDownloader(Downloader):
    """Common plumbing for downloaders backed by one CLI tool."""

    tool: str = ""

    def __init__(self, runner: CommandRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return self.tool

    def is_available(self) -> bool:
        return self._runner.has(self.tool)

    def fetch_text(self, url: str, timeout: int) -> Receipt:
        receipt = self._runner.run(self._fetch_cmd(url, timeout), timeout=timeout + 5)
        return self._relabel(receipt, "fetch", url)

    def download(self, url: str, dest: Path, timeout: int) -> Receipt:
        receipt = self._runner.run(self._download_cmd(url, dest, timeout), timeout=timeout + 5)
        return self._relabel(receipt, "download", url, dest=str(dest))

    def _fetch_cmd(self, url: str, timeout: int) -> list[str]:
        raise NotImplementedError

    def _download_cmd(self, url: str, dest: Path, timeout: int) -> list[str]:
        raise NotImplementedError

    def _relabel(self, receipt: Receipt, operation: str, url: str, **extra: str) -> Receipt:
        return receipt.model_copy(
            update={
                "adapter": self.name,
                "operation": operation,
                "metadata": {**receipt.metadata, "url": url, **extra},
            },
        )


class CurlDownloader(_ToolDownloader):
    tool = "curl"

    def _fetch_cmd(self, url: str, timeout: int) -> list[str]:
        return ["curl", "-fsSL", "--max-time", str(timeout), url]

    def _download_cmd(self, url: str, dest: Path, timeout: int) -> list[str]:
        return ["curl", "-fsSL", "--max-time", str(timeout), "-o", str(dest), url]


class WgetDownloader(_ToolDownloader):
    tool = "wget"

    def _fetch_cmd(self, url: str, timeout: int) -> list[str]:
        return ["wget", "-qO-", f"--timeout={timeout}", url]

    def _download_cmd(self, url: str, dest: Path, timeout: int) -> list[str]:
        return ["wget", "-qO", str(dest), f"--timeout={timeout}", url]
