"""
Mock adapters — in-memory test doubles for host interaction.

``MockCommandRunner`` pretends a chosen set of tools is on PATH and
answers commands from scripted responses. ``MockDownloader`` serves
canned pages and files by URL. Both keep a log of what they were asked
to do, so tests can assert ordering and absence of calls.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path

from provisioner.adapters.base import Downloader
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.models.receipt import Receipt

Handler = Callable[[list[str]], Receipt]


class MockCommandRunner(CommandRunner):
    """Scripted CommandRunner.

    By default every command whose tool is "installed" succeeds with
    empty output, and every other command fails as if the binary were
    missing. Responses are matched by argv prefix, most recent first.
    """

    def __init__(self, tools: Iterable[str] = ()):
        self._tools: set[str] = set(tools)
        self._responses: list[tuple[tuple[str, ...], Handler]] = []
        self._call_log: list[list[str]] = []

    @property
    def name(self) -> str:
        return "mock-shell"

    @property
    def call_log(self) -> list[list[str]]:
        """Every argv this runner has received, in order."""
        return self._call_log

    def is_available(self) -> bool:
        return True

    def add_tool(self, *tools: str) -> None:
        self._tools.update(tools)

    def remove_tool(self, *tools: str) -> None:
        self._tools.difference_update(tools)

    def which(self, tool: str) -> str | None:
        return f"/usr/bin/{tool}" if tool in self._tools else None

    def set_output(self, *prefix: str, output: str = "") -> None:
        """Commands starting with ``prefix`` succeed and print ``output``."""
        self.set_handler(
            *prefix,
            handler=lambda argv: Receipt.success(
                adapter=self.name, operation=argv[0], output=output,
            ),
        )

    def set_failure(self, *prefix: str, error: str = "Mock failure") -> None:
        """Commands starting with ``prefix`` fail with ``error``."""
        self.set_handler(
            *prefix,
            handler=lambda argv: Receipt.failure(
                adapter=self.name, operation=argv[0], error=error,
            ),
        )

    def set_handler(self, *prefix: str, handler: Handler) -> None:
        self._responses.insert(0, (tuple(prefix), handler))

    def calls_to(self, tool: str) -> list[list[str]]:
        """Logged argvs whose program is ``tool``."""
        return [argv for argv in self._call_log if argv and argv[0] == tool]

    def run(
        self,
        cmd: Sequence[str],
        *,
        timeout: int = 300,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Receipt:
        argv = list(cmd)
        self._call_log.append(argv)

        if not argv or argv[0] not in self._tools:
            return Receipt.failure(
                adapter=self.name,
                operation=argv[0] if argv else "",
                error=f"{argv[0] if argv else '<empty>'}: not found",
            )

        for prefix, handler in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                return handler(argv)

        return Receipt.success(adapter=self.name, operation=argv[0])

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()


class MockDownloader(Downloader):
    """Serves ``pages`` (text) and ``files`` (bytes) keyed by URL."""

    def __init__(
        self,
        pages: Mapping[str, str] | None = None,
        files: Mapping[str, bytes] | None = None,
        available: bool = True,
        adapter_name: str = "mock-downloader",
    ):
        self.pages: dict[str, str] = dict(pages or {})
        self.files: dict[str, bytes] = dict(files or {})
        self._available = available
        self._name = adapter_name
        self._requests: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def requests(self) -> list[str]:
        """Every URL requested, in order."""
        return self._requests

    def is_available(self) -> bool:
        return self._available

    def fetch_text(self, url: str, timeout: int) -> Receipt:
        self._requests.append(url)
        if url in self.pages:
            return Receipt.success(adapter=self.name, operation="fetch", output=self.pages[url])
        return Receipt.failure(adapter=self.name, operation="fetch", error=f"404 {url}")

    def download(self, url: str, dest: Path, timeout: int) -> Receipt:
        self._requests.append(url)
        if url not in self.files:
            return Receipt.failure(adapter=self.name, operation="download", error=f"404 {url}")
        dest.write_bytes(self.files[url])
        return Receipt.success(adapter=self.name, operation="download", metadata={"dest": str(dest)})
