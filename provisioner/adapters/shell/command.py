"""
Shell command adapter — the single place where subprocesses are spawned.

Every external tool (package managers, curl, openssl, systemctl, ...)
is invoked through a CommandRunner, so tests can swap in
``MockCommandRunner`` and observe or script every call.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Mapping, Sequence

from provisioner.adapters.base import Adapter
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Keep receipts small; installers can be very chatty.
_MAX_CAPTURE = 4000


class CommandRunner(Adapter):
    """Run argv-style commands and capture their output in a Receipt."""

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def which(self, tool: str) -> str | None:
        """Resolve ``tool`` on PATH."""
        return shutil.which(tool)

    def has(self, tool: str) -> bool:
        """Whether ``tool`` is on PATH."""
        return self.which(tool) is not None

    def run(
        self,
        cmd: Sequence[str],
        *,
        timeout: int = 300,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Receipt:
        """Execute ``cmd`` and return a receipt. Never raises.

        Args:
            cmd: Command and arguments (no shell interpretation).
            timeout: Seconds before the process is killed.
            input: Optional text piped to stdin.
            env: Extra environment variables layered over os.environ.
        """
        argv = list(cmd)
        operation = argv[0] if argv else ""

        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        logger.debug("Executing: %s", " ".join(argv))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                input=input,
                env=full_env,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                operation=operation,
                error=f"Command timed out after {timeout}s",
                metadata={"command": argv, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                operation=operation,
                error=f"Command execution error: {e}",
                metadata={"command": argv},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = result.stdout[-_MAX_CAPTURE:] if result.stdout else ""
        stderr = result.stderr[-_MAX_CAPTURE:] if result.stderr else ""

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                operation=operation,
                output=stdout.strip(),
                duration_ms=elapsed_ms,
                metadata={"command": argv, "return_code": 0, "stderr": stderr.strip()},
            )

        return Receipt.failure(
            adapter=self.name,
            operation=operation,
            error=stderr.strip() or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": argv,
                "return_code": result.returncode,
                "stdout": stdout.strip(),
            },
        )
