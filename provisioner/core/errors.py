"""
Fatal error tier.

Only conditions with no viable path forward raise. Transient failures
stay inside fallback loops and degraded ones become warnings, so a
ProvisionError always means "abort the run, exit non-zero".
"""

from __future__ import annotations


class ProvisionError(Exception):
    """A required artifact could not be produced; the run is aborted."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"
