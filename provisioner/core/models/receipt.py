"""
Receipt model — outcome of one host operation.

Running a command, downloading a URL, writing a file and activating a
unit all answer with a Receipt instead of raising. The stage that
asked decides whether a failure is transient, degraded or fatal.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


class Receipt(BaseModel):
    """What an adapter did and what it saw."""

    adapter: str
    operation: str
    status: ReceiptStatus = "ok"

    output: str = ""
    error: str | None = None
    duration_ms: int = 0

    # argv, paths, return codes, archive members ...
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def reason(self) -> str:
        """First line of the error, or of the output when there is none."""
        text = (self.error or self.output).strip()
        return text.splitlines()[0] if text else ""

    @classmethod
    def success(cls, adapter: str, operation: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, operation=operation, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, operation: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, operation=operation, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, operation: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Nothing was attempted: the tool is absent or there is nothing to do."""
        return cls(adapter=adapter, operation=operation, status="skipped", output=reason, **kwargs)
