"""
Service models — what gets serialized into the config and what the
supervisor made of it.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from provisioner.core.constants import (
    INBOUND_TAG,
    LISTEN_ADDRESS,
    PORT_MAX,
    PORT_MIN,
    SS_METHOD,
)


class ServiceDescriptor(BaseModel):
    """The sole source of truth for the sing-box config file."""

    model_config = ConfigDict(frozen=True)

    binary_path: str
    listen_address: str = LISTEN_ADDRESS
    port: int = Field(ge=PORT_MIN, le=PORT_MAX)
    method: str = SS_METHOD
    secret: str = Field(min_length=1)
    tag: str = INBOUND_TAG


class ServiceKind(str, Enum):
    OPENRC = "openrc"
    SYSTEMD = "systemd"
    NONE = "none"


class UnitOutcome(str, Enum):
    STARTED = "started"
    REGISTERED = "registered"                  # written, no start tool present
    ENABLE_FAILED = "enable-failed"
    SKIPPED_NO_SUPERVISOR = "skipped-no-supervisor"


class ServiceUnit(BaseModel):
    """The one supervisor variant produced by a run, with its outcome."""

    kind: ServiceKind
    outcome: UnitOutcome
    path: str | None = None      # unit/script path, None when skipped
    messages: list[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.outcome != UnitOutcome.STARTED
