"""
Credential model — the listening port and the shared secret.

Exactly one Credential exists per run. Range and non-emptiness are
enforced by the field constraints, so a Credential that exists is a
Credential that may be written to the config.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from provisioner.core.constants import PORT_MAX, PORT_MIN


class CredentialOrigin(str, Enum):
    USER_SUPPLIED = "user_supplied"
    TOOL_GENERATED = "tool_generated"
    RANDOM_GENERATED = "random_generated"
    WEAK_FALLBACK = "weak_fallback"


class Credential(BaseModel):
    """Port + PSK pair with the strategy each came from."""

    model_config = ConfigDict(frozen=True)

    port: int = Field(ge=PORT_MIN, le=PORT_MAX)
    secret: str = Field(min_length=1)
    port_origin: CredentialOrigin = CredentialOrigin.RANDOM_GENERATED
    secret_origin: CredentialOrigin = CredentialOrigin.RANDOM_GENERATED

    @property
    def weak(self) -> bool:
        """Whether the secret came from the timestamp fallback."""
        return self.secret_origin == CredentialOrigin.WEAK_FALLBACK
