"""
ConnectionLink model — the two shareable URI encodings.
"""

from __future__ import annotations

from pydantic import BaseModel


class ConnectionLink(BaseModel):
    """SIP002 (percent-encoded userinfo) and legacy (base64 userinfo) URIs."""

    sip002: str
    legacy: str

    def lines(self) -> list[str]:
        return [self.sip002, self.legacy]
