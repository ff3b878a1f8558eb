"""
Release models — which archive to fetch and where it ended up.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ReleaseCandidate(BaseModel):
    """A resolved (or unresolved) release and its ordered download URLs.

    ``version_tag`` is empty when the metadata lookup failed. The URL
    list always carries the two "latest"-redirect patterns, so an empty
    tag still leaves something to try.
    """

    version_tag: str = ""
    candidate_urls: list[str] = Field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return bool(self.version_tag)


class FetchResult(BaseModel):
    """Outcome of a successful fetch-validate-extract-install sequence."""

    source_url: str
    archive_path: str
    extracted_binary_path: str
    installed_path: str
