"""
Release resolver — latest version tag and candidate archive URLs.

The metadata lookup never fails the run: no downloader, a transport
error or an empty body all resolve to an empty tag, and the candidate
list falls back to GitHub's ``/releases/latest/download/`` redirect.
"""

from __future__ import annotations

import logging
import re

from provisioner.adapters.base import Downloader
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.models.release import ReleaseCandidate

logger = logging.getLogger(__name__)

# First "tag_name" field in the release JSON; a leading "v" is dropped.
_TAG_PATTERN = re.compile(r'"tag_name"\s*:\s*"v?([^"]+)"')


def parse_version_tag(body: str) -> str:
    """Extract the version from release metadata, or "" if absent."""
    match = _TAG_PATTERN.search(body)
    return match.group(1).strip() if match else ""


def resolve_latest_version(
    downloader: Downloader | None,
    settings: InstallerSettings,
) -> str:
    """Query the release API for the latest version. Never raises."""
    if downloader is None:
        logger.warning("No transfer tool for release metadata; using the 'latest' alias")
        return ""

    receipt = downloader.fetch_text(settings.release_api_url, timeout=settings.timeouts.metadata)
    if receipt.failed or not receipt.output.strip():
        logger.warning(
            "Cannot query release metadata (%s); using the 'latest' alias",
            receipt.reason or "empty response",
        )
        return ""

    version = parse_version_tag(receipt.output)
    if not version:
        logger.warning("No tag_name in release metadata; using the 'latest' alias")
    else:
        logger.info("Latest release: %s", version)
    return version


def candidate_urls(version: str, arch: str, settings: InstallerSettings) -> list[str]:
    """Build download URLs, most specific first.

    1. tagged path, version-qualified filename   (only with a version)
    2. tagged path, architecture-only filename   (only with a version)
    3. latest redirect, architecture-only filename
    4. latest redirect, version-qualified filename
    """
    base = settings.release_base_url.rstrip("/")
    name = settings.binary_name
    urls: list[str] = []

    if version:
        urls.append(f"{base}/download/v{version}/{name}-{version}-linux-{arch}.tar.gz")
        urls.append(f"{base}/download/v{version}/{name}-linux-{arch}.tar.gz")

    urls.append(f"{base}/latest/download/{name}-linux-{arch}.tar.gz")
    urls.append(f"{base}/latest/download/{name}-{version or 'latest'}-linux-{arch}.tar.gz")
    return urls


def resolve_release(
    downloader: Downloader | None,
    arch: str,
    settings: InstallerSettings,
) -> ReleaseCandidate:
    """Resolve the latest version and its candidate URLs."""
    version = resolve_latest_version(downloader, settings)
    return ReleaseCandidate(
        version_tag=version,
        candidate_urls=candidate_urls(version, arch, settings),
    )
