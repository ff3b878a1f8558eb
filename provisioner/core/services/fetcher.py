"""
Artifact fetcher — download, validate, extract and install sing-box.

Flow:
    candidate URLs → download to one fixed temp name → list archive
    → (first valid wins) → extract → locate executable → install

A candidate that fails to download or does not list as a tar.gz is a
transient failure: the file is removed and the next URL is tried.
Everything after the download loop is fatal on failure, because
without a binary there is nothing to configure. The temp directory is
removed on every exit path; the process working directory is never
changed.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from provisioner.adapters.base import ArchiveReader, Downloader
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.core.config.settings import InstallerSettings
from provisioner.core.constants import ARCHIVE_FILENAME
from provisioner.core.engine.fallback import Provider, first_success
from provisioner.core.errors import ProvisionError
from provisioner.core.models.release import FetchResult, ReleaseCandidate

logger = logging.getLogger(__name__)

STAGE = "fetch"


def _try_candidate(
    url: str,
    archive: Path,
    downloader: Downloader,
    reader: ArchiveReader,
    timeout: int,
) -> str | None:
    """Download ``url`` to ``archive`` and validate it; None on any failure."""
    logger.info("Trying download: %s", url)
    fetched = downloader.download(url, archive, timeout=timeout)
    if fetched.failed:
        logger.info("Download failed: %s (%s)", url, fetched.error)
        archive.unlink(missing_ok=True)
        return None

    listed = reader.list_members(archive)
    if listed.failed:
        logger.info("Not a usable archive: %s (%s)", url, listed.error)
        archive.unlink(missing_ok=True)
        return None

    return url


def locate_binary(root: Path, binary_name: str) -> Path | None:
    """Find the executable named ``binary_name`` under ``root``.

    Searches the whole tree for a regular file with an executable bit,
    then falls back to a plain ``root/binary_name`` file.
    """
    for path in sorted(root.rglob(binary_name)):
        if path.is_file() and os.access(path, os.X_OK):
            return path

    direct = root / binary_name
    if direct.is_file():
        return direct
    return None


def install_binary(
    binary: Path,
    targets: list[str],
    filesystem: FilesystemAdapter,
) -> str:
    """Install ``binary`` to the first writable target path.

    Raises:
        ProvisionError: If no target accepts the binary.
    """
    errors: list[str] = []
    for target in targets:
        receipt = filesystem.install_executable(binary, Path(target))
        if receipt.ok:
            logger.info("Installed %s", target)
            return target
        logger.info("Cannot install to %s: %s", target, receipt.error)
        errors.append(receipt.error or target)

    raise ProvisionError(STAGE, "Cannot install binary: " + "; ".join(errors))


def fetch_artifact(
    candidate: ReleaseCandidate,
    registry: AdapterRegistry,
    settings: InstallerSettings,
) -> FetchResult:
    """Fetch and install the release archive described by ``candidate``.

    Raises:
        ProvisionError: No transfer tool, all candidates exhausted,
            extraction failure, missing executable, or install failure.
    """
    downloader = registry.downloader()
    if downloader is None:
        raise ProvisionError(STAGE, "Neither curl nor wget is available; cannot download")

    reader = registry.archive_reader
    workdir = Path(tempfile.mkdtemp(prefix="sbprov."))
    logger.debug("Working directory: %s", workdir)

    try:
        archive = workdir / ARCHIVE_FILENAME
        providers = [
            Provider(
                name=url,
                produce=lambda url=url: _try_candidate(
                    url, archive, downloader, reader, settings.timeouts.download,
                ),
            )
            for url in candidate.candidate_urls
        ]
        attempt = first_success(providers, chain="download")
        if attempt is None:
            raise ProvisionError(
                STAGE,
                f"All {len(providers)} download candidates failed; check network "
                "access to GitHub or install sing-box manually",
            )

        extract_dir = workdir / "extracted"
        extracted = reader.extract(archive, extract_dir)
        if extracted.failed:
            raise ProvisionError(STAGE, extracted.error or "Extract failed")

        binary = locate_binary(extract_dir, settings.binary_name)
        if binary is None:
            raise ProvisionError(
                STAGE, f"No '{settings.binary_name}' executable inside the archive",
            )

        installed = install_binary(binary, settings.binary_paths, registry.filesystem)
        return FetchResult(
            source_url=attempt.value,
            archive_path=str(archive),
            extracted_binary_path=str(binary),
            installed_path=installed,
        )
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
