"""
Tarball adapter — list and unpack ``.tar.gz`` release archives.

Listing reads every member header, so a truncated download or an HTML
error page saved under the archive name fails here, before anything
is unpacked.
"""

from __future__ import annotations

import tarfile
from pathlib import Path

from provisioner.adapters.base import ArchiveReader
from provisioner.core.models.receipt import Receipt


class TarballReader(ArchiveReader):
    """gzip-compressed tar archives via the stdlib ``tarfile`` module."""

    @property
    def name(self) -> str:
        return "tar.gz"

    def is_available(self) -> bool:
        return True

    def list_members(self, archive: Path) -> Receipt:
        try:
            with tarfile.open(archive, "r:gz") as tf:
                members = tf.getnames()
        except (tarfile.TarError, OSError, EOFError) as e:
            return Receipt.failure(
                adapter=self.name,
                operation="list",
                error=f"Not a valid tar.gz archive: {e}",
                metadata={"path": str(archive)},
            )

        if not members:
            return Receipt.failure(
                adapter=self.name,
                operation="list",
                error="Archive is empty",
                metadata={"path": str(archive)},
            )

        return Receipt.success(
            adapter=self.name,
            operation="list",
            output=f"{len(members)} members",
            metadata={"path": str(archive), "members": members},
        )

    def extract(self, archive: Path, dest: Path) -> Receipt:
        try:
            dest.mkdir(parents=True, exist_ok=True)
            with tarfile.open(archive, "r:gz") as tf:
                tf.extractall(dest, filter="data")
        except (tarfile.TarError, OSError, EOFError) as e:
            return Receipt.failure(
                adapter=self.name,
                operation="extract",
                error=f"Extract failed: {e}",
                metadata={"path": str(archive), "dest": str(dest)},
            )

        return Receipt.success(
            adapter=self.name,
            operation="extract",
            output=f"Extracted to {dest}",
            metadata={"path": str(archive), "dest": str(dest)},
        )
