"""
Filesystem adapter — writes that the pipeline needs receipts for.

Config files, unit files and the installed binary all go through here
so the calling stage can decide whether a failed write is fatal.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """File operations with receipts."""

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def write_text(self, target: Path, content: str, mode: int = 0o644) -> Receipt:
        """Create parent directories, overwrite ``target``, apply ``mode``.

        A new file is created with ``mode`` already set; an existing one
        is narrowed to ``mode`` before it is truncated.
        """
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.exists():
                os.chmod(target, mode)
            fd = os.open(target, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, mode)
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                out.write(content)
            os.chmod(target, mode)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                operation="write",
                error=f"Cannot write {target}: {e}",
                metadata={"path": str(target)},
            )
        return Receipt.success(
            adapter=self.name,
            operation="write",
            output=f"Written {len(content)} bytes to {target}",
            metadata={"path": str(target), "size": len(content), "mode": oct(mode)},
        )

    def install_executable(self, source: Path, target: Path) -> Receipt:
        """Copy ``source`` to ``target`` with mode 0755.

        The copy lands in a sibling temp file first and is renamed into
        place, so a running binary at ``target`` is replaced, not
        truncated.
        """
        tmp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
            with os.fdopen(fd, "wb") as out, open(source, "rb") as src:
                shutil.copyfileobj(src, out)
            os.chmod(tmp_name, 0o755)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                operation="install",
                error=f"Cannot install {source} to {target}: {e}",
                metadata={"source": str(source), "path": str(target)},
            )
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
        return Receipt.success(
            adapter=self.name,
            operation="install",
            output=f"Installed {target}",
            metadata={"source": str(source), "path": str(target)},
        )

    @staticmethod
    def is_executable(target: Path) -> bool:
        return target.is_file() and os.access(target, os.X_OK)
