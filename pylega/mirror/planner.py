"""Mapping of a local version tree onto remote upload targets."""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from ..exceptions import LegaNotFoundError
from .tree import iter_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferItem:
    """A single planned upload."""

    local_path: Path
    """File to upload"""

    remote_path: str
    """Absolute or server-relative remote destination (forward slashes)"""

    def describe(self) -> str:
        return f"{self.local_path} -> {self.remote_path}"

    def to_dict(self) -> dict:
        return {"local": str(self.local_path), "remote": self.remote_path}


class TransferPlanner:
    """Builds the complete upload plan for a source directory."""

    def plan(self, source_dir: Path, remote_base_dir: str) -> list[TransferItem]:
        """Map every file under ``source_dir`` to a remote path.

        The remote path is ``remote_base_dir`` joined with the file's path
        relative to ``source_dir``. The plan is built eagerly so it can be
        shown in full before any transfer starts.

        Args:
            source_dir: Local version tree to upload
            remote_base_dir: Remote directory the tree is mirrored into

        Returns:
            Ordered list of transfer items

        Raises:
            LegaNotFoundError: If ``source_dir`` is not a directory
            LegaIOError: If the tree cannot be read
        """
        if not source_dir.is_dir():
            raise LegaNotFoundError(source_dir)

        base = PurePosixPath(remote_base_dir or "/")
        items = [
            TransferItem(
                local_path=path,
                remote_path=str(base / path.relative_to(source_dir).as_posix()),
            )
            for path in iter_files(source_dir)
        ]
        logger.debug(f"Planned {len(items)} upload(s) from {source_dir} to {base}")
        return items
