"""Recursive directory tree operations.

All walks are generators over ``Path.iterdir``. Filesystem
errors are not caught mid-traversal: the first ``OSError`` aborts the
operation and is re-raised as :class:`LegaIOError`, leaving any partial
result on disk.
"""

import logging
import shutil
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import LegaIOError

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    """Kind of a filesystem entry inside a tree."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class TreeEntry:
    """A file or directory found while walking a tree."""

    path: Path
    """Absolute (or caller-rooted) path of the entry"""

    relative_path: str
    """Path relative to the walked root (forward slashes)"""

    kind: EntryKind
    """Whether the entry is a file or a directory"""

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


def is_directory(path: Path) -> bool:
    """Return True for real directories, False for files and symlinks."""
    # Symlinks to directories are treated as files so walks never follow
    # them out of the tree.
    return path.is_dir() and not path.is_symlink()


def iter_entries(
    directory: Path, base_path: Optional[Path] = None
) -> Iterator[TreeEntry]:
    """Yield every entry under ``directory``, depth-first.

    A directory is yielded before its contents. Order within a directory is
    filesystem enumeration order.

    Args:
        directory: Directory to walk
        base_path: Base for relative paths (defaults to ``directory``)
    """
    if base_path is None:
        base_path = directory
    for item in directory.iterdir():
        relative_path = item.relative_to(base_path).as_posix()
        if is_directory(item):
            yield TreeEntry(item, relative_path, EntryKind.DIRECTORY)
            yield from iter_entries(item, base_path)
        else:
            yield TreeEntry(item, relative_path, EntryKind.FILE)


def iter_files(directory: Path) -> Iterator[Path]:
    """Lazily yield the path of every non-directory entry under ``directory``.

    Each call starts a fresh traversal. Callers must not rely on the order
    for anything but display.

    Raises:
        LegaIOError: If a directory cannot be read
    """
    try:
        for entry in iter_entries(directory):
            if not entry.is_dir:
                yield entry.path
    except OSError as e:
        raise LegaIOError(f"Cannot list {directory}: {e}", directory) from e


def list_files(directory: Path) -> list[Path]:
    """Eager variant of :func:`iter_files`."""
    return list(iter_files(directory))


def replicate_structure(src: Path, dest: Path) -> None:
    """Create under ``dest`` every directory that exists under ``src``.

    Files are ignored and existing directories under ``dest`` are left
    untouched, so running it twice is a no-op.

    Raises:
        LegaIOError: If ``src`` cannot be read or a directory cannot be created
    """
    try:
        dest.mkdir(parents=True, exist_ok=True)
        for entry in iter_entries(src):
            if entry.is_dir:
                target = dest / entry.relative_path
                if not target.is_dir():
                    logger.debug(f"Creating directory {target}")
                target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LegaIOError(
            f"Cannot replicate structure of {src} into {dest}: {e}", src
        ) from e


def copy_file(src: Path, dest: Path) -> Path:
    """Copy one file, creating parent directories of ``dest`` as needed.

    An existing file at ``dest`` is overwritten.

    Raises:
        LegaIOError: If the copy fails
    """
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as e:
        raise LegaIOError(f"Cannot copy {src} to {dest}: {e}", src) from e
    logger.debug(f"Copied {src} -> {dest}")
    return dest


def copy_tree(src: Path, dest: Path) -> int:
    """Recursively copy every directory and file from ``src`` to ``dest``.

    ``dest`` and intermediate directories are created as needed; files
    already present at the same relative path are overwritten. There is no
    rollback: a failure leaves a partial copy behind.

    Returns:
        Number of files copied

    Raises:
        LegaIOError: On the first unreadable source or unwritable destination
    """
    copied = 0
    try:
        dest.mkdir(parents=True, exist_ok=True)
        for entry in iter_entries(src):
            target = dest / entry.relative_path
            if entry.is_dir:
                target.mkdir(parents=True, exist_ok=True)
            else:
                shutil.copy2(entry.path, target)
                copied += 1
    except OSError as e:
        raise LegaIOError(f"Cannot copy {src} to {dest}: {e}", src) from e

    logger.debug(f"Copied {copied} file(s) from {src} to {dest}")
    return copied


def delete_tree(directory: Path) -> bool:
    """Remove ``directory`` and everything below it.

    A plain file or symlink is unlinked.

    Returns:
        True if something was deleted, False if ``directory`` did not exist

    Raises:
        LegaIOError: If an entry cannot be removed
    """
    if not directory.exists() and not directory.is_symlink():
        return False
    try:
        if is_directory(directory):
            shutil.rmtree(directory)
        else:
            directory.unlink()
    except OSError as e:
        raise LegaIOError(f"Cannot delete {directory}: {e}", directory) from e

    logger.debug(f"Deleted {directory}")
    return True
