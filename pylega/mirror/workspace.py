"""Update directory model: paired ``old``/``new`` trees plus backups."""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from ..exceptions import (
    LegaError,
    LegaFileNotFoundError,
    LegaIOError,
    LegaNotFoundError,
)
from ..utils import (
    NEW_DIR_NAME,
    OLD_DIR_NAME,
    backup_path_for,
    current_millis,
    parse_backup_millis,
)
from .diff import DiffEntry, TreeComparator
from .tree import (
    copy_file,
    copy_tree,
    delete_tree,
    is_directory,
    iter_files,
    replicate_structure,
)

logger = logging.getLogger(__name__)

EditNotifier = Callable[[Path], object]


class Version(str, Enum):
    """The two mirrored version trees of an update directory."""

    OLD = OLD_DIR_NAME
    """Files as they are currently deployed"""

    NEW = NEW_DIR_NAME
    """Edited files to be deployed"""

    @classmethod
    def parse(cls, value: Union[str, "Version"]) -> "Version":
        """Convert ``"old"``/``"new"`` to a Version.

        Raises:
            ValueError: For any other value
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Invalid version {value!r}: please specify either 'old' or 'new'"
            ) from None


@dataclass(frozen=True)
class RemovalResult:
    """Outcome of removing a path from one version tree."""

    version: Version
    path: Path
    removed: bool
    """False if the path was already absent"""


@dataclass(frozen=True)
class BackupInfo:
    """A backup directory belonging to a workspace."""

    path: Path
    created_millis: int


class UpdateWorkspace:
    """An update directory holding mirrored ``old`` and ``new`` trees.

    Layout on disk::

        <root>/old/**
        <root>/new/**
        <root>_backup_<epochMillis>/{old,new}/**

    Examples:
        >>> ws = UpdateWorkspace(Path("u1"))
        >>> ws.create()
        >>> ws.add(Path("src/app.py"))      # copied to u1/old and u1/new
        >>> diffs = ws.compare()            # after editing u1/new/src/app.py
    """

    def __init__(
        self,
        root: Union[str, Path],
        cwd: Optional[Path] = None,
        notify: Optional[EditNotifier] = None,
        clock: Callable[[], int] = current_millis,
    ):
        """Initialize workspace.

        Args:
            root: Update directory (relative paths resolve against ``cwd``)
            cwd: Directory that staged file paths are taken relative to
                (defaults to the process working directory)
            notify: Called with the ``new``-side path of every added file
            clock: Returns the current time in epoch milliseconds
        """
        self.cwd = Path(os.path.abspath(cwd or Path.cwd()))
        root = Path(root)
        self.root = Path(os.path.abspath(self.cwd / root))
        self.notify = notify
        self.clock = clock

    @property
    def old_dir(self) -> Path:
        return self.root / OLD_DIR_NAME

    @property
    def new_dir(self) -> Path:
        return self.root / NEW_DIR_NAME

    def version_dir(self, version: Union[str, Version]) -> Path:
        """Directory of the ``old`` or ``new`` tree."""
        return self.root / Version.parse(version).value

    def _version_dirs(self) -> list[tuple[Version, Path]]:
        return [(Version.OLD, self.old_dir), (Version.NEW, self.new_dir)]

    def _require_root(self) -> None:
        if not self.root.is_dir():
            raise LegaNotFoundError(
                self.root, f"Update directory does not exist: {self.root}"
            )

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def create(self, structure_from: Optional[Path] = None) -> None:
        """Create the root and both version trees if absent.

        Args:
            structure_from: Optional directory whose sub-directory skeleton
                is replicated into both trees

        Raises:
            LegaNotFoundError: If ``structure_from`` is not a directory
            LegaIOError: If a directory cannot be created
        """
        try:
            for _, directory in self._version_dirs():
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LegaIOError(f"Cannot create {self.root}: {e}", self.root) from e

        if structure_from is not None:
            structure_from = self._resolve(structure_from)
            if not structure_from.is_dir():
                raise LegaNotFoundError(structure_from)
            for _, directory in self._version_dirs():
                replicate_structure(structure_from, directory)

        logger.info(f"Update directory {self.root} created")

    def relative_to_cwd(self, path: Path) -> Path:
        """Path of ``path`` relative to the working directory.

        Raises:
            LegaError: If ``path`` lies outside the working directory
        """
        absolute = Path(os.path.abspath(self._resolve(path)))
        try:
            return absolute.relative_to(self.cwd)
        except ValueError:
            raise LegaError(
                f"{path} is outside the working directory {self.cwd}"
            ) from None

    def add(self, file_path: Union[str, Path]) -> tuple[Path, Path]:
        """Stage a file (or directory) into both version trees.

        The destination is the path relative to the working directory. Once
        copied, the edit notifier is called with the ``new``-side path;
        notifier failures are logged and never abort the operation.

        Returns:
            Tuple of (old destination, new destination)

        Raises:
            LegaFileNotFoundError: If ``file_path`` does not exist
            LegaIOError: If copying fails
        """
        source = Path(os.path.abspath(self._resolve(Path(file_path))))
        if not source.exists():
            raise LegaFileNotFoundError(source)

        relative = self.relative_to_cwd(source)
        if relative == Path(".") or self.root in (source, *source.parents):
            raise LegaError(f"Cannot add {file_path} to its own update directory")
        if source in self.root.parents:
            raise LegaError(
                f"Cannot add {file_path}: it contains the update directory {self.root}"
            )
        dest_old = self.old_dir / relative
        dest_new = self.new_dir / relative

        if is_directory(source):
            copy_tree(source, dest_old)
            copy_tree(source, dest_new)
        else:
            copy_file(source, dest_old)
            copy_file(source, dest_new)
        logger.info(f"Added {relative.as_posix()} to {self.root}")

        if self.notify is not None:
            try:
                self.notify(dest_new)
            except Exception as e:
                logger.warning(f"Edit notification failed for {dest_new}: {e}")

        return dest_old, dest_new

    def remove(self, relative_path: Union[str, Path]) -> list[RemovalResult]:
        """Delete a staged path from both version trees.

        An already-absent path is reported, not raised.

        Raises:
            LegaError: If ``relative_path`` does not name an entry strictly
                inside both version trees
            LegaIOError: If an existing entry cannot be deleted
        """
        targets = [
            (version, self._contained(directory, relative_path))
            for version, directory in self._version_dirs()
        ]

        results = []
        for version, target in targets:
            if target.exists() or target.is_symlink():
                delete_tree(target)
                logger.info(f"Removed {target}")
                results.append(RemovalResult(version, target, True))
            else:
                logger.info(f"{target} does not exist")
                results.append(RemovalResult(version, target, False))
        return results

    def _contained(self, directory: Path, relative_path: Union[str, Path]) -> Path:
        """Join ``relative_path`` onto ``directory``, refusing to leave it."""
        relative = Path(relative_path)
        if not relative.parts or relative.is_absolute() or ".." in relative.parts:
            raise LegaError(
                f"Invalid path {str(relative_path)!r}: expected a path relative to "
                "the old and new directories"
            )
        target = directory / relative
        # The entry itself may be a symlink; its parent must stay inside.
        parent = Path(os.path.realpath(target.parent))
        base = Path(os.path.realpath(directory))
        if parent != base and base not in parent.parents:
            raise LegaError(f"{relative_path} resolves outside {directory}")
        return target

    def iter_files(self, version: Union[str, Version]) -> Iterator[Path]:
        """Lazily yield every file of one version tree.

        Raises:
            ValueError: If ``version`` is not ``old`` or ``new``
            LegaNotFoundError: If the version directory does not exist
        """
        directory = self.version_dir(version)
        if not directory.is_dir():
            raise LegaNotFoundError(
                directory,
                f"The specified version directory ({Version.parse(version).value}) "
                f"does not exist: {directory}",
            )
        return iter_files(directory)

    def list_files(self, version: Union[str, Version]) -> list[Path]:
        """All files of one version tree (see :meth:`iter_files`)."""
        return list(self.iter_files(version))

    def compare(self) -> list[DiffEntry]:
        """Differences between the ``old`` and ``new`` trees."""
        return TreeComparator().compare(self.old_dir, self.new_dir)

    def open_all(self) -> int:
        """Call the edit notifier for every file in the ``new`` tree.

        Returns:
            Number of files handed to the notifier
        """
        count = 0
        for path in self.iter_files(Version.NEW):
            if self.notify is not None:
                try:
                    self.notify(path)
                except Exception as e:
                    logger.warning(f"Edit notification failed for {path}: {e}")
            count += 1
        return count

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def backup(self) -> Path:
        """Copy the whole update directory to ``<root>_backup_<millis>``.

        Two backups in the same millisecond would share a name; the second
        overwrites the first file by file.

        Returns:
            Path of the new backup directory

        Raises:
            LegaNotFoundError: If the update directory does not exist
            LegaIOError: If copying fails
        """
        self._require_root()
        backup_dir = backup_path_for(self.root, self.clock())
        copy_tree(self.root, backup_dir)
        logger.info(f"Backup created at {backup_dir}")
        return backup_dir

    def list_backups(self) -> list[BackupInfo]:
        """Backups of this workspace, newest first.

        Raises:
            LegaIOError: If the parent directory cannot be read
        """
        parent = self.root.parent
        if not parent.is_dir():
            return []
        backups = []
        try:
            for candidate in parent.iterdir():
                millis = parse_backup_millis(self.root, candidate)
                if millis is not None and candidate.is_dir():
                    backups.append(BackupInfo(candidate, millis))
        except OSError as e:
            raise LegaIOError(f"Cannot list backups in {parent}: {e}", parent) from e
        return sorted(backups, key=lambda b: b.created_millis, reverse=True)

    def restore(self, backup_root: Union[str, Path]) -> None:
        """Replace the update directory with a copy of a backup.

        The backup is first copied to a temporary sibling. Only after the
        copy succeeded is the current root moved aside, the copy renamed
        into place and the old root deleted. A failed copy leaves the
        update directory untouched.

        Raises:
            LegaNotFoundError: If ``backup_root`` does not exist
            LegaIOError: If copying, renaming or deleting fails
        """
        backup_root = self._resolve(Path(backup_root))
        if not backup_root.is_dir():
            raise LegaNotFoundError(
                backup_root, f"Backup directory {backup_root} does not exist"
            )

        stamp = self.clock()
        staging = self.root.with_name(f".{self.root.name}.restoring-{stamp}")
        previous = self.root.with_name(f".{self.root.name}.previous-{stamp}")

        try:
            copy_tree(backup_root, staging)
        except LegaIOError:
            delete_tree(staging)
            raise

        moved_aside = False
        try:
            if self.root.exists():
                self.root.rename(previous)
                moved_aside = True
            staging.rename(self.root)
        except OSError as e:
            message = f"Cannot move restored copy into {self.root}: {e}"
            if moved_aside:
                try:
                    previous.rename(self.root)
                except OSError as undo_error:
                    message += (
                        f"; the previous contents are in {previous} "
                        f"({undo_error})"
                    )
            delete_tree(staging)
            raise LegaIOError(message, self.root) from e

        delete_tree(previous)
        logger.info(f"Restored {self.root} from backup {backup_root}")

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.cwd / path
