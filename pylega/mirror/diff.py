"""Comparison of the old and new version trees."""

import filecmp
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..exceptions import LegaIOError, LegaNotFoundError
from .tree import is_directory

logger = logging.getLogger(__name__)


class DiffKind(str, Enum):
    """Classification of a path that is not identical in both trees."""

    MISSING_IN_NEW = "missing_in_new"
    """Present in the old tree, absent from the new tree"""

    MISSING_IN_OLD = "missing_in_old"
    """Present in the new tree, absent from the old tree"""

    DIFFERS = "differs"
    """Present in both trees with different content or different type"""


@dataclass(frozen=True)
class DiffEntry:
    """One reported difference between two trees."""

    relative_path: str
    """Path relative to both roots (forward slashes)"""

    kind: DiffKind
    """How the path differs"""

    is_dir: bool = False
    """True if the one-sided entry is a whole directory"""

    def describe(self) -> str:
        """Human-readable description of the difference."""
        noun = "Directory" if self.is_dir else "File"
        if self.kind is DiffKind.MISSING_IN_NEW:
            return f"{noun} {self.relative_path} is missing in new."
        if self.kind is DiffKind.MISSING_IN_OLD:
            return f"{noun} {self.relative_path} is missing in old."
        return f"File {self.relative_path} differs between old and new."

    def to_dict(self) -> dict:
        return {
            "path": self.relative_path,
            "kind": self.kind.value,
            "is_dir": self.is_dir,
        }


class TreeComparator:
    """Walks two trees side by side and reports what differs.

    Children of corresponding directories are matched by name:

    - a name on one side only is reported once (directories are not
      recursed into);
    - two directories are recursed into;
    - two files are compared byte by byte, identical files are not reported;
    - a file on one side and a directory on the other is reported as
      ``DIFFERS``.

    Examples:
        >>> comparator = TreeComparator()
        >>> for entry in comparator.compare(Path("u1/old"), Path("u1/new")):
        ...     print(entry.describe())
    """

    def compare(self, old_root: Path, new_root: Path) -> list[DiffEntry]:
        """Compare two directory trees.

        Args:
            old_root: Root of the left-hand ("old") tree
            new_root: Root of the right-hand ("new") tree

        Returns:
            List of differences, in sorted name order per directory

        Raises:
            LegaNotFoundError: If either root is not a directory
            LegaIOError: If an entry cannot be read
        """
        for root in (old_root, new_root):
            if not root.is_dir():
                raise LegaNotFoundError(root)

        try:
            entries = list(self._walk(old_root, new_root, ""))
        except OSError as e:
            raise LegaIOError(
                f"Cannot compare {old_root} and {new_root}: {e}",
                getattr(e, "filename", None),
            ) from e

        logger.debug(
            f"Compared {old_root} and {new_root}: {len(entries)} difference(s)"
        )
        return entries

    def _walk(self, old_dir: Path, new_dir: Path, prefix: str) -> Iterator[DiffEntry]:
        old_names = {item.name: item for item in old_dir.iterdir()}
        new_names = {item.name: item for item in new_dir.iterdir()}

        for name in sorted(old_names.keys() | new_names.keys()):
            relative_path = f"{prefix}{name}"
            old_item = old_names.get(name)
            new_item = new_names.get(name)

            if new_item is None:
                yield DiffEntry(
                    relative_path, DiffKind.MISSING_IN_NEW, is_directory(old_item)
                )
            elif old_item is None:
                yield DiffEntry(
                    relative_path, DiffKind.MISSING_IN_OLD, is_directory(new_item)
                )
            else:
                yield from self._compare_existing(old_item, new_item, relative_path)

    def _compare_existing(
        self, old_item: Path, new_item: Path, relative_path: str
    ) -> Iterator[DiffEntry]:
        """Compare a name that exists in both trees."""
        old_is_dir = is_directory(old_item)
        new_is_dir = is_directory(new_item)

        if old_is_dir and new_is_dir:
            yield from self._walk(old_item, new_item, f"{relative_path}/")
        elif old_is_dir or new_is_dir:
            logger.debug(f"Type mismatch for {relative_path}")
            yield DiffEntry(relative_path, DiffKind.DIFFERS)
        elif not filecmp.cmp(old_item, new_item, shallow=False):
            yield DiffEntry(relative_path, DiffKind.DIFFERS)


def diff_trees(old_root: Path, new_root: Path) -> list[DiffEntry]:
    """Compare two trees with a default :class:`TreeComparator`."""
    return TreeComparator().compare(old_root, new_root)
