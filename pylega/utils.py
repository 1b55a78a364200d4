"""Utility functions and constants for pylega."""

import re
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

# =============================================================================
# Workspace layout
# =============================================================================

OLD_DIR_NAME: str = "old"
NEW_DIR_NAME: str = "new"
VERSION_NAMES: tuple[str, ...] = (OLD_DIR_NAME, NEW_DIR_NAME)

# Backups live next to the workspace: <updateDir>_backup_<epochMillis>
BACKUP_INFIX: str = "_backup_"

# Default FTP settings
DEFAULT_FTP_PORT: int = 21
DEFAULT_FTP_TIMEOUT: float = 5.0

DEFAULT_EDITOR_COMMAND: str = "code --add"


# =============================================================================
# Backup naming
# =============================================================================


def current_millis() -> int:
    """Return the current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def backup_path_for(root: Path, millis: Optional[int] = None) -> Path:
    """Build the backup directory path for a workspace root.

    Args:
        root: Workspace root directory
        millis: Timestamp in milliseconds since epoch (defaults to now)

    Returns:
        Sibling path named ``<root>_backup_<millis>``

    Examples:
        >>> backup_path_for(Path("/srv/u1"), 1700000000000).name
        'u1_backup_1700000000000'
    """
    if millis is None:
        millis = current_millis()
    return root.parent / f"{root.name}{BACKUP_INFIX}{millis}"


def parse_backup_millis(root: Path, candidate: Path) -> Optional[int]:
    """Extract the timestamp from a backup directory name.

    Args:
        root: Workspace root directory the backup belongs to
        candidate: Directory that may be a backup of ``root``

    Returns:
        Milliseconds since epoch, or None if ``candidate`` is not a backup
        of ``root``

    Examples:
        >>> parse_backup_millis(Path("u1"), Path("u1_backup_1700000000000"))
        1700000000000
        >>> parse_backup_millis(Path("u1"), Path("u12_backup_1")) is None
        True
    """
    pattern = re.escape(root.name + BACKUP_INFIX) + r"(\d+)"
    match = re.fullmatch(pattern, candidate.name)
    if match is None:
        return None
    return int(match.group(1))


def format_millis(millis: int) -> str:
    """Format an epoch-milliseconds timestamp as local ISO time."""
    return datetime.fromtimestamp(millis / 1000).isoformat(
        sep=" ", timespec="seconds"
    )


# =============================================================================
# Size formatting
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
