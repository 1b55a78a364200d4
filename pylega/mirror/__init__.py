"""Update directory engine: tree mirroring, diffing and transfer sessions."""

from .diff import DiffEntry, DiffKind, TreeComparator, diff_trees
from .planner import TransferItem, TransferPlanner
from .progress import TransferEvent, TransferProgressInfo
from .session import SessionState, TransferReport, TransferSession
from .transport import Connection, FtpConnection, FtpTransport, Transport
from .tree import (
    EntryKind,
    TreeEntry,
    copy_file,
    copy_tree,
    delete_tree,
    iter_entries,
    iter_files,
    list_files,
    replicate_structure,
)
from .workspace import BackupInfo, RemovalResult, UpdateWorkspace, Version

__all__ = [
    "BackupInfo",
    "Connection",
    "DiffEntry",
    "DiffKind",
    "EntryKind",
    "FtpConnection",
    "FtpTransport",
    "RemovalResult",
    "SessionState",
    "TransferEvent",
    "TransferItem",
    "TransferPlanner",
    "TransferProgressInfo",
    "TransferReport",
    "TransferSession",
    "Transport",
    "TreeComparator",
    "TreeEntry",
    "UpdateWorkspace",
    "Version",
    "copy_file",
    "copy_tree",
    "delete_tree",
    "diff_trees",
    "iter_entries",
    "iter_files",
    "list_files",
    "replicate_structure",
]
