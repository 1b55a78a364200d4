"""pylega - stage, compare, back up and push update directories."""

from .config import EditorConfig, TransferConfig
from .exceptions import (
    LegaConfigError,
    LegaConnectionError,
    LegaError,
    LegaFileNotFoundError,
    LegaIOError,
    LegaNotFoundError,
    LegaTransferError,
)
from .mirror import (
    DiffEntry,
    DiffKind,
    FtpTransport,
    SessionState,
    TransferPlanner,
    TransferSession,
    UpdateWorkspace,
    Version,
)

__version__ = "0.1.0"

__all__ = [
    "DiffEntry",
    "DiffKind",
    "EditorConfig",
    "FtpTransport",
    "LegaConfigError",
    "LegaConnectionError",
    "LegaError",
    "LegaFileNotFoundError",
    "LegaIOError",
    "LegaNotFoundError",
    "LegaTransferError",
    "SessionState",
    "TransferConfig",
    "TransferPlanner",
    "TransferSession",
    "UpdateWorkspace",
    "Version",
    "__version__",
]
