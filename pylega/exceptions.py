"""Exceptions raised by pylega."""

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class LegaError(Exception):
    """Base exception for all pylega errors."""


class LegaIOError(LegaError):
    """A filesystem entry could not be read or written."""

    def __init__(self, message: str, path: Optional[PathLike] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class LegaFileNotFoundError(LegaError):
    """The file an operation works on does not exist."""

    def __init__(self, path: PathLike, message: Optional[str] = None):
        self.path = Path(path)
        super().__init__(message or f"File not found: {self.path}")


class LegaNotFoundError(LegaError):
    """A directory, version tree or backup does not exist."""

    def __init__(self, path: PathLike, message: Optional[str] = None):
        self.path = Path(path)
        super().__init__(message or f"Directory not found: {self.path}")


class LegaConfigError(LegaError):
    """Required configuration values are missing or invalid."""

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class LegaConnectionError(LegaError):
    """Connecting to the remote server failed."""

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.host = host


class LegaTransferError(LegaError):
    """Uploading a single file failed."""

    def __init__(self, message: str, local_path: PathLike, remote_path: str):
        super().__init__(message)
        self.local_path = Path(local_path)
        self.remote_path = remote_path
