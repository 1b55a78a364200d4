"""Transport capability used to push files to a remote server.

A transport opens a :class:`Connection`; a connection uploads one file at a
time and is closed when the session ends. :class:`FtpTransport` implements
the capability over FTP (optionally FTPS) with :mod:`ftplib`.
"""

import ftplib
import logging
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from ..config import TransferConfig
from ..exceptions import LegaConnectionError, LegaTransferError

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """An open connection to the remote server."""

    def upload(self, local_path: Path, remote_path: str) -> None:
        """Upload one file, raising LegaTransferError on failure."""
        ...

    def close(self) -> None:
        """Release the connection."""
        ...


class Transport(Protocol):
    """Factory for connections."""

    def connect(self, config: TransferConfig) -> Connection:
        """Open a connection, raising LegaConnectionError on failure."""
        ...


class FtpConnection:
    """Connection wrapper around an authenticated :class:`ftplib.FTP`."""

    def __init__(self, ftp: ftplib.FTP, block_size: int = 8192):
        self.ftp = ftp
        self.block_size = block_size
        self._known_dirs: set[str] = {"/", "."}

    def _ensure_remote_dir(self, remote_dir: PurePosixPath) -> None:
        """Create ``remote_dir`` and its parents if they do not exist."""
        for directory in reversed([remote_dir, *remote_dir.parents]):
            key = str(directory)
            if key in self._known_dirs:
                continue
            try:
                self.ftp.mkd(key)
                logger.debug(f"Created remote directory {key}")
            except ftplib.error_perm:
                # 550: already exists (or not permitted; STOR will tell)
                pass
            self._known_dirs.add(key)

    def upload(self, local_path: Path, remote_path: str) -> None:
        """Store ``local_path`` at ``remote_path`` in binary mode.

        Raises:
            LegaTransferError: If the file cannot be read or stored
        """
        try:
            self._ensure_remote_dir(PurePosixPath(remote_path).parent)
            with open(local_path, "rb") as f:
                self.ftp.storbinary(
                    f"STOR {remote_path}", f, blocksize=self.block_size
                )
        except ftplib.all_errors as e:
            raise LegaTransferError(
                f"Failed to upload {local_path} to {remote_path}: {e}",
                local_path,
                remote_path,
            ) from e
        logger.info(f"Uploaded {local_path} to {remote_path}")

    def close(self) -> None:
        """Send QUIT, falling back to closing the socket."""
        try:
            self.ftp.quit()
        except ftplib.all_errors as e:
            logger.debug(f"QUIT failed, closing socket: {e}")
            self.ftp.close()
        logger.debug("FTP connection closed")


class FtpTransport:
    """Opens FTP/FTPS connections from a :class:`TransferConfig`."""

    def __init__(self, ftp_factory: Optional[type] = None):
        """Initialize transport.

        Args:
            ftp_factory: Class used to create the client (defaults to
                ``ftplib.FTP`` or ``ftplib.FTP_TLS`` depending on config)
        """
        self.ftp_factory = ftp_factory

    def connect(self, config: TransferConfig) -> FtpConnection:
        """Connect, log in and select the data connection mode.

        Raises:
            LegaConnectionError: If connecting or logging in fails
        """
        factory = self.ftp_factory or (
            ftplib.FTP_TLS if config.use_tls else ftplib.FTP
        )
        ftp = factory(timeout=config.timeout)
        logger.debug(f"Connecting to {config.describe()}")
        try:
            ftp.connect(config.host, config.port, timeout=config.timeout)
            ftp.login(config.user, config.password)
            if config.use_tls:
                ftp.prot_p()
            ftp.set_pasv(config.passive)
        except ftplib.all_errors as e:
            ftp.close()
            raise LegaConnectionError(
                f"FTP connection to {config.host}:{config.port} failed: {e}",
                host=config.host,
            ) from e

        logger.info(f"Connected to {config.host}:{config.port}")
        return FtpConnection(ftp)
