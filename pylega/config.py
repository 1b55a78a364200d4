"""Configuration values for pylega.

The core never reads the environment itself. The CLI loads an optional
``.env`` file, resolves options (falling back to environment variables) and
hands explicit configuration objects to the core.
"""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import LegaConfigError
from .utils import DEFAULT_EDITOR_COMMAND, DEFAULT_FTP_PORT, DEFAULT_FTP_TIMEOUT

logger = logging.getLogger(__name__)

EDITOR_ENV_VAR = "LEGA_EDITOR"


@dataclass(frozen=True)
class TransferConfig:
    """Connection settings for pushing a version tree to the remote server."""

    host: Optional[str]
    """FTP server host name"""

    user: Optional[str]
    """FTP user name"""

    password: Optional[str] = None
    """FTP password"""

    remote_dir: Optional[str] = None
    """Remote base directory the version tree is mirrored into"""

    port: int = DEFAULT_FTP_PORT
    """FTP control port"""

    timeout: float = DEFAULT_FTP_TIMEOUT
    """Socket timeout in seconds for connect and data transfers"""

    passive: bool = True
    """Use passive mode data connections"""

    use_tls: bool = False
    """Use explicit FTPS (AUTH TLS) instead of plain FTP"""

    def missing_fields(self) -> list[str]:
        """Return the names of required settings that are not set."""
        required = {
            "host": self.host,
            "user": self.user,
            "password": self.password,
            "remote_dir": self.remote_dir,
        }
        return [name for name, value in required.items() if not value]

    def validate(self) -> "TransferConfig":
        """Ensure all required settings are present.

        Returns:
            The config itself, for chaining

        Raises:
            LegaConfigError: If host, user, password or remote_dir is missing
        """
        missing = self.missing_fields()
        if missing:
            raise LegaConfigError(
                "FTP credentials are not set: "
                f"{', '.join(missing)}. Please set them in the .env file.",
                missing=missing,
            )
        if self.port <= 0 or self.port > 65535:
            raise LegaConfigError(f"Invalid FTP port: {self.port}")
        if self.timeout <= 0:
            raise LegaConfigError(f"Invalid FTP timeout: {self.timeout}")
        return self

    def describe(self) -> str:
        """Human-readable target description without the password."""
        scheme = "ftps" if self.use_tls else "ftp"
        return f"{scheme}://{self.user}@{self.host}:{self.port}{self.remote_dir}"


@dataclass(frozen=True)
class EditorConfig:
    """Command used to open files for editing."""

    command: str = DEFAULT_EDITOR_COMMAND

    @property
    def argv(self) -> list[str]:
        """Command split into arguments, without the target path."""
        return shlex.split(self.command)

    @classmethod
    def from_environ(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "EditorConfig":
        """Build editor config from an environment mapping.

        Args:
            environ: Mapping to read ``LEGA_EDITOR`` from (defaults to os.environ)
        """
        if environ is None:
            environ = os.environ
        command = environ.get(EDITOR_ENV_VAR) or DEFAULT_EDITOR_COMMAND
        return cls(command=command)


def load_env_file(path: Optional[Path] = None) -> Optional[Path]:
    """Load variables from a ``.env`` file into the process environment.

    Variables that are already set are not overridden.

    Args:
        path: Explicit ``.env`` path; if None, search from the current
            working directory upwards

    Returns:
        Path of the loaded file, or None if no file was found
    """
    if path is None:
        found = find_dotenv(usecwd=True)
        if not found:
            logger.debug("No .env file found")
            return None
        path = Path(found)

    if not path.is_file():
        logger.debug(f"No .env file at {path}")
        return None

    load_dotenv(path, override=False)
    logger.debug(f"Loaded environment from {path}")
    return path
