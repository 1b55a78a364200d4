"""Open files in an external editor after they are staged."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .config import EditorConfig

logger = logging.getLogger(__name__)


class EditorNotifier:
    """Hands staged files to an external editor.

    Notification is fire-and-forget: a missing editor executable, a non-zero
    exit status or anything written to stderr is logged as a warning and
    reported through the return value, never raised.

    With the default config, ``notifier(Path("u1/new/a.txt"))`` runs
    ``code --add u1/new/a.txt``.
    """

    def __init__(self, config: Optional[EditorConfig] = None, timeout: float = 30.0):
        """Initialize the notifier.

        Args:
            config: Editor command configuration
            timeout: Seconds to wait for the editor command to return
        """
        self.config = config or EditorConfig()
        self.timeout = timeout

    def __call__(self, path: Path) -> bool:
        """Open ``path`` in the editor.

        Returns:
            True if the editor accepted the file, False otherwise
        """
        argv = [*self.config.argv, str(path)]
        logger.debug(f"Running editor command: {argv}")
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Error opening {path} in editor: {e}")
            return False

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            logger.warning(f"Error opening {path} in editor: {detail}")
            return False
        if result.stderr.strip():
            logger.warning(f"Error opening {path} in editor: {result.stderr.strip()}")
            return False

        logger.info(f"Opened {path} in editor")
        return True
