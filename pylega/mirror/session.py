"""Confirm-then-upload session for pushing a version tree."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..config import TransferConfig
from ..exceptions import LegaConnectionError, LegaError, LegaTransferError
from .planner import TransferItem
from .progress import ProgressCallback, TransferEvent, TransferProgressInfo
from .transport import Connection, Transport

logger = logging.getLogger(__name__)

DEFAULT_CONFIRM_PROMPT = "Do you want to proceed?"

ConfirmCallback = Callable[[str], bool]


class SessionState(str, Enum):
    """States of a transfer session."""

    PLANNED = "planned"
    """Plan built, nothing asked or uploaded yet"""

    AWAITING_CONFIRMATION = "awaiting_confirmation"
    """Waiting for the yes/no answer"""

    UPLOADING = "uploading"
    """Uploading items one after another"""

    COMPLETED = "completed"
    """Every item uploaded (or nothing to upload)"""

    CANCELLED = "cancelled"
    """The user declined; nothing was uploaded"""

    FAILED = "failed"
    """Connecting or an upload failed; remaining items were not attempted"""

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionState.COMPLETED,
            SessionState.CANCELLED,
            SessionState.FAILED,
        )


_TRANSITIONS: dict[SessionState, tuple[SessionState, ...]] = {
    SessionState.PLANNED: (
        SessionState.AWAITING_CONFIRMATION,
        SessionState.COMPLETED,
    ),
    SessionState.AWAITING_CONFIRMATION: (
        SessionState.UPLOADING,
        SessionState.CANCELLED,
        SessionState.FAILED,
    ),
    SessionState.UPLOADING: (SessionState.COMPLETED, SessionState.FAILED),
}


@dataclass
class TransferReport:
    """Outcome of a transfer session."""

    state: SessionState
    planned: list[TransferItem]
    uploaded: list[TransferItem] = field(default_factory=list)
    failed_item: Optional[TransferItem] = None
    error: Optional[LegaError] = None

    @property
    def succeeded(self) -> bool:
        return self.state is not SessionState.FAILED

    @property
    def not_attempted(self) -> list[TransferItem]:
        """Planned items that were neither uploaded nor the failing item."""
        done = len(self.uploaded) + (1 if self.failed_item is not None else 0)
        if self.state is SessionState.CANCELLED:
            return list(self.planned)
        return self.planned[done:]

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "planned": len(self.planned),
            "uploaded": [item.to_dict() for item in self.uploaded],
            "failed": self.failed_item.to_dict() if self.failed_item else None,
            "error": str(self.error) if self.error else None,
        }


class TransferSession:
    """Drives one push: confirm the plan, then upload it sequentially.

    State machine::

        PLANNED -> AWAITING_CONFIRMATION -> UPLOADING -> COMPLETED
                                         -> CANCELLED
                                         -> FAILED   (connect or upload error)
        PLANNED -> COMPLETED                          (empty plan)

    Uploads are strictly sequential and fail-fast: the first failing item
    stops the session and earlier uploads are kept. The connection is closed
    on every exit path once it has been opened.

    Examples:
        >>> session = TransferSession(FtpTransport(), config, click.confirm)
        >>> report = session.run(TransferPlanner().plan(src, config.remote_dir))
        >>> report.state
        <SessionState.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        transport: Transport,
        config: TransferConfig,
        confirm: ConfirmCallback,
        progress_callback: Optional[ProgressCallback] = None,
        prompt: str = DEFAULT_CONFIRM_PROMPT,
    ):
        """Initialize transfer session.

        Args:
            transport: Opens the connection used for uploads
            config: Connection settings passed to the transport
            confirm: Asked ``prompt`` once; returns True to proceed
            progress_callback: Optional callback for progress events
            prompt: Question passed to ``confirm``
        """
        self.transport = transport
        self.config = config
        self.confirm = confirm
        self.progress_callback = progress_callback
        self.prompt = prompt
        self.state = SessionState.PLANNED

    def _transition(self, new_state: SessionState) -> None:
        allowed = _TRANSITIONS.get(self.state, ())
        if new_state not in allowed:
            raise LegaError(
                f"Invalid session transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(f"Session {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _emit(self, info: TransferProgressInfo) -> None:
        if self.progress_callback is not None:
            self.progress_callback(info)

    def run(self, plan: list[TransferItem]) -> TransferReport:
        """Ask for confirmation and upload ``plan``.

        Args:
            plan: Items to upload, in order

        Returns:
            Report with the final state, uploaded items and any error

        Raises:
            LegaError: If the session has already been run
        """
        if self.state is not SessionState.PLANNED:
            raise LegaError("Transfer session has already been run")

        report = TransferReport(state=self.state, planned=list(plan))

        if not plan:
            logger.info("Nothing to upload")
            self._transition(SessionState.COMPLETED)
            report.state = self.state
            return report

        self._transition(SessionState.AWAITING_CONFIRMATION)
        try:
            confirmed = self.confirm(self.prompt)
        except Exception:
            self.state = SessionState.FAILED
            raise

        if not confirmed:
            logger.info("Upload cancelled by user")
            self._transition(SessionState.CANCELLED)
            report.state = self.state
            return report

        try:
            connection = self.transport.connect(self.config)
        except Exception as e:
            error = e
            if not isinstance(e, LegaError):
                error = LegaConnectionError(
                    f"Connection failed: {e}", host=self.config.host
                )
                error.__cause__ = e
            logger.error(f"Connection failed: {error}")
            self._transition(SessionState.FAILED)
            report.state = self.state
            report.error = error
            return report

        self._transition(SessionState.UPLOADING)
        try:
            self._upload_all(connection, report)
        finally:
            self._close(connection)

        report.state = self.state
        return report

    def _upload_all(self, connection: Connection, report: TransferReport) -> None:
        total = len(report.planned)
        self._emit(TransferProgressInfo(TransferEvent.SESSION_START, total))

        for item in report.planned:
            self._emit(
                TransferProgressInfo(
                    TransferEvent.ITEM_START, total, len(report.uploaded), item
                )
            )
            try:
                connection.upload(item.local_path, item.remote_path)
            except Exception as e:
                error = e
                if not isinstance(e, LegaTransferError):
                    error = LegaTransferError(
                        f"Failed to upload {item.describe()}: {e}",
                        item.local_path,
                        item.remote_path,
                    )
                    error.__cause__ = e
                logger.error(str(error))
                report.failed_item = item
                report.error = error
                self._emit(
                    TransferProgressInfo(
                        TransferEvent.ITEM_ERROR,
                        total,
                        len(report.uploaded),
                        item,
                        error,
                    )
                )
                self._transition(SessionState.FAILED)
                return

            report.uploaded.append(item)
            self._emit(
                TransferProgressInfo(
                    TransferEvent.ITEM_COMPLETE, total, len(report.uploaded), item
                )
            )

        self._transition(SessionState.COMPLETED)
        self._emit(
            TransferProgressInfo(
                TransferEvent.SESSION_COMPLETE, total, len(report.uploaded)
            )
        )
        logger.info(f"Uploaded {len(report.uploaded)} file(s)")

    def _close(self, connection: Connection) -> None:
        try:
            connection.close()
        except Exception as e:
            logger.warning(f"Error closing connection: {e}")
