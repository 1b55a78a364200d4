"""Progress events emitted while a transfer session runs."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .planner import TransferItem


class TransferEvent(str, Enum):
    """Points in a session at which progress is reported."""

    SESSION_START = "session_start"
    ITEM_START = "item_start"
    ITEM_COMPLETE = "item_complete"
    ITEM_ERROR = "item_error"
    SESSION_COMPLETE = "session_complete"


@dataclass
class TransferProgressInfo:
    """Snapshot of session progress passed to callbacks."""

    event: TransferEvent
    total_items: int
    completed_items: int = 0
    item: Optional[TransferItem] = None
    error: Optional[Exception] = None

    @property
    def remaining_items(self) -> int:
        return self.total_items - self.completed_items


ProgressCallback = Callable[[TransferProgressInfo], None]
