"""Operation state and the status messages projected from it."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OperationState(Enum):
    """Lifecycle of a single install or uninstall."""
    IDLE = "idle"
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    INSTALLING = "installing"
    POST_INSTALL = "post_install"
    FINISHED = "finished"
    ERROR = "error"
    UNINSTALLING = "uninstalling"


# Forward order per path. Error sits outside both orders.
INSTALL_ORDER = (
    OperationState.IDLE,
    OperationState.QUEUED,
    OperationState.DOWNLOADING,
    OperationState.INSTALLING,
    OperationState.POST_INSTALL,
    OperationState.FINISHED,
)
UNINSTALL_ORDER = (
    OperationState.IDLE,
    OperationState.UNINSTALLING,
    OperationState.FINISHED,
)


def is_allowed_transition(order, current: OperationState, new: OperationState) -> bool:
    """Return True if moving from ``current`` to ``new`` keeps ``order`` monotonic.

    Same-state updates are allowed except out of Error. Error is reachable
    from every other state, Finished included, so a failure that arrives
    after a Finished progress report still surfaces. Nothing leaves Error.
    """
    if current is OperationState.ERROR:
        return False
    if new is OperationState.ERROR:
        return True
    if new not in order or current not in order:
        return False
    return order.index(new) >= order.index(current)


class MessageState(Enum):
    """Severity of a status message."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressSnapshot:
    bytes_downloaded: int = 0
    bytes_required: int = 0
    indeterminate: bool = False

    @classmethod
    def indeterminate_progress(cls) -> "ProgressSnapshot":
        return cls(indeterminate=True)


@dataclass(frozen=True)
class StatusMessage:
    """What the status sink shows for an operation at one point in time."""
    text: str
    severity: MessageState = MessageState.INFO
    progress: Optional[ProgressSnapshot] = None
    state: OperationState = OperationState.IDLE


class StatusSink(ABC):
    """Receives status updates; pushes are fire-and-forget."""

    @abstractmethod
    def show_status(self, message: StatusMessage) -> None:
        """Display or replace the current status."""
