"""Install/uninstall operations and their status reporting."""

from .controller import CommandResult, OperationController
from .status import MessageState, OperationState, ProgressSnapshot, StatusMessage, StatusSink

__all__ = [
    "CommandResult",
    "MessageState",
    "OperationController",
    "OperationState",
    "ProgressSnapshot",
    "StatusMessage",
    "StatusSink",
]
