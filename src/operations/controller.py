"""Install/uninstall command driving one catalog operation.

Each user action gets its own ``OperationController``. ``invoke()`` starts
the gateway call in the background and returns at once; progress callbacks
and the final outcome are folded into an ``OperationState`` and pushed to
the status sink as ``StatusMessage`` snapshots.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Optional

from catalog.context import CatalogContext
from catalog.models import (
    InstallOptions,
    InstallProgress,
    InstallProgressState,
    PackageRecord,
    UninstallOptions,
)
from common.formatting import format_bytes
from common.logging_utils import Timer, extra_context, is_debug_enabled

from .status import (
    INSTALL_ORDER,
    UNINSTALL_ORDER,
    MessageState,
    OperationState,
    ProgressSnapshot,
    StatusMessage,
    StatusSink,
    is_allowed_transition,
)

logger = logging.getLogger(__name__)


class CommandResult(Enum):
    """What the host UI should do after a command was invoked."""
    KEEP_OPEN = "keep_open"


class OperationController:
    """Installs or uninstalls one package, reporting progress to a status sink.

    The action is chosen once, here: a package reported as installed is
    uninstalled, anything else is installed. ``invoke()`` does not re-check.

    Args:
        context: Shared gateway/executor/settings.
        package: The package to act on.
        status_sink: Receives a ``StatusMessage`` on every transition.
        is_installed: Overrides ``package.is_installed`` when given.
    """

    def __init__(
        self,
        context: CatalogContext,
        package: PackageRecord,
        status_sink: StatusSink,
        is_installed: Optional[bool] = None,
    ):
        self._context = context
        self._package = package
        self._sink = status_sink
        self._is_installed = package.is_installed if is_installed is None else is_installed
        self._order = UNINSTALL_ORDER if self._is_installed else INSTALL_ORDER
        # Re-entrant: a sink may read ``state`` while being notified.
        self._lock = threading.RLock()
        self._state = OperationState.IDLE
        self._last_status: Optional[StatusMessage] = None
        self._task: Optional[Future] = None
        self._done = threading.Event()

    @property
    def name(self) -> str:
        return "Uninstall" if self._is_installed else "Install"

    @property
    def is_installed(self) -> bool:
        return self._is_installed

    @property
    def package(self) -> PackageRecord:
        return self._package

    @property
    def state(self) -> OperationState:
        with self._lock:
            return self._state

    @property
    def last_status(self) -> Optional[StatusMessage]:
        with self._lock:
            return self._last_status

    def invoke(self) -> CommandResult:
        """Start the operation in the background and return immediately.

        Raises:
            RuntimeError: if this controller was already invoked.
        """
        with self._lock:
            if self._task is not None:
                raise RuntimeError(f"{self.name} for {self._package.id} was already invoked")
            self._task = Future()

        submitted = False
        try:
            if self._is_installed:
                self._transition(OperationState.UNINSTALLING, f"Uninstalling {self._package.name}...")
                work = self._run_uninstall
            else:
                self._push(StatusMessage(f"Installing {self._package.name}...", state=OperationState.IDLE))
                work = self._run_install

            try:
                task = self._context.executor.submit(work)
            except RuntimeError as exc:
                self._fail(exc)
                return CommandResult.KEEP_OPEN
            self._task = task
            submitted = True
            task.add_done_callback(lambda _f: self._done.set())
        finally:
            # Without a running task nothing else will release wait().
            if not submitted:
                self._done.set()
        return CommandResult.KEEP_OPEN

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the background work ended; False on timeout or if never invoked."""
        if self._task is None:
            return False
        return self._done.wait(timeout)

    def _run_install(self) -> None:
        options = InstallOptions(scope=self._context.install_scope)
        with Timer() as t:
            try:
                remote = self._context.gateway.install_package(self._package, options, self._on_install_progress)
                result = remote.result()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._fail(exc)
            else:
                if result.ok:
                    self._transition(
                        OperationState.FINISHED,
                        f"Finished install for {self._package.name}",
                        MessageState.SUCCESS,
                    )
                else:
                    self._fail_with_text(result.error or f"Install of {self._package.name} failed")
        self._log_outcome("install", t.duration_ms())

    def _run_uninstall(self) -> None:
        options = UninstallOptions(scope=self._context.install_scope)
        with Timer() as t:
            try:
                result = self._context.gateway.uninstall_package(self._package, options).result()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._fail(exc)
            else:
                if result.ok:
                    self._transition(
                        OperationState.FINISHED,
                        f"Finished uninstall for {self._package.name}",
                        MessageState.SUCCESS,
                    )
                else:
                    self._fail_with_text(result.error or f"Uninstall of {self._package.name} failed")
        self._log_outcome("uninstall", t.duration_ms())

    def _on_install_progress(self, progress: InstallProgress) -> None:
        name = self._package.name
        if progress.state is InstallProgressState.QUEUED:
            self._transition(OperationState.QUEUED, f"Queued {name} for download...")
        elif progress.state is InstallProgressState.DOWNLOADING:
            text = (
                f"Downloading. {format_bytes(progress.bytes_downloaded)} "
                f"of {format_bytes(progress.bytes_required)}"
            )
            snapshot = ProgressSnapshot(
                bytes_downloaded=progress.bytes_downloaded,
                bytes_required=progress.bytes_required,
            )
            self._transition(OperationState.DOWNLOADING, text, progress=snapshot)
        elif progress.state is InstallProgressState.INSTALLING:
            self._transition(
                OperationState.INSTALLING,
                f"Installing {name}...",
                progress=ProgressSnapshot.indeterminate_progress(),
            )
        elif progress.state is InstallProgressState.POST_INSTALL:
            self._transition(
                OperationState.POST_INSTALL,
                f"Finishing install for {name}...",
                progress=ProgressSnapshot.indeterminate_progress(),
            )
        elif progress.state is InstallProgressState.FINISHED:
            self._transition(OperationState.FINISHED, "Finished install.", MessageState.SUCCESS)

    def _transition(
        self,
        new_state: OperationState,
        text: str,
        severity: MessageState = MessageState.INFO,
        progress: Optional[ProgressSnapshot] = None,
    ) -> bool:
        """Move to ``new_state`` and push its message; ignored if it would regress."""
        with self._lock:
            if not is_allowed_transition(self._order, self._state, new_state):
                if is_debug_enabled(logger):
                    logger.debug(
                        "Ignoring state change %s -> %s for %s",
                        self._state.value,
                        new_state.value,
                        self._package.id,
                        extra=extra_context(
                            event="anomaly",
                            component="operation_controller",
                            action="transition",
                            outcome="ignored",
                        ),
                    )
                return False
            self._state = new_state
            message = StatusMessage(text=text, severity=severity, progress=progress, state=new_state)
            self._last_status = message
            self._show(message)
        return True

    def _push(self, message: StatusMessage) -> None:
        with self._lock:
            self._last_status = message
            self._show(message)

    def _show(self, message: StatusMessage) -> None:
        try:
            self._sink.show_status(message)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning(
                "Status sink rejected %r for %s: %s",
                message.text,
                self._package.id,
                exc,
                extra=extra_context(
                    event="sink_failed",
                    component="operation_controller",
                    action="show_status",
                    outcome="error",
                    package_id=self._package.id,
                ),
            )

    def _fail(self, exc: BaseException) -> None:
        logger.warning(
            "%s of %s failed: %s",
            self.name,
            self._package.id,
            exc,
            extra=extra_context(
                event="operation_failed",
                component="operation_controller",
                action=self.name.lower(),
                outcome="error",
                package_id=self._package.id,
            ),
        )
        self._fail_with_text(str(exc) or type(exc).__name__)

    def _fail_with_text(self, text: str) -> None:
        self._transition(OperationState.ERROR, text, MessageState.ERROR)

    def _log_outcome(self, action: str, duration_ms: float) -> None:
        logger.info(
            "%s %s ended in state %s",
            action.capitalize(),
            self._package.id,
            self.state.value,
            extra=extra_context(
                event="operation_complete",
                component="operation_controller",
                action=action,
                outcome=self.state.value,
                duration_ms=duration_ms,
            ),
        )
