"""Cancellation handles for background work.

A ``CancellationSource`` is created per unit of background work. Its
``token`` is handed to the work itself, which polls it or registers
callbacks; the owner calls ``cancel()`` to request a stop and ``close()``
once the work has fully finished.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future
from typing import Callable, List, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class OperationCancelled(Exception):
    """Raised inside background work once its token has been cancelled."""


class CancellationRegistration:
    """Handle returned by ``CancellationToken.register``; usable as a context manager."""

    def __init__(self, source: Optional["CancellationSource"], callback: Optional[Callable[[], None]]):
        self._source = source
        self._callback = callback

    def unregister(self) -> None:
        if self._source is not None and self._callback is not None:
            self._source._unregister(self._callback)  # pylint: disable=protected-access
        self._source = None
        self._callback = None

    def __enter__(self) -> "CancellationRegistration":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unregister()


class CancellationToken:
    """Read-only view of a ``CancellationSource``."""

    def __init__(self, source: "CancellationSource"):
        self._source = source

    @property
    def is_cancelled(self) -> bool:
        return self._source.is_cancelled

    def raise_if_cancelled(self) -> None:
        if self._source.is_cancelled:
            raise OperationCancelled()

    def register(self, callback: Callable[[], None]) -> CancellationRegistration:
        """Run ``callback`` when cancellation is requested.

        If the source is already cancelled the callback runs immediately on
        the calling thread.
        """
        return self._source._register(callback)  # pylint: disable=protected-access


class CancellationSource:
    """Owner side of a cancellation handle.

    ``generation`` is an ordering stamp assigned by whoever creates the
    source; the search coordinator uses it for its freshness check.
    """

    def __init__(self, generation: int = 0):
        self.generation = generation
        self._lock = threading.Lock()
        self._cancelled = False
        self._closed = False
        self._callbacks: List[Callable[[], None]] = []
        self.token = CancellationToken(self)

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        """Request cancellation; a no-op once cancelled or closed."""
        with self._lock:
            if self._cancelled or self._closed:
                return
            self._cancelled = True
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception:  # pylint: disable=broad-exception-caught
                logger.debug("Cancellation callback raised", exc_info=True)

    def close(self) -> None:
        """Release the source. Later ``cancel()`` calls are ignored."""
        with self._lock:
            if self._closed:
                logger.debug("Cancellation source %d closed twice", self.generation)
                return
            self._closed = True
            self._callbacks.clear()

    def _register(self, callback: Callable[[], None]) -> CancellationRegistration:
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot register on a closed cancellation source")
            if not self._cancelled:
                self._callbacks.append(callback)
                return CancellationRegistration(self, callback)
        callback()
        return CancellationRegistration(None, None)

    def _unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass


def wait_cancellable(future: "Future[T]", token: CancellationToken, timeout: Optional[float] = None) -> T:
    """Wait for a remote ``future`` while honouring ``token``.

    Cancelling the token forwards a best-effort ``cancel()`` to the future;
    failures to cancel the remote side are ignored. Raises
    ``OperationCancelled`` when the token was cancelled, whether or not the
    remote side stopped.
    """

    def _cancel_remote() -> None:
        try:
            future.cancel()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.debug("Remote cancel failed; ignoring", exc_info=True)

    with token.register(_cancel_remote):
        try:
            result = future.result(timeout=timeout)
        except CancelledError as exc:
            raise OperationCancelled() from exc
    token.raise_if_cancelled()
    return result
