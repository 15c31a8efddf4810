"""Unbounded background task execution."""
from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Set

from constants import Constants

logger = logging.getLogger(__name__)


class ThreadPerTaskExecutor(Executor):
    """Executor that starts one daemon thread per submitted task.

    There is no queue and no worker limit, so a slow task never delays a
    newer one.
    """

    def __init__(self, name_prefix: str = Constants.TASK_THREAD_NAME_PREFIX):
        self._name_prefix = name_prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._threads: Set[threading.Thread] = set()
        self._shutdown = False

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:  # type: ignore[override]
        future: Future = Future()

        def _run() -> None:
            try:
                if not future.set_running_or_notify_cancel():
                    return
                try:
                    result = fn(*args, **kwargs)
                except BaseException as exc:  # pylint: disable=broad-exception-caught
                    future.set_exception(exc)
                else:
                    future.set_result(result)
            finally:
                with self._lock:
                    self._threads.discard(threading.current_thread())

        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new tasks after shutdown")
            thread = threading.Thread(
                target=_run,
                name=f"{self._name_prefix}-{next(self._counter)}",
                daemon=True,
            )
            self._threads.add(thread)
        thread.start()
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            self._shutdown = True
            threads = list(self._threads)
        if wait:
            for thread in threads:
                thread.join(timeout=Constants.SHUTDOWN_TIMEOUT_SEC)
                if thread.is_alive():
                    logger.warning("Background task %s still running at shutdown", thread.name)
