"""Incremental catalog search with supersession.

Every ``submit_query`` starts a new search attempt and cancels the one before
it. Attempts run on the context's executor; when one finishes it commits its
results only if it is still the newest attempt, so a slow stale search can
never overwrite fresher results.

Two locks guard shared state and are never held together:

* ``_search_lock``: the current cancellation source and generation counter.
* ``_results_lock``: the committed ``ResultSet`` and the generation that
  committed it.

A third, ``_notify_lock``, only orders ``items_changed`` calls so the
surface hears about commits in generation order.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import CancelledError, Future, wait
from dataclasses import dataclass
from typing import List, Optional, Set

from catalog.context import CatalogContext
from catalog.dedup import ResultSet
from catalog.models import (
    FindPackagesOptions,
    PackageFieldMatchOption,
    PackageMatchField,
    PackageMatchFilter,
    PackageRecord,
    Query,
)
from common.cancellation import CancellationSource, CancellationToken, OperationCancelled, wait_cancellable
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants
from operations.controller import OperationController
from operations.status import StatusSink

logger = logging.getLogger(__name__)


class ListSurface(ABC):
    """Consumer of search results."""

    @abstractmethod
    def items_changed(self, count: int) -> None:
        """Called after a search committed ``count`` results."""


@dataclass(frozen=True)
class ListItem:
    """Plain projection of a result row, or of a placeholder when ``package`` is None."""

    title: str
    subtitle: str = ""
    package: Optional[PackageRecord] = None

    @property
    def command_name(self) -> Optional[str]:
        if self.package is None:
            return None
        return "Uninstall" if self.package.is_installed else "Install"

    def create_command(self, context: CatalogContext, status_sink: StatusSink) -> OperationController:
        """Build the install/uninstall command for this row."""
        if self.package is None:
            raise ValueError(f"Placeholder item {self.title!r} has no package")
        return OperationController(context, self.package, status_sink)

    @classmethod
    def for_package(cls, package: PackageRecord) -> "ListItem":
        subtitle = package.id
        if package.installed_version:
            subtitle = f"{package.id} (installed {package.installed_version})"
        return cls(title=package.name, subtitle=subtitle, package=package)


def build_find_options(query: Query, result_limit: int) -> FindPackagesOptions:
    """Translate a query into catalog selectors and filters.

    The text always goes to the catalog-default field, which is the plain
    ``search <text>`` behaviour; a tag adds a case-insensitive contains filter.
    """
    options = FindPackagesOptions(result_limit=result_limit)
    options.selectors.append(
        PackageMatchFilter(
            field=PackageMatchField.CATALOG_DEFAULT,
            value=query.text,
        )
    )
    if query.tag:
        options.filters.append(
            PackageMatchFilter(
                field=PackageMatchField.TAG,
                value=query.tag,
                option=PackageFieldMatchOption.CONTAINS_CASE_INSENSITIVE,
            )
        )
    return options


class SearchCoordinator:
    """Owns the search lifecycle for one list view.

    Args:
        context: Shared gateway/executor/settings.
        list_surface: Notified when new results are committed.
        tag: Optional tag applied to every search. With a tag and no text
            yet, the first ``get_items()`` browses the tag.
    """

    def __init__(
        self,
        context: CatalogContext,
        list_surface: Optional[ListSurface] = None,
        tag: str = "",
    ):
        self._context = context
        self._list_surface = list_surface
        self._tag = tag or ""

        self._results_lock = threading.Lock()
        self._results: Optional[ResultSet] = None
        self._committed_generation = 0
        self._notify_lock = threading.Lock()

        self._search_lock = threading.Lock()
        self._current: Optional[CancellationSource] = None
        self._generation = 0
        self._pending: Set[Future] = set()
        self._closed = False

        self._search_text = ""
        self._tag_browse_started = False
        self.is_loading = False

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def search_text(self) -> str:
        return self._search_text

    @property
    def generation(self) -> int:
        """Generation of the newest search attempt."""
        return self._generation

    def submit_query(self, text: str, tag: Optional[str] = None) -> None:
        """Supersede any running search with one for ``text``.

        ``tag`` defaults to the coordinator's tag. With neither text nor tag
        the results are cleared right away and nothing runs in the
        background.
        """
        with self._search_lock:
            if self._closed:
                raise RuntimeError("SearchCoordinator is closed")
        text = text or ""
        effective_tag = self._tag if tag is None else (tag or "")
        self.is_loading = True
        self._search_text = text

        if not text and not effective_tag:
            self._supersede(None)
            with self._results_lock:
                self._results = ResultSet()
                self._committed_generation = self._generation
            logger.debug("Cleared results for empty query")
            return

        self._start_attempt(Query(text=text, tag=effective_tag or None))

    def get_current_results(self) -> ResultSet:
        """Snapshot of the last committed results; empty before the first commit."""
        with self._results_lock:
            if self._results is None:
                return ResultSet()
            return self._results.snapshot()

    def get_items(self) -> List[ListItem]:
        """Rows for the list surface.

        The first pull of a tag-scoped coordinator with no search yet starts
        the tag browse and returns no rows while it runs.
        """
        with self._results_lock:
            browse = (
                self._results is None
                and not self._search_text
                and bool(self._tag)
                and not self._tag_browse_started
            )
            if browse:
                self._tag_browse_started = True
            results = None if self._results is None else self._results.snapshot()

        if browse:
            self.is_loading = True
            self._start_attempt(Query(text="", tag=self._tag))
            return []

        if not results:
            if not self._search_text and not self._tag:
                title = Constants.EMPTY_SEARCH_TITLE
            else:
                title = Constants.NO_RESULTS_TITLE
            items = [ListItem(title=title)]
        else:
            items = [ListItem.for_package(record) for record in results]

        self.is_loading = False
        return items

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for outstanding search attempts; False if some are still running."""
        with self._search_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Cancel the running search and wait for attempts to wind down."""
        with self._search_lock:
            if self._closed:
                return
            self._closed = True
        self._supersede(None)
        if not self.wait_until_idle(Constants.SHUTDOWN_TIMEOUT_SEC):
            logger.warning("Search attempts still running after close")

    def __enter__(self) -> "SearchCoordinator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _supersede(self, source: Optional[CancellationSource]) -> None:
        """Install ``source`` as current, bump the generation and cancel the previous one."""
        with self._search_lock:
            self._generation += 1
            if source is not None:
                source.generation = self._generation
            previous, self._current = self._current, source
        if previous is not None:
            previous.cancel()

    def _start_attempt(self, query: Query) -> None:
        with self._search_lock:
            if self._closed:
                raise RuntimeError("SearchCoordinator is closed")
        source = CancellationSource()
        self._supersede(source)
        if is_debug_enabled(logger):
            logger.debug(
                "Starting search for %r",
                query.text,
                extra=extra_context(
                    event="search_start",
                    component="search_coordinator",
                    action="submit",
                    generation=source.generation,
                    tag=query.tag,
                ),
            )
        try:
            future = self._context.executor.submit(self._run_attempt, query, source)
        except RuntimeError:
            source.close()
            logger.warning("Search for %r not started: executor unavailable", query.text)
            return
        with self._search_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._search_lock:
            self._pending.discard(future)

    def _run_attempt(self, query: Query, source: CancellationSource) -> None:
        try:
            with Timer() as t:
                results = self._search(query, source.token)
            logger.debug("Search %r took %sms", query.text, t.duration_ms())

            with self._results_lock:
                # The generation only grows; newer attempts and the clear path
                # both write results under this lock after bumping it.
                fresh = source.generation == self._generation
                if fresh:
                    self._results = results
                    self._committed_generation = source.generation
                count = len(results)

            if not fresh:
                logger.debug("Discarding stale results for %r (generation %d)", query.text, source.generation)
                return
            logger.debug("Completed search for %r: %d results", query.text, count)
            self._notify(source, count)
        except (OperationCancelled, CancelledError):
            logger.debug("Cancelled search for %r", query.text)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # Failed searches leave the previously committed results in place.
            logger.warning(
                "Search for %r failed: %s",
                query.text,
                exc,
                extra=extra_context(
                    event="search_failed",
                    component="search_coordinator",
                    action="search",
                    outcome="error",
                    generation=source.generation,
                ),
            )
        finally:
            source.close()

    def _notify(self, source: CancellationSource, count: int) -> None:
        if self._list_surface is None:
            return
        with self._notify_lock:
            with self._results_lock:
                current = source.generation == self._committed_generation
            if not current:
                # Replaced by a newer commit or a clear since ours landed.
                logger.debug("Skipping notification for generation %d", source.generation)
                return
            self._list_surface.items_changed(count)

    def _search(self, query: Query, token: CancellationToken) -> ResultSet:
        token.raise_if_cancelled()
        options = build_find_options(query, self._context.result_limit)
        token.raise_if_cancelled()

        gateway = self._context.gateway
        catalog = wait_cancellable(gateway.get_composite_catalog(), token)
        logger.debug("Searching %s (%r)", catalog.name, query.text)
        token.raise_if_cancelled()

        matches = wait_cancellable(gateway.find_packages(catalog, options), token)
        results = ResultSet()
        for match in list(matches):
            token.raise_if_cancelled()
            results.add(match.package)
        logger.debug("[%s] (%r): count: %d", catalog.name, query.text, len(results))
        return results
