"""In-memory catalog gateway.

Holds a fixed set of named catalogs and serves them through the
``CatalogGateway`` interface. The composite catalog concatenates the
predefined catalogs in order, so a package published to several of them is
returned once per catalog, just like a real merged view. Installs replay a
scripted progress sequence.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from common.logging_utils import extra_context, is_debug_enabled
from common.tasks import ThreadPerTaskExecutor

from .gateway import CatalogGateway, CatalogOperationError, ProgressCallback
from .models import (
    CatalogHandle,
    FindPackagesOptions,
    InstallOptions,
    InstallProgress,
    InstallProgressState,
    InstallResult,
    OperationResultStatus,
    PackageFieldMatchOption,
    PackageMatch,
    PackageMatchField,
    PackageMatchFilter,
    PackageRecord,
    UninstallOptions,
    UninstallResult,
)

logger = logging.getLogger(__name__)

COMMUNITY_CATALOG = "community"
STORE_CATALOG = "store"
PREDEFINED_CATALOGS = (COMMUNITY_CATALOG, STORE_CATALOG)
COMPOSITE_CATALOG = "composite"


def _compare(candidate: str, flt: PackageMatchFilter) -> bool:
    if flt.option is PackageFieldMatchOption.EQUALS:
        return candidate == flt.value
    if flt.option is PackageFieldMatchOption.EQUALS_CASE_INSENSITIVE:
        return candidate.lower() == flt.value.lower()
    return flt.value.lower() in candidate.lower()


def _matches(package: PackageRecord, flt: PackageMatchFilter) -> bool:
    if flt.field is PackageMatchField.ID:
        return _compare(package.id, flt)
    if flt.field is PackageMatchField.NAME:
        return _compare(package.name, flt)
    if flt.field is PackageMatchField.TAG:
        return any(_compare(tag, flt) for tag in package.tags)
    # Catalog default: substring of id, name or any tag, case-insensitively.
    if not flt.value:
        return True
    needle = flt.value.lower()
    return (
        needle in package.id.lower()
        or needle in package.name.lower()
        or any(needle in tag.lower() for tag in package.tags)
    )


class InMemoryCatalogGateway(CatalogGateway):
    """Catalog gateway backed by in-process package lists.

    Args:
        catalogs: Mapping of catalog name to its packages. Defaults to the
            two predefined catalogs, both empty.
        installed: Mapping of package id to installed version.
        executor: Where remote calls run. Defaults to a thread per call.
        latency: Seconds each search sleeps before answering.
        download_chunks: Number of Downloading progress events per install.
    """

    def __init__(
        self,
        catalogs: Optional[Mapping[str, Iterable[PackageRecord]]] = None,
        installed: Optional[Mapping[str, str]] = None,
        executor: Optional[Executor] = None,
        latency: float = 0.0,
        download_chunks: int = 4,
    ):
        if catalogs is None:
            catalogs = {name: [] for name in PREDEFINED_CATALOGS}
        self._catalogs: Dict[str, List[PackageRecord]] = {
            name: [replace(p, catalog_name=p.catalog_name or name) for p in packages]
            for name, packages in catalogs.items()
        }
        self._installed: Dict[str, str] = dict(installed or {})
        self._lock = threading.Lock()
        self._executor = executor or ThreadPerTaskExecutor(name_prefix="catalog-gateway")
        self._latency = latency
        self._download_chunks = max(1, download_chunks)
        self._install_failures: Dict[str, str] = {}
        self._uninstall_failures: Dict[str, str] = {}

    def fail_install(self, package_id: str, message: str) -> None:
        """Make the next installs of ``package_id`` raise ``CatalogOperationError``."""
        self._install_failures[package_id] = message

    def fail_uninstall(self, package_id: str, message: str) -> None:
        self._uninstall_failures[package_id] = message

    def installed_version(self, package_id: str) -> Optional[str]:
        with self._lock:
            return self._installed.get(package_id)

    def get_composite_catalog(self) -> "Future[CatalogHandle]":
        future: Future = Future()
        future.set_running_or_notify_cancel()
        future.set_result(CatalogHandle(name=COMPOSITE_CATALOG, sources=tuple(self._catalogs)))
        return future

    def find_packages(self, catalog: CatalogHandle, options: FindPackagesOptions) -> "Future[List[PackageMatch]]":
        return self._executor.submit(self._find, catalog, options)

    def install_package(
        self,
        package: PackageRecord,
        options: InstallOptions,
        progress_callback: ProgressCallback,
    ) -> "Future[InstallResult]":
        return self._executor.submit(self._install, package, options, progress_callback)

    def uninstall_package(self, package: PackageRecord, options: UninstallOptions) -> "Future[UninstallResult]":
        return self._executor.submit(self._uninstall, package, options)

    def _sources_for(self, catalog: CatalogHandle) -> Sequence[str]:
        if catalog.name == COMPOSITE_CATALOG:
            return catalog.sources
        return (catalog.name,)

    def _find(self, catalog: CatalogHandle, options: FindPackagesOptions) -> List[PackageMatch]:
        if self._latency:
            time.sleep(self._latency)
        matches: List[PackageMatch] = []
        for source in self._sources_for(catalog):
            for package in self._catalogs.get(source, []):
                if options.selectors and not any(_matches(package, s) for s in options.selectors):
                    continue
                if not all(_matches(package, f) for f in options.filters):
                    continue
                with self._lock:
                    installed = self._installed.get(package.id)
                matches.append(PackageMatch(package=replace(package, installed_version=installed)))
                if options.result_limit and len(matches) >= options.result_limit:
                    return matches
        if is_debug_enabled(logger):
            logger.debug(
                "In-memory search complete",
                extra=extra_context(
                    event="function_exit",
                    component="memory_gateway",
                    action="find_packages",
                    count=len(matches),
                ),
            )
        return matches

    def _install(
        self,
        package: PackageRecord,
        options: InstallOptions,
        progress_callback: ProgressCallback,
    ) -> InstallResult:
        logger.debug("Installing %s (scope=%s)", package.id, options.scope.value)
        progress_callback(InstallProgress(InstallProgressState.QUEUED))
        if package.id in self._install_failures:
            raise CatalogOperationError(self._install_failures[package.id])
        required = 1024 * 1024 * self._download_chunks
        step = required // self._download_chunks
        for chunk in range(1, self._download_chunks + 1):
            progress_callback(
                InstallProgress(
                    InstallProgressState.DOWNLOADING,
                    bytes_downloaded=step * chunk,
                    bytes_required=required,
                )
            )
        progress_callback(InstallProgress(InstallProgressState.INSTALLING))
        progress_callback(InstallProgress(InstallProgressState.POST_INSTALL))
        with self._lock:
            self._installed[package.id] = package.version or "unknown"
        progress_callback(InstallProgress(InstallProgressState.FINISHED))
        return InstallResult()

    def _uninstall(self, package: PackageRecord, options: UninstallOptions) -> UninstallResult:
        logger.debug("Uninstalling %s (scope=%s)", package.id, options.scope.value)
        if package.id in self._uninstall_failures:
            raise CatalogOperationError(self._uninstall_failures[package.id])
        with self._lock:
            if package.id not in self._installed:
                return UninstallResult(
                    status=OperationResultStatus.FAILED,
                    error=f"{package.name} is not installed",
                )
            del self._installed[package.id]
        return UninstallResult()
