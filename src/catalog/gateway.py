"""Catalog gateway interface consumed by search and operations.

The gateway owns catalog connections and the real search/install/uninstall
machinery. Every call returns a ``concurrent.futures.Future`` so callers can
wait on it, attach callbacks, or request a best-effort ``cancel()``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Callable, List

from .models import (
    CatalogHandle,
    FindPackagesOptions,
    InstallOptions,
    InstallProgress,
    InstallResult,
    PackageMatch,
    PackageRecord,
    UninstallOptions,
    UninstallResult,
)

ProgressCallback = Callable[[InstallProgress], None]


class CatalogGateway(ABC):
    """Abstract access to the package catalogs."""

    @abstractmethod
    def get_composite_catalog(self) -> "Future[CatalogHandle]":
        """Return a merged view over the predefined catalogs."""

    @abstractmethod
    def find_packages(
        self, catalog: CatalogHandle, options: FindPackagesOptions
    ) -> "Future[List[PackageMatch]]":
        """Search ``catalog``.

        Args:
            catalog: Handle from ``get_composite_catalog``.
            options: Selectors, filters and result limit.

        Returns:
            Future resolving to the matches, at most ``options.result_limit``.
        """

    @abstractmethod
    def install_package(
        self,
        package: PackageRecord,
        options: InstallOptions,
        progress_callback: ProgressCallback,
    ) -> "Future[InstallResult]":
        """Install ``package``; ``progress_callback`` may fire on any thread."""

    @abstractmethod
    def uninstall_package(
        self, package: PackageRecord, options: UninstallOptions
    ) -> "Future[UninstallResult]":
        """Uninstall ``package``."""


class CatalogOperationError(Exception):
    """Raised by a gateway when a remote operation fails."""
