"""Data models shared between the catalog gateway and its consumers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from constants import InstallScopes


class PackageMatchField(Enum):
    """Package fields a match filter can target."""
    CATALOG_DEFAULT = "catalog_default"
    ID = "id"
    NAME = "name"
    TAG = "tag"


class PackageFieldMatchOption(Enum):
    """How a filter value is compared against a field."""
    EQUALS = "equals"
    EQUALS_CASE_INSENSITIVE = "equals_case_insensitive"
    CONTAINS_CASE_INSENSITIVE = "contains_case_insensitive"


@dataclass(frozen=True)
class Query:
    """Input of one search attempt."""
    text: str
    tag: Optional[str] = None


@dataclass(eq=False)
class PackageRecord:
    """A package as reported by a catalog.

    Identity is the ``id`` alone: two records with the same id compare equal
    and hash the same regardless of the other fields.
    """
    id: str
    name: str
    installed_version: Optional[str] = None
    version: Optional[str] = None
    catalog_name: Optional[str] = None
    tags: Tuple[str, ...] = ()

    @property
    def is_installed(self) -> bool:
        return self.installed_version is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageRecord):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(frozen=True)
class PackageMatch:
    """One hit returned by ``find_packages``."""
    package: PackageRecord


@dataclass(frozen=True)
class PackageMatchFilter:
    """A field/value predicate used to query a catalog."""
    field: PackageMatchField
    value: str
    option: PackageFieldMatchOption = PackageFieldMatchOption.CONTAINS_CASE_INSENSITIVE


@dataclass
class FindPackagesOptions:
    """Selectors are OR-ed together; filters must all match."""
    selectors: List[PackageMatchFilter] = field(default_factory=list)
    filters: List[PackageMatchFilter] = field(default_factory=list)
    result_limit: int = 0


@dataclass(frozen=True)
class CatalogHandle:
    """Opaque handle to a (possibly composite) catalog."""
    name: str
    sources: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InstallOptions:
    scope: InstallScopes = InstallScopes.ANY


@dataclass(frozen=True)
class UninstallOptions:
    scope: InstallScopes = InstallScopes.ANY


class InstallProgressState(Enum):
    """Progress phases reported by the gateway during an install."""
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    INSTALLING = "installing"
    POST_INSTALL = "post_install"
    FINISHED = "finished"


@dataclass(frozen=True)
class InstallProgress:
    state: InstallProgressState
    bytes_downloaded: int = 0
    bytes_required: int = 0


class OperationResultStatus(Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallResult:
    status: OperationResultStatus = OperationResultStatus.OK
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is OperationResultStatus.OK


@dataclass(frozen=True)
class UninstallResult:
    status: OperationResultStatus = OperationResultStatus.OK
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is OperationResultStatus.OK
