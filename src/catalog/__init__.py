"""Catalog access package.

- models.py: package records, match filters, install/uninstall options and results
- gateway.py: the CatalogGateway interface the core consumes
- memory.py: in-memory gateway over predefined catalogs
- context.py: CatalogContext passed to search and operations
- dedup.py: id-keyed ResultSet
"""

from .context import CatalogContext
from .dedup import ResultSet
from .gateway import CatalogGateway, CatalogOperationError
from .memory import InMemoryCatalogGateway
from .models import PackageMatch, PackageRecord, Query

__all__ = [
    "CatalogContext",
    "CatalogGateway",
    "CatalogOperationError",
    "InMemoryCatalogGateway",
    "PackageMatch",
    "PackageRecord",
    "Query",
    "ResultSet",
]
