"""Incremental catalog search."""

from .coordinator import ListItem, ListSurface, SearchCoordinator, build_find_options

__all__ = ["ListItem", "ListSurface", "SearchCoordinator", "build_find_options"]
