"""Id-keyed result set used to merge catalog matches."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Union

from .models import PackageMatch, PackageRecord


class ResultSet:
    """Set of package records deduplicated by ``PackageRecord.id``.

    The first record seen for an id is kept; later records with the same id
    are ignored whatever their other fields say. Iteration follows insertion
    order, but callers must not rely on any particular order.
    """

    def __init__(self, records: Iterable[PackageRecord] = ()):
        self._records: Dict[str, PackageRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: PackageRecord) -> bool:
        """Add ``record``; return False when its id was already present."""
        if record.id in self._records:
            return False
        self._records[record.id] = record
        return True

    def merge(self, matches: Iterable[PackageMatch]) -> int:
        """Add the package of each match and return how many were new."""
        return sum(1 for match in matches if self.add(match.package))

    def snapshot(self) -> "ResultSet":
        return ResultSet(self._records.values())

    def ids(self):
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PackageRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, item: Union[str, PackageRecord]) -> bool:
        key = item.id if isinstance(item, PackageRecord) else item
        return key in self._records

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"ResultSet({self.ids()!r})"
