"""Tests for the id-keyed ResultSet."""

from catalog.dedup import ResultSet
from catalog.models import PackageMatch, PackageRecord


def _match(pkg_id, name=None, **kwargs):
    return PackageMatch(package=PackageRecord(id=pkg_id, name=name or pkg_id, **kwargs))


class TestPackageRecordIdentity:
    """Equality and hashing follow the id only."""

    def test_same_id_different_fields_are_equal(self):
        a = PackageRecord(id="7zip.7zip", name="7-Zip", version="23.01", catalog_name="community")
        b = PackageRecord(id="7zip.7zip", name="7zip", installed_version="22.00", catalog_name="store")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_different_ids_are_not_equal(self):
        assert PackageRecord(id="a", name="same") != PackageRecord(id="b", name="same")


class TestResultSet:
    """Merging matches into a ResultSet."""

    def test_duplicate_ids_collapse_to_one_record(self):
        results = ResultSet()
        added = results.merge([
            _match("7zip.7zip", "7-Zip", catalog_name="community"),
            _match("7zip.7zip", "7-Zip (store)", catalog_name="store"),
        ])
        assert added == 1
        assert len(results) == 1
        assert "7zip.7zip" in results

    def test_first_record_wins(self):
        results = ResultSet()
        results.add(PackageRecord(id="x", name="first"))
        assert results.add(PackageRecord(id="x", name="second")) is False
        assert [r.name for r in results] == ["first"]

    def test_snapshot_is_independent(self):
        results = ResultSet([PackageRecord(id="a", name="A")])
        snap = results.snapshot()
        results.add(PackageRecord(id="b", name="B"))
        assert len(snap) == 1
        assert len(results) == 2

    def test_contains_by_record_and_empty_truthiness(self):
        results = ResultSet()
        assert not results
        results.add(PackageRecord(id="a", name="A"))
        assert PackageRecord(id="a", name="other") in results
        assert results
