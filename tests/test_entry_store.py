"""Tests for the entry catalog and combine."""

import pytest

from ptflreader.catalog.entry_store import EntryStore, sample_sort_key
from ptflreader.errors import CatalogError
from ptflreader.models import Sample, ScanEntry


def make_entry(label, sequence, samples):
    return ScanEntry(label=label, sequence=sequence, samples=samples)


@pytest.fixture
def filled_store():
    store = EntryStore()
    for entry in (
        make_entry("b.ptfl", 0, [(1.0, 2.0), (0.5, 1.0)]),
        make_entry("a.ptfl", 0, [(1.0, 1.0), (0.0, 3.0)]),
        make_entry("a.ptfl", 1, [(0.5, 0.5)]),
    ):
        store.insert(entry.key, entry)
    return store


class TestEntryStore:
    """Tests for lookup, ordering and matching."""

    def test_insertion_order(self, filled_store):
        keys = [key for key, _ in filled_store.iterate()]
        assert keys == [("b.ptfl", 0), ("a.ptfl", 0), ("a.ptfl", 1)]

    def test_overwrite_keeps_position(self, filled_store):
        replacement = make_entry("b.ptfl", 0, [(0.0, 9.0)])
        filled_store.insert(replacement.key, replacement)

        keys = [key for key, _ in filled_store.iterate()]
        assert keys[0] == ("b.ptfl", 0)
        assert filled_store.get(("b.ptfl", 0)).samples == [Sample(0.0, 9.0)]

    def test_get_and_contains(self, filled_store):
        assert filled_store.contains(("a.ptfl", 1))
        assert ("a.ptfl", 1) in filled_store
        assert filled_store.get(("a.ptfl", 7)) is None
        assert not filled_store.contains(("c.ptfl", 0))

    def test_match_wildcard(self, filled_store):
        assert [e.key for e in filled_store.match("a.ptfl")] == [("a.ptfl", 0), ("a.ptfl", 1)]
        assert len(filled_store.match("*.ptfl")) == 3
        assert filled_store.match("c*") == []


class TestCombine:
    """Tests for combine-and-sort."""

    def test_merged_and_sorted(self, filled_store):
        combined = filled_store.combine(("merged", 0), [("b.ptfl", 0), ("a.ptfl", 0), ("a.ptfl", 1)])

        assert combined.samples == [
            Sample(0.0, 3.0),
            Sample(0.5, 0.5),
            Sample(0.5, 1.0),
            Sample(1.0, 1.0),
            Sample(1.0, 2.0),
        ]
        assert filled_store.get(("merged", 0)) == combined

    def test_order_independent(self, filled_store):
        """Source order does not change the result."""
        forward = filled_store.combine(("m", 0), [("b.ptfl", 0), ("a.ptfl", 0)])
        backward = filled_store.combine(("m", 1), [("a.ptfl", 0), ("b.ptfl", 0)])
        assert forward.samples == backward.samples

    def test_existing_target_fails_without_mutation(self, filled_store):
        before = filled_store.iterate()

        with pytest.raises(CatalogError, match="already exists"):
            filled_store.combine(("a.ptfl", 0), [("b.ptfl", 0)])

        assert filled_store.iterate() == before

    def test_missing_source_names_key(self, filled_store):
        with pytest.raises(CatalogError, match="nope 3"):
            filled_store.combine(("m", 0), [("a.ptfl", 0), ("nope", 3)])
        assert not filled_store.contains(("m", 0))

    def test_empty_sources(self, filled_store):
        with pytest.raises(CatalogError):
            filled_store.combine(("m", 0), [])

    def test_sort_key_rejects_nan(self):
        with pytest.raises(CatalogError, match="NaN"):
            sample_sort_key((float("nan"), 1.0))
