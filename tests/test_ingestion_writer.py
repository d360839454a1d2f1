"""Tests for the catalog writer."""

import pytest

from lure_catalog.core.errors import RowInsertError, StoreConnectivityError
from lure_catalog.core.schema import CanonicalRow
from lure_catalog.db.repositories import CatalogStore
from lure_catalog.ingestion.writer import CatalogWriter


class MemoryCatalog(CatalogStore):
    """In-memory catalog store with optional rejected keys."""

    def __init__(self, reject=None, offline: bool = False) -> None:
        self.rows: dict[tuple, CanonicalRow] = {}
        self.reject = set(reject or [])
        self.offline = offline

    def exists(self, source, slug, color_name, weight) -> bool:
        if self.offline:
            raise StoreConnectivityError("catalog offline")
        return (source, slug, color_name, weight) in self.rows

    def insert(self, row: CanonicalRow) -> None:
        if row.dedup_key in self.reject:
            raise RowInsertError(f"rejected {row.dedup_key}")
        self.rows[row.dedup_key] = row


def make_row(color: str, weight: float | None = 14.0) -> CanonicalRow:
    return CanonicalRow(
        source="megabass",
        slug="vision-110",
        color_name=color,
        weight=weight,
        name="Vision 110",
        source_url="https://example.com/vision-110",
    )


class TestCatalogWriter:
    """Tests for CatalogWriter."""

    def test_inserts_new_rows(self) -> None:
        store = MemoryCatalog()
        stats = CatalogWriter(store).write([make_row("A"), make_row("B"), make_row("A", None)])

        assert stats.attempted == 3
        assert stats.inserted == 3
        assert stats.skipped == 0
        assert len(store.rows) == 3

    def test_skips_existing_rows(self) -> None:
        """Test re-writing the same rows inserts nothing."""
        store = MemoryCatalog()
        writer = CatalogWriter(store)
        rows = [make_row("A"), make_row("B")]
        writer.write(rows)

        stats = writer.write(rows)

        assert stats.inserted == 0
        assert stats.skipped == 2
        assert len(store.rows) == 2

    def test_rejected_row_does_not_stop_batch(self) -> None:
        store = MemoryCatalog(reject=[make_row("B").dedup_key])

        stats = CatalogWriter(store).write([make_row("A"), make_row("B"), make_row("C")])

        assert stats.inserted == 2
        assert stats.failed == 1
        assert len(stats.errors) == 1
        assert "megabass/vision-110 / B / 14g" in stats.errors[0]
        assert not stats.all_failed

    def test_all_failed(self) -> None:
        rows = [make_row("A"), make_row("B")]
        store = MemoryCatalog(reject=[r.dedup_key for r in rows])

        stats = CatalogWriter(store).write(rows)

        assert stats.all_failed

    def test_empty_batch_is_not_all_failed(self) -> None:
        assert not CatalogWriter(MemoryCatalog()).write([]).all_failed

    def test_connectivity_error_propagates(self) -> None:
        with pytest.raises(StoreConnectivityError):
            CatalogWriter(MemoryCatalog(offline=True)).write([make_row("A")])
