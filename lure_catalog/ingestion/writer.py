"""
Catalog Writer Module
=====================

Persists only the CanonicalRows that are not already in the catalog.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from lure_catalog.core.errors import RowInsertError
from lure_catalog.core.schema import CanonicalRow
from lure_catalog.db.repositories import CatalogStore

logger = logging.getLogger(__name__)


@dataclass
class WriteStats:
    """Row counts for one item's write."""

    attempted: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """True when rows were attempted and every one of them failed."""
        return self.attempted > 0 and self.failed == self.attempted


class CatalogWriter:
    """Check-then-insert writer keyed by (source, slug, color_name, weight)."""

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def write(self, rows: Iterable[CanonicalRow]) -> WriteStats:
        """
        Insert rows that do not exist yet.

        A rejected row is recorded and the remaining rows are still
        written. StoreConnectivityError is not caught.

        Args:
            rows: Rows for a single work item

        Returns:
            WriteStats for the batch
        """
        stats = WriteStats()
        for row in rows:
            stats.attempted += 1
            label = _describe(row)

            if self.store.exists(*row.dedup_key):
                stats.skipped += 1
                logger.info(f"Skipping existing: {label}")
                continue

            try:
                self.store.insert(row)
            except RowInsertError as e:
                stats.failed += 1
                stats.errors.append(f"{label}: {e}")
                logger.error(f"Failed to insert row {label}: {e}")
                continue

            stats.inserted += 1
            logger.debug(f"Inserted: {label}")

        return stats


def _describe(row: CanonicalRow) -> str:
    weight = f"{row.weight:g}g" if row.weight is not None else "N/A"
    return f"{row.source}/{row.slug} / {row.color_name} / {weight}"
