"""
Store interfaces and their SQLAlchemy repositories.

The pipeline talks to two external stores through small interfaces:

- TaskQueueStore: pending work items and their status
- CatalogStore: existence check and insert, keyed by the dedup key

The repositories below implement both on top of SQLAlchemy. Each write
commits immediately so that item status and inserted rows survive a crash
mid-batch.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lure_catalog.core.enums import WorkItemStatus
from lure_catalog.core.errors import RowInsertError, StoreConnectivityError
from lure_catalog.core.schema import CanonicalRow, WorkItem
from lure_catalog.db.models import CatalogRowDB, WorkItemDB


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


# ============================================================================
# Interfaces
# ============================================================================


class TaskQueueStore(ABC):
    """Task queue consumed by the pipeline."""

    @abstractmethod
    def list_pending(self) -> list[WorkItem]:
        """Return pending work items in queue order."""
        pass

    @abstractmethod
    def set_status(
        self,
        item_id: str,
        status: WorkItemStatus,
        note: str | None = None,
    ) -> None:
        """Set an item's status, and its note when one is given."""
        pass


class CatalogStore(ABC):
    """Catalog store consumed by the pipeline."""

    @abstractmethod
    def exists(
        self,
        source: str,
        slug: str,
        color_name: str,
        weight: float | None,
    ) -> bool:
        """Check whether a row with this dedup key is already stored."""
        pass

    @abstractmethod
    def insert(self, row: CanonicalRow) -> None:
        """
        Insert a single row.

        Raises:
            RowInsertError: the row was rejected (constraint, bad data)
            StoreConnectivityError: the store could not be reached
        """
        pass


# ============================================================================
# Task queue
# ============================================================================


class WorkItemRepository(TaskQueueStore):
    """Repository for work item queue operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, url: str, source: str, name: str = "") -> WorkItem:
        """Append a new pending work item to the queue."""
        next_seq = (self.session.execute(select(func.max(WorkItemDB.seq))).scalar() or 0) + 1
        item = WorkItem(url=url, source=source, name=name)
        db_item = WorkItemDB(
            id=item.id,
            url=item.url,
            name=item.name,
            source=item.source,
            status=item.status.value,
            note=item.note,
            seq=next_seq,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
        self.session.add(db_item)
        self._commit()
        return self._to_domain(db_item)

    def get_by_id(self, item_id: str) -> WorkItem | None:
        """Get a work item by ID."""
        stmt = select(WorkItemDB).where(WorkItemDB.id == item_id)
        db_item = self._execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def list_pending(self) -> list[WorkItem]:
        """Return pending work items in insertion order."""
        return self.list_by_status(WorkItemStatus.PENDING)

    def list_by_status(
        self,
        status: WorkItemStatus | None = None,
        limit: int | None = None,
    ) -> list[WorkItem]:
        """List work items, optionally filtered by status."""
        stmt = select(WorkItemDB).order_by(WorkItemDB.seq, WorkItemDB.created_at)
        if status is not None:
            stmt = stmt.where(WorkItemDB.status == status.value)
        if limit:
            stmt = stmt.limit(limit)
        result = self._execute(stmt).scalars().all()
        return [self._to_domain(i) for i in result]

    def set_status(
        self,
        item_id: str,
        status: WorkItemStatus,
        note: str | None = None,
    ) -> None:
        """Update an item's status (and note, if given)."""
        values: dict = {"status": status.value, "updated_at": _utc_now()}
        if note is not None:
            values["note"] = note
        stmt = update(WorkItemDB).where(WorkItemDB.id == item_id).values(**values)
        result = self._execute(stmt)
        if result.rowcount == 0:
            self.session.rollback()
            raise ValueError(f"Work item with id {item_id} not found")
        self._commit()

    def reset(
        self,
        statuses: Iterable[WorkItemStatus] = (WorkItemStatus.ERROR,),
        item_ids: Iterable[str] | None = None,
        older_than: timedelta | None = None,
    ) -> int:
        """
        Put items back to pending so a later run picks them up again.

        This is an operator action; the pipeline never calls it.

        Args:
            statuses: Only reset items currently in one of these statuses
            item_ids: Only reset these items
            older_than: Only reset items not updated within this window
                (use with IN_PROGRESS to recover items left by a crash)

        Returns:
            Number of items reset
        """
        stmt = update(WorkItemDB).where(
            WorkItemDB.status.in_([s.value for s in statuses])
        )
        if item_ids is not None:
            stmt = stmt.where(WorkItemDB.id.in_(list(item_ids)))
        if older_than is not None:
            # SQLite stores naive datetimes
            cutoff = (_utc_now() - older_than).replace(tzinfo=None)
            stmt = stmt.where(WorkItemDB.updated_at < cutoff)
        stmt = stmt.values(
            status=WorkItemStatus.PENDING.value,
            note="",
            updated_at=_utc_now(),
        )
        result = self._execute(stmt)
        self._commit()
        return result.rowcount

    def count_by_status(self) -> dict[str, int]:
        """Get item counts grouped by status."""
        stmt = select(WorkItemDB.status, func.count()).group_by(WorkItemDB.status)
        return {status: count for status, count in self._execute(stmt).all()}

    def _execute(self, stmt):
        try:
            return self.session.execute(stmt)
        except DBAPIError as e:
            self.session.rollback()
            raise StoreConnectivityError(f"Task queue unavailable: {e}") from e

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreConnectivityError(f"Task queue commit failed: {e}") from e

    def _to_domain(self, db_item: WorkItemDB) -> WorkItem:
        return WorkItem(
            id=db_item.id,
            url=db_item.url or "",
            name=db_item.name or "",
            source=db_item.source,
            status=WorkItemStatus(db_item.status),
            note=db_item.note or "",
            created_at=db_item.created_at,
            updated_at=db_item.updated_at,
        )


# ============================================================================
# Catalog
# ============================================================================


class CatalogRepository(CatalogStore):
    """Repository for catalog row operations."""

    def __init__(self, session: Session):
        self.session = session

    def exists(
        self,
        source: str,
        slug: str,
        color_name: str,
        weight: float | None,
    ) -> bool:
        """Check whether a row with the given dedup key exists."""
        stmt = select(CatalogRowDB.id).where(
            CatalogRowDB.source == source,
            CatalogRowDB.slug == slug,
            CatalogRowDB.color_name == color_name,
        )
        if weight is None:
            stmt = stmt.where(CatalogRowDB.weight.is_(None))
        else:
            stmt = stmt.where(CatalogRowDB.weight == weight)
        try:
            return self.session.execute(stmt.limit(1)).first() is not None
        except DBAPIError as e:
            self.session.rollback()
            raise StoreConnectivityError(f"Catalog store unavailable: {e}") from e

    def insert(self, row: CanonicalRow) -> None:
        """Insert a catalog row and commit."""
        db_item = CatalogRowDB(
            source=row.source,
            manufacturer=row.manufacturer,
            slug=row.slug,
            color_name=row.color_name,
            weight=row.weight,
            name=row.name,
            name_kana=row.name_kana,
            lure_type=row.lure_type,
            target_fish_json=json.dumps(row.target_fish, ensure_ascii=False),
            description=row.description,
            price=row.price,
            length=row.length,
            source_url=row.source_url,
            image_url=row.image_url,
            is_limited=row.is_limited,
            is_discontinued=row.is_discontinued,
        )
        try:
            self.session.add(db_item)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise RowInsertError(f"Row rejected for {row.dedup_key}: {e.orig}") from e
        except DBAPIError as e:
            self.session.rollback()
            raise StoreConnectivityError(f"Catalog store unavailable: {e}") from e

    def list_rows(self, source: str | None = None, slug: str | None = None) -> list[CanonicalRow]:
        """List stored rows, optionally filtered by source and slug."""
        stmt = select(CatalogRowDB).order_by(CatalogRowDB.created_at)
        if source is not None:
            stmt = stmt.where(CatalogRowDB.source == source)
        if slug is not None:
            stmt = stmt.where(CatalogRowDB.slug == slug)
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(r) for r in result]

    def count(self, source: str | None = None) -> int:
        """Get total count of catalog rows."""
        stmt = select(func.count()).select_from(CatalogRowDB)
        if source is not None:
            stmt = stmt.where(CatalogRowDB.source == source)
        return self.session.execute(stmt).scalar() or 0

    def _to_domain(self, db_item: CatalogRowDB) -> CanonicalRow:
        return CanonicalRow(
            source=db_item.source,
            manufacturer=db_item.manufacturer or "",
            slug=db_item.slug,
            color_name=db_item.color_name,
            weight=db_item.weight,
            name=db_item.name,
            name_kana=db_item.name_kana,
            lure_type=db_item.lure_type or "",
            target_fish=json.loads(db_item.target_fish_json or "[]"),
            description=db_item.description or "",
            price=db_item.price or 0,
            length=db_item.length,
            source_url=db_item.source_url or "",
            image_url=db_item.image_url,
            is_limited=db_item.is_limited,
            is_discontinued=db_item.is_discontinued,
        )
