"""SQLAlchemy ORM models for the lure catalog database."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class WorkItemDB(Base):
    """
    Database model for task queue work items.

    One row per product page URL waiting to be (or already) ingested.
    """

    __tablename__ = "work_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    url: Mapped[str] = mapped_column(String(1000), default="")
    name: Mapped[str] = mapped_column(String(255), default="")
    source: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    note: Mapped[str] = mapped_column(Text, default="")
    # Insertion order; the queue is read in this order
    seq: Mapped[int] = mapped_column(Integer, default=0, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<WorkItemDB(id={self.id}, source='{self.source}', status='{self.status}')>"


class CatalogRowDB(Base):
    """
    Database model for catalog rows.

    One row per (source, slug, color, weight) variant with the product
    attributes denormalized onto it.
    """

    __tablename__ = "catalog_rows"
    __table_args__ = (
        UniqueConstraint("source", "slug", "color_name", "weight", name="uq_catalog_rows_variant"),
        # NULLs are distinct under the constraint above, so weightless rows
        # need their own partial index
        Index(
            "uq_catalog_rows_variant_no_weight",
            "source",
            "slug",
            "color_name",
            unique=True,
            sqlite_where=text("weight IS NULL"),
            postgresql_where=text("weight IS NULL"),
        ),
        Index("ix_catalog_rows_source_slug", "source", "slug"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    source: Mapped[str] = mapped_column(String(100), nullable=False)
    manufacturer: Mapped[str] = mapped_column(String(255), default="")
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    color_name: Mapped[str] = mapped_column(String(255), nullable=False)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_kana: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lure_type: Mapped[str] = mapped_column(String(100), default="", index=True)
    target_fish_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    description: Mapped[str] = mapped_column(Text, default="")
    price: Mapped[int] = mapped_column(Integer, default=0)
    length: Mapped[float | None] = mapped_column(Float, nullable=True)
    source_url: Mapped[str] = mapped_column(String(1000), default="")
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_limited: Mapped[bool] = mapped_column(Boolean, default=False)
    is_discontinued: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return (
            f"<CatalogRowDB(slug='{self.slug}', color='{self.color_name}', "
            f"weight={self.weight})>"
        )
