"""Canonical Pydantic v2 models for lure catalog ingestion."""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lure_catalog.core.enums import WorkItemStatus


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _strip(value: Any) -> Any:
    """Trim a string value, passing anything else through."""
    if isinstance(value, str):
        return value.strip()
    return value


def _unique(values: list[Any]) -> list[Any]:
    """Drop repeated values, keeping the first occurrence and its position."""
    seen: set[Any] = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


class WorkItem(BaseModel):
    """
    A pending scrape task from the task queue.

    Points at one external product page. Only the status state machine
    changes `status` and `note`.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    url: str = ""
    name: str = ""
    source: str
    status: WorkItemStatus = WorkItemStatus.PENDING
    note: str = ""
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("url", "name", "source", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        return _strip(v)


class ColorVariant(BaseModel):
    """A single color of a product, with its pre-relocation image."""

    model_config = ConfigDict(extra="forbid")

    name: str
    image_url: str | None = None
    # Applicable weights for this color; empty means every product weight
    weights: list[float] = Field(default_factory=list)

    @field_validator("name", "image_url", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("color name cannot be empty")
        return v

    @field_validator("image_url")
    @classmethod
    def empty_image_is_none(cls, v: str | None) -> str | None:
        return v or None


class ExtractionResult(BaseModel):
    """
    Canonical output of an extraction adapter.

    Every adapter fills this same closed shape; unknown fields are
    rejected so source-specific data cannot leak past the adapter.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    name_kana: str | None = None
    slug: str
    source: str
    lure_type: str = ""
    target_fish: list[str] = Field(default_factory=list)
    description: str = ""
    price: int = 0  # smallest currency unit, tax included
    colors: list[ColorVariant] = Field(default_factory=list)
    weights: list[float] = Field(default_factory=list)  # grams
    length: float | None = None  # millimeters
    main_image: str | None = None
    source_url: str

    @field_validator(
        "name", "name_kana", "slug", "source", "lure_type",
        "description", "main_image", "source_url",
        mode="before",
    )
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("name", "slug", "source", "source_url")
    @classmethod
    def required_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("name_kana", "main_image")
    @classmethod
    def empty_is_none(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("target_fish")
    @classmethod
    def clean_target_fish(cls, v: list[str]) -> list[str]:
        return _unique([s.strip() for s in v if s and s.strip()])

    @field_validator("weights")
    @classmethod
    def unique_weights(cls, v: list[float]) -> list[float]:
        return _unique(v)

    @field_validator("price")
    @classmethod
    def price_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"price cannot be negative: {v}")
        return v


class CanonicalRow(BaseModel):
    """
    One (color, weight) variant ready for insertion into the catalog.

    The unit of deduplication: (source, slug, color_name, weight) may be
    written at most once.
    """

    source: str
    manufacturer: str = ""  # display name of the source
    slug: str
    color_name: str
    weight: float | None = None

    name: str
    name_kana: str | None = None
    lure_type: str = ""
    target_fish: list[str] = Field(default_factory=list)
    description: str = ""
    price: int = 0
    length: float | None = None
    source_url: str
    image_url: str | None = None
    is_limited: bool = False
    is_discontinued: bool = False

    @property
    def dedup_key(self) -> tuple[str, str, str, float | None]:
        """Uniqueness key in the catalog store."""
        return (self.source, self.slug, self.color_name, self.weight)
