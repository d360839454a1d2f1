"""Tests for lure catalog Pydantic models."""

import pytest
from pydantic import ValidationError

from lure_catalog.core.enums import WorkItemStatus
from lure_catalog.core.errors import AdapterError, UnknownSourceError
from lure_catalog.core.schema import CanonicalRow, ColorVariant, ExtractionResult, WorkItem


def make_result(**overrides) -> ExtractionResult:
    data = {
        "name": "Vision 110",
        "slug": "vision-110",
        "source": "megabass",
        "source_url": "https://example.com/vision-110",
    }
    data.update(overrides)
    return ExtractionResult(**data)


class TestWorkItem:
    """Tests for WorkItem."""

    def test_defaults(self) -> None:
        """Test a new item is pending with a generated id."""
        item = WorkItem(url="https://example.com/a", source="fixture")
        assert item.status == WorkItemStatus.PENDING
        assert item.note == ""
        assert item.id

    def test_strips_strings(self) -> None:
        """Test URL, name and source are trimmed."""
        item = WorkItem(url="  https://example.com/a ", name=" Vision ", source=" fixture ")
        assert item.url == "https://example.com/a"
        assert item.name == "Vision"
        assert item.source == "fixture"

    def test_terminal_statuses(self) -> None:
        """Test which statuses end an item's lifecycle."""
        assert WorkItemStatus.DONE.is_terminal
        assert WorkItemStatus.ERROR.is_terminal
        assert not WorkItemStatus.PENDING.is_terminal
        assert not WorkItemStatus.IN_PROGRESS.is_terminal


class TestColorVariant:
    """Tests for ColorVariant."""

    def test_name_is_trimmed(self) -> None:
        color = ColorVariant(name="  GG Wakasagi  ")
        assert color.name == "GG Wakasagi"

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ColorVariant(name="   ")

    def test_empty_image_becomes_none(self) -> None:
        color = ColorVariant(name="Chart", image_url="  ")
        assert color.image_url is None

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ColorVariant(name="Chart", sku="123")


class TestExtractionResult:
    """Tests for ExtractionResult."""

    def test_minimal(self) -> None:
        """Test required fields only."""
        result = make_result()
        assert result.colors == []
        assert result.weights == []
        assert result.price == 0
        assert result.main_image is None

    @pytest.mark.parametrize("field", ["name", "slug", "source", "source_url"])
    def test_required_fields_not_empty(self, field: str) -> None:
        """Test required string fields reject blanks."""
        with pytest.raises(ValidationError):
            make_result(**{field: "  "})

    def test_closed_shape(self) -> None:
        """Test source-specific fields cannot be added."""
        with pytest.raises(ValidationError):
            make_result(maker_specific="x")

    def test_negative_price_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_result(price=-1)

    def test_target_fish_deduplicated_in_order(self) -> None:
        result = make_result(target_fish=["シーバス", " ブラックバス", "シーバス", ""])
        assert result.target_fish == ["シーバス", "ブラックバス"]

    def test_weights_deduplicated_in_order(self) -> None:
        result = make_result(weights=[18.0, 14.0, 18.0])
        assert result.weights == [18.0, 14.0]

    def test_empty_optional_strings_become_none(self) -> None:
        result = make_result(name_kana="", main_image=" ")
        assert result.name_kana is None
        assert result.main_image is None


class TestCanonicalRow:
    """Tests for CanonicalRow."""

    def test_dedup_key(self) -> None:
        row = CanonicalRow(
            source="megabass",
            slug="vision-110",
            color_name="Matt Tiger",
            weight=14.0,
            name="Vision 110",
            source_url="https://example.com/vision-110",
        )
        assert row.dedup_key == ("megabass", "vision-110", "Matt Tiger", 14.0)
        assert row.is_limited is False
        assert row.is_discontinued is False

    def test_null_weight_key(self) -> None:
        row = CanonicalRow(
            source="s",
            slug="x",
            color_name="c",
            name="X",
            source_url="https://example.com/x",
        )
        assert row.dedup_key == ("s", "x", "c", None)


class TestErrors:
    """Tests for the error taxonomy."""

    def test_unknown_source_is_adapter_error(self) -> None:
        error = UnknownSourceError("mystery", ["fixture", "example-tackle"])
        assert isinstance(error, AdapterError)
        assert error.source == "mystery"
        assert "mystery" in str(error)
        assert "example-tackle, fixture" in str(error)
