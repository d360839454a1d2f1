"""
Variant Normalizer Module
=========================

Expands one ExtractionResult into the color x weight cross product of
CanonicalRows ready for the catalog writer.
"""

from __future__ import annotations

import logging

from lure_catalog.core.schema import CanonicalRow, ColorVariant, ExtractionResult

logger = logging.getLogger(__name__)

PLACEHOLDER_COLOR = "スタンダード"


class VariantExpander:
    """
    Turns an ExtractionResult into the full list of CanonicalRows.

    Handles:
    - Products without colors (one placeholder color using the main image)
    - Products without weights (one row per color with a null weight)
    - Per-color applicable weight subsets
    - Duplicate color names (first occurrence wins)
    """

    def __init__(self, placeholder_color: str = PLACEHOLDER_COLOR) -> None:
        self.placeholder_color = placeholder_color

    def dedupe_colors(self, colors: list[ColorVariant]) -> list[ColorVariant]:
        """Keep the first color for each exact name, preserving order."""
        seen: set[str] = set()
        result = []
        for color in colors:
            if color.name in seen:
                logger.debug(f"Dropping duplicate color '{color.name}'")
                continue
            seen.add(color.name)
            result.append(color)
        return result

    def effective_colors(self, result: ExtractionResult) -> list[ColorVariant]:
        """
        Colors to expand over.

        Returns the deduplicated adapter colors, or a single placeholder
        color carrying the main image when the adapter found none.
        """
        if not result.colors:
            return [ColorVariant(name=self.placeholder_color, image_url=result.main_image)]
        return self.dedupe_colors(result.colors)

    @staticmethod
    def weights_for(color: ColorVariant, weights: list[float | None]) -> list[float | None]:
        """
        Weights that apply to a color.

        A color's declared subset filters the product weights; a null
        weight always passes. If the subset matches nothing, every product
        weight is used so the color is never dropped.
        """
        if not color.weights:
            return weights
        allowed = set(color.weights)
        filtered = [w for w in weights if w is None or w in allowed]
        return filtered or weights

    def expand(
        self,
        result: ExtractionResult,
        image_urls: dict[str, str] | None = None,
        main_image_url: str | None = None,
        manufacturer: str | None = None,
    ) -> list[CanonicalRow]:
        """
        Expand an extraction result into canonical rows.

        Args:
            result: Validated adapter output
            image_urls: Relocated image URL per color name
            main_image_url: Relocated main image, used for colors whose
                own image was not relocated
            manufacturer: Display name stored on every row (default: the
                source identifier)

        Returns:
            Rows ordered by color, then weight, in adapter order
        """
        image_urls = image_urls or {}
        manufacturer = manufacturer or result.source
        colors = self.effective_colors(result)
        weights: list[float | None] = list(result.weights) or [None]

        if main_image_url is None and not result.colors:
            main_image_url = image_urls.get(self.placeholder_color)

        rows = []
        for color in colors:
            image_url = image_urls.get(color.name) or main_image_url
            for weight in self.weights_for(color, weights):
                rows.append(
                    CanonicalRow(
                        source=result.source,
                        manufacturer=manufacturer,
                        slug=result.slug,
                        color_name=color.name,
                        weight=weight,
                        name=result.name,
                        name_kana=result.name_kana or result.name,
                        lure_type=result.lure_type,
                        target_fish=list(result.target_fish),
                        description=result.description,
                        price=result.price,
                        length=result.length,
                        source_url=result.source_url,
                        image_url=image_url,
                    )
                )
        return rows
