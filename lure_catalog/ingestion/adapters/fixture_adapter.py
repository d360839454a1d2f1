"""
Fixture Adapter Module
======================

Offline adapter for pipeline validation without network access.
Serves synthetic lure records keyed by the last path segment of the URL,
e.g. https://fixture.lure-catalog.local/products/vision-110.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError

from lure_catalog.core.errors import AdapterError
from lure_catalog.core.schema import ColorVariant, ExtractionResult
from lure_catalog.ingestion.adapters.base import BaseAdapter
from lure_catalog.ingestion.fetcher import PageFetcher

IMAGE_BASE = "https://fixture.lure-catalog.local/images"

# Synthetic products covering the expansion cases: full cross product,
# no colors, no weights, per-color weight subsets and duplicate colors.
FIXTURE_LURES: dict[str, dict[str, Any]] = {
    "vision-110": {
        "name": "Vision 110",
        "name_kana": "ビジョン ワンテン",
        "lure_type": "ミノー",
        "target_fish": ["ブラックバス", "シーバス"],
        "description": "Suspending jerkbait with a long-cast weight transfer system.",
        "price": "¥2,200",
        "colors": [
            {"name": "GG Wakasagi", "image": "vision-110/wakasagi.jpg"},
            {"name": "Matt Tiger", "image": "vision-110/matt-tiger.jpg"},
            {"name": "Pearl Ayu", "image": "vision-110/pearl-ayu.jpg"},
        ],
        "weights": "14.0g / 18.0g",
        "length": "110mm",
        "main_image": "vision-110/main.jpg",
    },
    "pop-x": {
        "name": "Pop-X",
        "name_kana": "ポップエックス",
        "lure_type": "ポッパー",
        "target_fish": ["ブラックバス"],
        "description": "Compact popper with a water-channel body.",
        "price": "¥1,900(税別)",
        "tax_excluded": True,
        "colors": [
            {"name": "Ghost Minnow", "image": "pop-x/ghost-minnow.jpg"},
            {"name": "Ghost Minnow", "image": "pop-x/ghost-minnow-alt.jpg"},
            {"name": "Black", "image": None},
        ],
        "weights": "1/4oz",
        "length": "64mm",
        "main_image": "pop-x/main.jpg",
    },
    "jighead-basic": {
        "name": "Jighead Basic",
        "lure_type": "ジグヘッド",
        "target_fish": ["アジ", "メバル"],
        "description": "Round jighead for light game.",
        "price": 330,
        "colors": [],
        "weights": "0.8g 1.0g 1.5g",
        "length": None,
        "main_image": "jighead-basic/main.jpg",
    },
    "slow-blatt": {
        "name": "Slow Blatt Oval",
        "lure_type": "メタルジグ",
        "target_fish": ["青物", "根魚"],
        "description": "Slow-fall jig. Heavier sizes come in glow colors only.",
        "price": "¥1,400",
        "colors": [
            {"name": "Blue Pink", "image": "slow-blatt/blue-pink.jpg", "weights": [20.0, 30.0]},
            {"name": "Zebra Glow", "image": "slow-blatt/zebra-glow.jpg", "weights": [60.0, 80.0]},
            {"name": "Silver", "image": "slow-blatt/silver.jpg"},
        ],
        "weights": "20g 30g 60g 80g",
        "length": "3.5inch",
        "main_image": "slow-blatt/main.jpg",
    },
    "soft-craw": {
        "name": "Soft Craw",
        "lure_type": "ワーム",
        "target_fish": ["ブラックバス"],
        "description": "",
        "price": "",
        "colors": [
            {"name": "Green Pumpkin", "image": "soft-craw/green-pumpkin.jpg"},
            {"name": "Watermelon", "image": "soft-craw/watermelon.jpg"},
        ],
        "weights": "",
        "length": "3inch",
        "main_image": None,
    },
}


class FixtureAdapter(BaseAdapter):
    """
    Fixture adapter that returns synthetic lure data.

    Useful for:
    - Testing the full ingestion pipeline without network access
    - Demonstrating the system to users
    """

    ADAPTER_NAME = "fixture"
    ADAPTER_VERSION = "1.0.0"

    BASE_URL = "https://fixture.lure-catalog.local/products"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        super().__init__(config, fetcher)
        self._lures = dict(FIXTURE_LURES)
        self.source = self.config.get("source", "fixture")

        # Allow custom fixture data via config
        if "fixture_lures" in self.config:
            self._lures = self.config["fixture_lures"]

    def product_urls(self) -> list[str]:
        """Return URLs for all fixture products."""
        return [f"{self.BASE_URL}/{slug}" for slug in self._lures]

    async def extract(self, url: str) -> ExtractionResult:
        """Look up the fixture product named by the URL's last path segment."""
        slug = urlparse(url).path.rstrip("/").split("/")[-1]
        data = self._lures.get(slug)
        if data is None:
            raise AdapterError(f"No fixture product for '{slug}'", url=url)

        tax_multiplier = 1.1 if data.get("tax_excluded") else 1.0
        try:
            return ExtractionResult(
                name=data["name"],
                name_kana=data.get("name_kana"),
                slug=slug,
                source=self.source,
                lure_type=data.get("lure_type", ""),
                target_fish=data.get("target_fish", []),
                description=self.clean_text(data.get("description")),
                price=self.parse_price(data.get("price"), tax_multiplier),
                colors=[
                    ColorVariant(
                        name=c["name"],
                        image_url=self._image(c.get("image")),
                        weights=c.get("weights", []),
                    )
                    for c in data.get("colors", [])
                ],
                weights=self.parse_weights(data.get("weights")),
                length=self.parse_length(data.get("length")),
                main_image=self._image(data.get("main_image")),
                source_url=url,
            )
        except (KeyError, ValidationError) as e:
            raise AdapterError(f"Invalid fixture product '{slug}': {e}", url=url) from e

    @staticmethod
    def _image(path: str | None) -> str | None:
        if not path:
            return None
        if "://" in path:
            return path
        return f"{IMAGE_BASE}/{path}"
