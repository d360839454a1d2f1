"""
JSON-LD Adapter Module
======================

Generic adapter for manufacturer pages that publish schema.org Product
data in <script type="application/ld+json"> blocks.

Supported shapes:
- A single Product (colors from its `color` field)
- A ProductGroup whose `hasVariant` entries carry color, image and weight
- Either of the above nested inside an `@graph`
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from pydantic import ValidationError

from lure_catalog.core.errors import AdapterError
from lure_catalog.core.schema import ColorVariant, ExtractionResult
from lure_catalog.ingestion.adapters.base import GRAMS_PER_OUNCE, BaseAdapter

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_PAGE_SUFFIX_RE = re.compile(r"\.(html?|php|aspx?)$", re.IGNORECASE)

WEIGHT_PROPERTY_NAMES = {"weight", "重量", "ウェイト", "ウエイト", "自重"}
LENGTH_PROPERTY_NAMES = {"length", "全長", "長さ", "サイズ", "size"}
COLOR_PROPERTY_NAMES = {"color", "colour", "カラー"}
OUNCE_UNIT_CODES = {"ONZ", "OZ"}


def _types(node: dict[str, Any]) -> set[str]:
    value = node.get("@type", [])
    if isinstance(value, str):
        return {value}
    return {v for v in value if isinstance(v, str)}


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def slugify(value: str) -> str:
    """Lowercase ASCII slug: 'Vision_110+ JR' -> 'vision-110-jr'."""
    return _SLUG_RE.sub("-", value.lower()).strip("-")


class JsonLdAdapter(BaseAdapter):
    """
    Adapter for schema.org Product / ProductGroup JSON-LD.

    custom_config options:
        source: Source identifier written on every row
        tax_multiplier: Applied to offer prices (e.g. 1.1 for tax-excluded)
        lure_type: Lure type for every product of this source
        target_fish: List of target species for every product
    """

    ADAPTER_NAME = "jsonld"
    ADAPTER_VERSION = "1.0.0"

    async def extract(self, url: str) -> ExtractionResult:
        """Fetch the page and map its Product JSON-LD to an ExtractionResult."""
        html = await self.fetcher.fetch_text(url)
        return self.parse(html, url)

    def parse(self, html: str, url: str) -> ExtractionResult:
        """
        Map page HTML to an ExtractionResult.

        Raises:
            AdapterError: if no Product is found or required fields are missing
        """
        nodes = self.find_product_nodes(html)
        if not nodes:
            raise AdapterError("No schema.org Product found in JSON-LD", url=url)

        # A ProductGroup describes the whole product; plain Products may be its variants
        groups = [n for n in nodes if "ProductGroup" in _types(n)]
        product = groups[0] if groups else nodes[0]
        variants = [v for v in _as_list(product.get("hasVariant")) if isinstance(v, dict)]

        name = self.clean_text(product.get("name"))
        if not name:
            raise AdapterError("Product JSON-LD has no name", url=url)

        weights = self._product_weights(product, variants)
        colors = self._colors(product, variants, url)

        try:
            return ExtractionResult(
                name=name,
                name_kana=self.clean_text(product.get("alternateName")) or None,
                slug=self._slug(product, url),
                source=self.config.get("source", self.ADAPTER_NAME),
                lure_type=self.config.get("lure_type") or self._category(product),
                target_fish=list(self.config.get("target_fish", [])),
                description=self.clean_text(product.get("description")),
                price=self._price(product, variants),
                colors=colors,
                weights=weights,
                length=self._length(product, variants),
                main_image=self._first_image(product.get("image"), url),
                source_url=url,
            )
        except ValidationError as e:
            raise AdapterError(f"Invalid product data: {e}", url=url) from e

    @staticmethod
    def find_product_nodes(html: str) -> list[dict[str, Any]]:
        """Collect every Product or ProductGroup node from the page's JSON-LD."""
        soup = BeautifulSoup(html, "html.parser")
        nodes: list[dict[str, Any]] = []

        for script in soup.find_all("script", type="application/ld+json"):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.debug(f"Skipping unparsable JSON-LD block: {e}")
                continue

            stack = _as_list(data)
            while stack:
                node = stack.pop(0)
                if not isinstance(node, dict):
                    continue
                if "@graph" in node:
                    stack.extend(_as_list(node["@graph"]))
                if _types(node) & {"Product", "ProductGroup"}:
                    nodes.append(node)

        return nodes

    def _slug(self, product: dict[str, Any], url: str) -> str:
        segments = [s for s in urlparse(url).path.split("/") if s]
        if segments:
            slug = slugify(_PAGE_SUFFIX_RE.sub("", segments[-1]))
            if slug:
                return slug
        for key in ("productGroupID", "sku", "productID", "mpn"):
            if product.get(key):
                slug = slugify(str(product[key]))
                if slug:
                    return slug
        raise AdapterError("Cannot derive a slug from the URL or product identifiers", url=url)

    def _category(self, product: dict[str, Any]) -> str:
        category = product.get("category")
        if isinstance(category, list):
            category = category[-1] if category else ""
        if not isinstance(category, str):
            return ""
        # "Lures > Hard Baits > ミノー" -> "ミノー"
        return self.clean_text(re.split(r"\s*[>/]\s*", category)[-1])

    def _price(self, product: dict[str, Any], variants: list[dict[str, Any]]) -> int:
        tax_multiplier = float(self.config.get("tax_multiplier", 1.0))
        prices = []
        for node in [product, *variants]:
            for offer in _as_list(node.get("offers")):
                if not isinstance(offer, dict):
                    continue
                value = offer.get("price", offer.get("lowPrice"))
                price = self.parse_price(value, tax_multiplier) if value is not None else 0
                if price > 0:
                    prices.append(price)
        return min(prices) if prices else 0

    def _weight_values(self, value: Any) -> list[float]:
        """Grams from a schema.org weight: string, number or QuantitativeValue."""
        if value is None:
            return []
        if isinstance(value, list):
            result = []
            for item in value:
                result.extend(self._weight_values(item))
            return result
        if isinstance(value, dict):
            amount = value.get("value")
            if amount is None:
                return []
            unit = str(value.get("unitCode") or value.get("unitText") or "").upper()
            try:
                grams = float(amount)
            except (TypeError, ValueError):
                return self.parse_weights(f"{amount}{unit.lower()}")
            if unit in OUNCE_UNIT_CODES:
                grams *= GRAMS_PER_OUNCE
            return [round(grams, 1)] if grams > 0 else []
        if isinstance(value, int | float):
            return [round(float(value), 1)] if value > 0 else []
        return self.parse_weights(str(value))

    def _properties(self, node: dict[str, Any], names: set[str]) -> list[Any]:
        values = []
        for prop in _as_list(node.get("additionalProperty")):
            if not isinstance(prop, dict):
                continue
            prop_name = str(prop.get("name", "")).strip().lower()
            if prop_name in names:
                values.append(prop.get("value"))
        return values

    def _node_weights(self, node: dict[str, Any]) -> list[float]:
        weights = self._weight_values(node.get("weight"))
        for value in self._properties(node, WEIGHT_PROPERTY_NAMES):
            weights.extend(self._weight_values(value))
        return weights

    def _product_weights(self, product: dict[str, Any], variants: list[dict[str, Any]]) -> list[float]:
        weights = self._node_weights(product)
        for variant in variants:
            weights.extend(self._node_weights(variant))
        result: list[float] = []
        for weight in weights:
            if weight not in result:
                result.append(weight)
        return result

    def _length(self, product: dict[str, Any], variants: list[dict[str, Any]]) -> float | None:
        for node in [product, *variants]:
            for value in [node.get("depth"), *self._properties(node, LENGTH_PROPERTY_NAMES)]:
                if isinstance(value, dict):
                    unit = str(value.get("unitCode") or value.get("unitText") or "mm")
                    value = f"{value.get('value')}{unit.lower()}"
                length = self.parse_length(str(value)) if value is not None else None
                if length:
                    return length
        return None

    def _color_name(self, node: dict[str, Any]) -> str:
        color = node.get("color")
        if isinstance(color, list):
            color = color[0] if color else None
        if not color:
            props = self._properties(node, COLOR_PROPERTY_NAMES)
            color = props[0] if props else None
        return self.clean_text(str(color)) if color else ""

    def _colors(
        self,
        product: dict[str, Any],
        variants: list[dict[str, Any]],
        url: str,
    ) -> list[ColorVariant]:
        if not variants:
            names = [self.clean_text(str(c)) for c in _as_list(product.get("color"))]
            return [ColorVariant(name=n) for n in names if n]

        # Variants are (color, weight) pairs; fold them into one entry per color
        order: list[str] = []
        images: dict[str, str | None] = {}
        color_weights: dict[str, list[float]] = {}
        for variant in variants:
            name = self._color_name(variant)
            if not name:
                logger.debug(f"Skipping variant without color: {variant.get('name')}")
                continue
            if name not in images:
                order.append(name)
                images[name] = self._first_image(variant.get("image"), url)
                color_weights[name] = []
            elif images[name] is None:
                images[name] = self._first_image(variant.get("image"), url)
            for weight in self._node_weights(variant):
                if weight not in color_weights[name]:
                    color_weights[name].append(weight)

        return [
            ColorVariant(name=n, image_url=images[n], weights=color_weights[n])
            for n in order
        ]

    def _first_image(self, value: Any, url: str) -> str | None:
        for image in _as_list(value):
            if isinstance(image, dict):
                image = image.get("contentUrl") or image.get("url")
            if isinstance(image, str) and image.strip():
                return self.make_absolute(image, url)
        return None
