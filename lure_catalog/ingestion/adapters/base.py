"""
Adapter Base Module
===================

Defines the abstract base class for source-specific extraction adapters.
An adapter turns one product page URL into a validated ExtractionResult.
Adapters never touch the catalog store, the task queue or the object store.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urljoin

from lure_catalog.core.schema import ExtractionResult
from lure_catalog.ingestion.fetcher import PageFetcher
from lure_catalog.ingestion.registry import DEFAULT_USER_AGENT

GRAMS_PER_OUNCE = 28.3495
MM_PER_INCH = 25.4

_WHITESPACE_RE = re.compile(r"\s+")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_OUNCE = r"\d+(?:\.\d+)?(?:\s*/\s*\d+)?\s*oz"  # "1/2oz", "3/8 oz", "0.5oz"
_GRAM = r"\d+(?:\.\d+)?\s*g(?![a-z])"
# One pass in order of appearance: groups 1-2 are ounces, group 3 grams
_WEIGHT_RE = re.compile(
    r"(\d+(?:\.\d+)?)(?:\s*/\s*(\d+))?\s*oz|(\d+(?:\.\d+)?)\s*g(?![a-z])", re.IGNORECASE
)
# "7g (1/4oz)" and "1/4oz（7g）" state one weight twice; keep the grams
_GRAM_THEN_OUNCE_RE = re.compile(rf"({_GRAM})\s*[(（]\s*{_OUNCE}\s*[)）]", re.IGNORECASE)
_OUNCE_THEN_GRAM_RE = re.compile(rf"{_OUNCE}\s*[(（]\s*({_GRAM})\s*[)）]", re.IGNORECASE)
_MM_RE = re.compile(r"(\d+(?:\.\d+)?)\s*mm", re.IGNORECASE)
_CM_RE = re.compile(r"(\d+(?:\.\d+)?)\s*cm", re.IGNORECASE)
_INCH_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:inch(?:es)?|in\b|インチ|\")", re.IGNORECASE)


class BaseAdapter(ABC):
    """
    Abstract base class for extraction adapters.

    Subclasses must implement:
    - extract: Fetch and parse one product page
    """

    # Adapter identification (override in subclasses)
    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            config: Optional custom configuration from sources.yaml
            fetcher: Shared page fetcher (a default one is created if omitted)
        """
        self.config = config or {}
        self.fetcher = fetcher or PageFetcher(DEFAULT_USER_AGENT)

    @abstractmethod
    async def extract(self, url: str) -> ExtractionResult:
        """
        Extract a product from its page.

        Args:
            url: Product page URL

        Returns:
            ExtractionResult with the product's colors and weights

        Raises:
            AdapterError: if the page cannot be fetched or parsed
        """
        pass

    def validate_result(self, result: ExtractionResult) -> list[str]:
        """
        Validate an extraction result.

        Override this method to add adapter-specific validation.

        Args:
            result: Extraction result to validate

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not result.name:
            errors.append("Missing product name")
        if not result.slug:
            errors.append("Missing slug")
        if not result.source_url:
            errors.append("Missing source URL")

        for weight in result.weights:
            if weight <= 0:
                errors.append(f"Invalid weight: {weight}")

        if result.length is not None and result.length <= 0:
            errors.append(f"Invalid length: {result.length}")

        return errors

    def get_info(self) -> dict[str, str]:
        """Get adapter information."""
        return {
            "name": self.ADAPTER_NAME,
            "version": self.ADAPTER_VERSION,
            "class": self.__class__.__name__,
        }

    # ------------------------------------------------------------------
    # Parsing helpers shared by adapters
    # ------------------------------------------------------------------

    @staticmethod
    def clean_text(value: str | None) -> str:
        """Trim and collapse runs of whitespace."""
        if not value:
            return ""
        return _WHITESPACE_RE.sub(" ", value).strip()

    @staticmethod
    def parse_price(text: str | int | float | None, tax_multiplier: float = 1.0) -> int:
        """
        Parse a price into integer yen (or other smallest unit).

        Examples:
            parse_price("¥2,200") -> 2200
            parse_price("¥2,200(税別)", tax_multiplier=1.1) -> 2420

        Returns:
            The price multiplied by tax_multiplier and floored, or 0 when
            no number is present
        """
        if text is None:
            return 0
        if isinstance(text, int | float):
            amount = float(text)
        else:
            match = _NUMBER_RE.search(str(text).replace(",", "").replace("，", ""))
            if not match:
                return 0
            amount = float(match.group())
        # Round first so 2200 * 1.1 = 2420.0000000000005 floors to 2420
        return max(0, math.floor(round(amount * tax_multiplier, 6)))

    @staticmethod
    def parse_weights(text: str | None) -> list[float]:
        """
        Parse weights in grams, converting ounces.

        Examples:
            parse_weights("4.5g / 5.5g") -> [4.5, 5.5]
            parse_weights("1/2oz") -> [14.2]
            parse_weights("7g (1/4oz)") -> [7.0]

        Returns:
            Weights rounded to 0.1 g, in order of appearance, without duplicates
        """
        if not text:
            return []
        text = _GRAM_THEN_OUNCE_RE.sub(r"\1", text)
        text = _OUNCE_THEN_GRAM_RE.sub(r"\1", text)

        weights: list[float] = []
        for match in _WEIGHT_RE.finditer(text):
            if match.group(3) is not None:
                weights.append(round(float(match.group(3)), 1))
                continue
            ounces = float(match.group(1))
            if match.group(2):
                ounces = ounces / float(match.group(2))
            weights.append(round(ounces * GRAMS_PER_OUNCE, 1))

        result = []
        for weight in weights:
            if 0 < weight < 10000 and weight not in result:
                result.append(weight)
        return result

    @staticmethod
    def parse_length(text: str | None) -> float | None:
        """
        Parse a length in millimeters.

        Examples:
            parse_length("120mm") -> 120.0
            parse_length("12cm") -> 120.0
            parse_length("3.5inch") -> 88.9
        """
        if not text:
            return None
        if match := _MM_RE.search(text):
            return float(match.group(1))
        if match := _CM_RE.search(text):
            return round(float(match.group(1)) * 10, 1)
        if match := _INCH_RE.search(text):
            return round(float(match.group(1)) * MM_PER_INCH, 1)
        return None

    @staticmethod
    def make_absolute(url: str | None, base: str) -> str | None:
        """Resolve a possibly relative URL against the page URL."""
        if not url:
            return None
        return urljoin(base, url.strip())
