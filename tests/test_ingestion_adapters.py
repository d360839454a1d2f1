"""Tests for the ingestion adapters module."""

import json

import httpx
import pytest

from lure_catalog.core.errors import AdapterError, ConfigError, UnknownSourceError
from lure_catalog.core.schema import ExtractionResult
from lure_catalog.ingestion.adapters import (
    ADAPTER_CLASSES,
    AdapterRegistry,
    build_adapter_registry,
    create_adapter,
    get_adapter_info,
    list_adapters,
)
from lure_catalog.ingestion.adapters.base import BaseAdapter
from lure_catalog.ingestion.adapters.fixture_adapter import (
    FIXTURE_LURES,
    IMAGE_BASE,
    FixtureAdapter,
)
from lure_catalog.ingestion.adapters.jsonld import JsonLdAdapter, slugify
from lure_catalog.ingestion.fetcher import PageFetcher
from lure_catalog.ingestion.registry import SourceConfig, SourceRegistry


def page(*blocks) -> str:
    """Wrap JSON-LD blocks in a minimal HTML page."""
    scripts = "\n".join(
        f'<script type="application/ld+json">{json.dumps(b, ensure_ascii=False)}</script>'
        for b in blocks
    )
    return f"<html><head>{scripts}</head><body><h1>Product</h1></body></html>"


PRODUCT_GROUP = {
    "@context": "https://schema.org",
    "@type": "ProductGroup",
    "name": "Exsence Silent Assassin 129F",
    "alternateName": "エクスセンス サイレントアサシン",
    "description": "  Floating   minnow for sea bass. ",
    "productGroupID": "XM-212N",
    "image": "/img/main.jpg",
    "category": "Lures > Hard Baits > ミノー",
    "hasVariant": [
        {
            "@type": "Product",
            "color": "Kyorin Iwashi",
            "image": "/img/kyorin.jpg",
            "weight": {"@type": "QuantitativeValue", "value": 21, "unitCode": "GRM"},
            "offers": {"@type": "Offer", "price": "2800"},
        },
        {
            "@type": "Product",
            "color": "Kyorin Iwashi",
            "image": "/img/kyorin-2.jpg",
            "weight": {"@type": "QuantitativeValue", "value": 25, "unitCode": "GRM"},
            "offers": {"@type": "Offer", "price": "3000"},
        },
        {
            "@type": "Product",
            "color": "Chart Back",
            "image": {"@type": "ImageObject", "contentUrl": "https://cdn.example.com/chart.jpg"},
            "weight": {"@type": "QuantitativeValue", "value": 25, "unitCode": "GRM"},
            "offers": {"@type": "Offer", "price": "3000"},
        },
    ],
    "additionalProperty": [
        {"@type": "PropertyValue", "name": "全長", "value": "129mm"},
    ],
}


class TestAdapterRegistry:
    """Tests for the adapter registry functions."""

    def test_list_adapters(self) -> None:
        adapters = list_adapters()
        assert "fixture" in adapters
        assert "jsonld" in adapters

    def test_adapter_classes_read_only(self) -> None:
        with pytest.raises(TypeError):
            ADAPTER_CLASSES["other"] = FixtureAdapter

    def test_create_adapter(self) -> None:
        adapter = create_adapter("fixture", {"source": "demo"})
        assert isinstance(adapter, FixtureAdapter)
        assert adapter.source == "demo"

    def test_create_adapter_not_found(self) -> None:
        assert create_adapter("non-existent") is None

    def test_get_adapter_info(self) -> None:
        info = get_adapter_info("jsonld")
        assert info == {"name": "jsonld", "version": "1.0.0", "class": "JsonLdAdapter"}
        assert get_adapter_info("non-existent") is None

    def test_resolve(self) -> None:
        """Test resolving a source to its adapter and rejecting unknown ones."""
        adapter = FixtureAdapter()
        registry = AdapterRegistry({"fixture": adapter})

        assert registry.resolve("fixture") is adapter
        assert list(registry) == ["fixture"]
        with pytest.raises(UnknownSourceError) as exc_info:
            registry.resolve("daiwa")
        assert exc_info.value.source == "daiwa"
        assert "fixture" in str(exc_info.value)

    def test_build_from_sources(self) -> None:
        """Test one adapter per enabled source, with the source id injected."""
        registry = SourceRegistry()
        registry.add_source(
            SourceConfig(
                name="example-tackle",
                adapter="jsonld",
                custom_config={"tax_multiplier": 1.1},
            )
        )
        registry.add_source(SourceConfig(name="off", adapter="jsonld", enabled=False))
        registry.add_source(SourceConfig(name="fixture", adapter="fixture"))

        adapters = build_adapter_registry(registry)

        assert set(adapters) == {"example-tackle", "fixture"}
        assert adapters["example-tackle"].config == {
            "tax_multiplier": 1.1,
            "source": "example-tackle",
        }
        # One shared fetcher
        assert adapters["example-tackle"].fetcher is adapters["fixture"].fetcher

    def test_build_unknown_adapter_type(self) -> None:
        registry = SourceRegistry()
        registry.add_source(SourceConfig(name="x", adapter="magic"))

        with pytest.raises(ConfigError, match="magic"):
            build_adapter_registry(registry)


class TestBaseAdapterHelpers:
    """Tests for shared parsing helpers."""

    @pytest.mark.parametrize(
        "text,multiplier,expected",
        [
            ("¥2,200", 1.0, 2200),
            ("¥2,200(税別)", 1.1, 2420),
            ("1,900円", 1.1, 2090),
            (1500, 1.0, 1500),
            ("オープン価格", 1.0, 0),
            (None, 1.0, 0),
        ],
    )
    def test_parse_price(self, text, multiplier: float, expected: int) -> None:
        assert BaseAdapter.parse_price(text, multiplier) == expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("14.0g / 18.0g", [14.0, 18.0]),
            ("1/2oz", [14.2]),
            ("3/8 oz, 1/2oz", [10.6, 14.2]),
            ("7g 7g 10g", [7.0, 10.0]),
            ("7g (1/4oz)", [7.0]),
            ("1/4oz（7g）", [7.0]),
            ("5g(3/16oz) / 7g(1/4oz)", [5.0, 7.0]),
            ("1/2oz, 7g", [14.2, 7.0]),
            ("", []),
            ("Free size", []),
        ],
    )
    def test_parse_weights(self, text: str, expected: list[float]) -> None:
        assert BaseAdapter.parse_weights(text) == expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("120mm", 120.0),
            ("12cm", 120.0),
            ("3.5inch", 88.9),
            ("4インチ", 101.6),
            (None, None),
            ("small", None),
        ],
    )
    def test_parse_length(self, text, expected) -> None:
        assert BaseAdapter.parse_length(text) == expected

    def test_clean_text(self) -> None:
        assert BaseAdapter.clean_text("  Vision\n  110  ") == "Vision 110"
        assert BaseAdapter.clean_text(None) == ""

    def test_make_absolute(self) -> None:
        base = "https://example.com/products/a.html"
        assert BaseAdapter.make_absolute("/img/a.jpg", base) == "https://example.com/img/a.jpg"
        assert BaseAdapter.make_absolute(None, base) is None

    def test_validate_result(self) -> None:
        """Test weight and length sanity checks."""
        adapter = FixtureAdapter()
        result = ExtractionResult(
            name="X",
            slug="x",
            source="fixture",
            source_url="https://example.com/x",
            weights=[-1.0],
            length=0.0,
        )
        errors = adapter.validate_result(result)
        assert "Invalid weight: -1.0" in errors
        assert "Invalid length: 0.0" in errors


class TestFixtureAdapter:
    """Tests for the FixtureAdapter class."""

    @pytest.fixture
    def adapter(self) -> FixtureAdapter:
        return FixtureAdapter()

    def test_adapter_info(self, adapter: FixtureAdapter) -> None:
        info = adapter.get_info()
        assert info["name"] == "fixture"
        assert info["class"] == "FixtureAdapter"

    def test_product_urls(self, adapter: FixtureAdapter) -> None:
        urls = adapter.product_urls()
        assert len(urls) == len(FIXTURE_LURES)
        assert f"{FixtureAdapter.BASE_URL}/vision-110" in urls

    @pytest.mark.asyncio
    async def test_extract_full_product(self, adapter: FixtureAdapter) -> None:
        url = f"{FixtureAdapter.BASE_URL}/vision-110"
        result = await adapter.extract(url)

        assert result.name == "Vision 110"
        assert result.slug == "vision-110"
        assert result.source == "fixture"
        assert result.price == 2200
        assert result.weights == [14.0, 18.0]
        assert result.length == 110.0
        assert [c.name for c in result.colors] == ["GG Wakasagi", "Matt Tiger", "Pearl Ayu"]
        assert result.colors[0].image_url == f"{IMAGE_BASE}/vision-110/wakasagi.jpg"
        assert result.source_url == url
        assert adapter.validate_result(result) == []

    @pytest.mark.asyncio
    async def test_extract_tax_and_ounces(self, adapter: FixtureAdapter) -> None:
        result = await adapter.extract(f"{FixtureAdapter.BASE_URL}/pop-x")

        assert result.price == 2090
        assert result.weights == [7.1]
        assert len(result.colors) == 3
        assert result.colors[2].image_url is None

    @pytest.mark.asyncio
    async def test_extract_without_colors_or_weights(self, adapter: FixtureAdapter) -> None:
        jighead = await adapter.extract(f"{FixtureAdapter.BASE_URL}/jighead-basic")
        craw = await adapter.extract(f"{FixtureAdapter.BASE_URL}/soft-craw/")

        assert jighead.colors == []
        assert jighead.weights == [0.8, 1.0, 1.5]
        assert craw.weights == []
        assert craw.price == 0
        assert craw.length == 76.2

    @pytest.mark.asyncio
    async def test_extract_unknown_slug(self, adapter: FixtureAdapter) -> None:
        with pytest.raises(AdapterError):
            await adapter.extract(f"{FixtureAdapter.BASE_URL}/does-not-exist")

    @pytest.mark.asyncio
    async def test_custom_fixture_lures(self) -> None:
        adapter = FixtureAdapter(
            {
                "source": "custom",
                "fixture_lures": {
                    "tiny": {"name": "Tiny", "weights": "1g", "colors": [{"name": "Red"}]},
                },
            }
        )

        result = await adapter.extract("https://x/tiny")

        assert result.source == "custom"
        assert result.weights == [1.0]
        assert adapter.product_urls() == [f"{FixtureAdapter.BASE_URL}/tiny"]

    @pytest.mark.asyncio
    async def test_invalid_fixture_raises_adapter_error(self) -> None:
        adapter = FixtureAdapter({"fixture_lures": {"bad": {"colors": []}}})
        with pytest.raises(AdapterError):
            await adapter.extract("https://x/bad")


class TestJsonLdAdapter:
    """Tests for the JsonLdAdapter class."""

    URL = "https://fish.example.com/products/silent-assassin-129f.html"

    @pytest.fixture
    def adapter(self) -> JsonLdAdapter:
        return JsonLdAdapter({"source": "example-tackle", "target_fish": ["シーバス"]})

    def test_slugify(self) -> None:
        assert slugify("Vision_110+ JR") == "vision-110-jr"

    def test_parse_product_group(self, adapter: JsonLdAdapter) -> None:
        """Test variants fold into one color each with their weights."""
        result = adapter.parse(page(PRODUCT_GROUP), self.URL)

        assert result.name == "Exsence Silent Assassin 129F"
        assert result.name_kana == "エクスセンス サイレントアサシン"
        assert result.slug == "silent-assassin-129f"
        assert result.source == "example-tackle"
        assert result.lure_type == "ミノー"
        assert result.target_fish == ["シーバス"]
        assert result.description == "Floating minnow for sea bass."
        assert result.price == 2800
        assert result.weights == [21.0, 25.0]
        assert result.length == 129.0
        assert result.main_image == "https://fish.example.com/img/main.jpg"

        assert [c.name for c in result.colors] == ["Kyorin Iwashi", "Chart Back"]
        assert result.colors[0].image_url == "https://fish.example.com/img/kyorin.jpg"
        assert result.colors[0].weights == [21.0, 25.0]
        assert result.colors[1].image_url == "https://cdn.example.com/chart.jpg"
        assert result.colors[1].weights == [25.0]

    def test_parse_plain_product_in_graph(self) -> None:
        adapter = JsonLdAdapter({"source": "s", "tax_multiplier": 1.1, "lure_type": "ジグ"})
        data = {
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "ignored"},
                {
                    "@type": "Product",
                    "name": "Metal Jig",
                    "sku": "MJ-40",
                    "color": ["Silver", "Gold"],
                    "weight": "40g / 60g",
                    "offers": [{"@type": "AggregateOffer", "lowPrice": 1000}],
                },
            ],
        }

        result = adapter.parse(page(data), "https://example.com/")

        assert result.slug == "mj-40"
        assert result.lure_type == "ジグ"
        assert result.price == 1100
        assert result.weights == [40.0, 60.0]
        assert [c.name for c in result.colors] == ["Silver", "Gold"]
        assert all(c.image_url is None for c in result.colors)

    def test_ounce_quantitative_value(self, adapter: JsonLdAdapter) -> None:
        data = {
            "@type": "Product",
            "name": "Spinnerbait",
            "weight": {"@type": "QuantitativeValue", "value": 0.5, "unitCode": "ONZ"},
        }
        result = adapter.parse(page(data), "https://example.com/p/spinnerbait")
        assert result.weights == [14.2]

    def test_skips_broken_blocks(self, adapter: JsonLdAdapter) -> None:
        html = (
            '<script type="application/ld+json">{not json</script>'
            + page({"@type": "Product", "name": "OK"})
        )
        nodes = JsonLdAdapter.find_product_nodes(html)
        assert [n["name"] for n in nodes] == ["OK"]

    def test_no_product(self, adapter: JsonLdAdapter) -> None:
        with pytest.raises(AdapterError, match="No schema.org Product"):
            adapter.parse(page({"@type": "Organization", "name": "Shop"}), self.URL)

    def test_product_without_name(self, adapter: JsonLdAdapter) -> None:
        with pytest.raises(AdapterError):
            adapter.parse(page({"@type": "Product"}), self.URL)

    @pytest.mark.asyncio
    async def test_extract_fetches_page(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                text=page(PRODUCT_GROUP),
                headers={"content-type": "text/html; charset=utf-8"},
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        adapter = JsonLdAdapter({"source": "s"}, PageFetcher("ua", client=client))

        result = await adapter.extract(self.URL)

        assert result.name == "Exsence Silent Assassin 129F"
        assert len(result.colors) == 2

    @pytest.mark.asyncio
    async def test_extract_http_error(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        adapter = JsonLdAdapter({"source": "s"}, PageFetcher("ua", client=client))

        with pytest.raises(AdapterError):
            await adapter.extract(self.URL)
