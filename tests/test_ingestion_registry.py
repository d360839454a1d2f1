"""Tests for the ingestion registry module."""

import tempfile
from pathlib import Path

import pytest

from lure_catalog.core.errors import ConfigError
from lure_catalog.ingestion.registry import (
    DEFAULT_USER_AGENT,
    GlobalConfig,
    ImageConfig,
    RebuildConfig,
    SourceConfig,
    SourceRegistry,
    get_default_registry,
    reset_default_registry,
)


class TestImageConfig:
    """Tests for ImageConfig."""

    def test_default_values(self) -> None:
        """Test default image settings."""
        config = ImageConfig()
        assert config.max_width == 500
        assert config.quality == 80
        assert config.max_attempts == 1

    def test_from_dict(self) -> None:
        config = ImageConfig.from_dict({"max_width": 800, "quality": 70})
        assert config.max_width == 800
        assert config.quality == 70
        assert config.max_attempts == 1

    def test_from_dict_none(self) -> None:
        """Test creating from None returns defaults."""
        assert ImageConfig.from_dict(None) == ImageConfig()


class TestRebuildConfig:
    """Tests for RebuildConfig."""

    def test_from_dict(self) -> None:
        config = RebuildConfig.from_dict({"max_attempts": 5, "backoff_seconds": 2})
        assert config.max_attempts == 5
        assert config.backoff_seconds == 2.0

    def test_from_dict_none(self) -> None:
        config = RebuildConfig.from_dict(None)
        assert config.max_attempts == 3
        assert config.backoff_seconds == 10.0


class TestSourceConfig:
    """Tests for SourceConfig."""

    def test_from_dict_minimal(self) -> None:
        """Test creating with minimal data."""
        config = SourceConfig.from_dict({"name": "fixture", "adapter": "fixture"})
        assert config.name == "fixture"
        assert config.adapter == "fixture"
        assert config.display_name == "fixture"
        assert config.enabled is True
        assert config.image_referer is None
        assert config.custom_config == {}

    def test_from_dict_full(self) -> None:
        """Test creating with full data."""
        data = {
            "name": "shimano",
            "adapter": "jsonld",
            "domain": "fish.shimano.com",
            "display_name": "Shimano",
            "enabled": False,
            "description": "Needs a Referer",
            "image_referer": "https://fish.shimano.com/",
            "custom_config": {"tax_multiplier": 1.1},
        }
        config = SourceConfig.from_dict(data)
        assert config.display_name == "Shimano"
        assert config.enabled is False
        assert config.image_referer == "https://fish.shimano.com/"
        assert config.custom_config == {"tax_multiplier": 1.1}

    def test_owns_url(self) -> None:
        """Test domain and subdomain matching."""
        config = SourceConfig(name="s", adapter="jsonld", domain="shimano.com")
        assert config.owns_url("https://shimano.com/a")
        assert config.owns_url("https://fish.shimano.com/a")
        assert not config.owns_url("https://notshimano.com/a")

    def test_owns_url_without_domain(self) -> None:
        config = SourceConfig(name="s", adapter="fixture")
        assert config.owns_url("https://anything.example/a")


class TestGlobalConfig:
    """Tests for GlobalConfig."""

    def test_defaults(self) -> None:
        config = GlobalConfig.from_dict(None)
        assert config.user_agent == DEFAULT_USER_AGENT
        assert config.page_delay_seconds == 2.0
        assert config.max_items_per_run == 0
        assert config.image.max_width == 500
        assert config.rebuild.max_attempts == 3


class TestSourceRegistry:
    """Tests for SourceRegistry."""

    @pytest.fixture
    def sample_config(self) -> str:
        """Create a sample configuration YAML."""
        return """
global:
  user_agent: "TestAgent/1.0"
  page_delay_seconds: 0.5
  max_items_per_run: 10
  image:
    max_width: 300
  rebuild:
    backoff_seconds: 1

sources:
  - name: fixture
    adapter: fixture
    domain: fixture.lure-catalog.local
    enabled: true

  - name: shimano
    adapter: jsonld
    domain: fish.shimano.com
    image_referer: "https://fish.shimano.com/"
    enabled: false
"""

    @pytest.fixture
    def config_path(self, sample_config: str):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(sample_config)
            path = f.name
        yield path
        Path(path).unlink()

    def test_load_config(self, config_path: str) -> None:
        """Test loading configuration from YAML."""
        registry = SourceRegistry()
        registry.load_config(config_path)

        assert registry.global_config.user_agent == "TestAgent/1.0"
        assert registry.global_config.page_delay_seconds == 0.5
        assert registry.global_config.max_items_per_run == 10
        assert registry.global_config.image.max_width == 300
        assert registry.global_config.image.quality == 80
        assert registry.global_config.rebuild.backoff_seconds == 1.0
        assert registry.config_path == Path(config_path).resolve()

        assert len(registry.list_sources()) == 2
        assert registry.get_source("fixture").enabled is True

    def test_list_enabled_sources(self, config_path: str) -> None:
        """Test listing only enabled sources."""
        registry = SourceRegistry()
        registry.load_config(config_path)

        enabled = registry.list_enabled_sources()
        assert [s.name for s in enabled] == ["fixture"]

    def test_image_referers(self, config_path: str) -> None:
        """Test referer overrides are keyed by domain."""
        registry = SourceRegistry()
        registry.load_config(config_path)

        assert registry.image_referers() == {"fish.shimano.com": "https://fish.shimano.com/"}

    def test_add_source(self) -> None:
        registry = SourceRegistry()
        registry.add_source(SourceConfig(name="x", adapter="fixture"))
        assert registry.get_source("x") is not None
        assert registry.get_source("missing") is None

    def test_config_not_found(self) -> None:
        """Test error when config file not found."""
        registry = SourceRegistry()
        with pytest.raises(FileNotFoundError):
            registry.load_config("/non/existent/path.yaml")

    def test_duplicate_source_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "dup.yaml"
        path.write_text(
            "sources:\n"
            "  - {name: a, adapter: fixture}\n"
            "  - {name: a, adapter: jsonld}\n",
            encoding="utf-8",
        )
        registry = SourceRegistry()
        with pytest.raises(ConfigError, match="declared twice"):
            registry.load_config(path)
        assert registry.list_sources() == []

    def test_source_without_adapter_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("sources:\n  - name: a\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="adapter"):
            SourceRegistry().load_config(path)


class TestGlobalRegistry:
    """Tests for the global registry functions."""

    def test_env_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test SOURCES_CONFIG_PATH selects the config file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sources.yaml"
            path.write_text(
                "sources:\n  - name: only\n    adapter: fixture\n", encoding="utf-8"
            )
            monkeypatch.setenv("SOURCES_CONFIG_PATH", str(path))
            reset_default_registry()
            try:
                registry = get_default_registry()
                assert [s.name for s in registry.list_sources()] == ["only"]
                assert get_default_registry() is registry
            finally:
                reset_default_registry()

    def test_bundled_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the repository's config/sources.yaml loads."""
        monkeypatch.delenv("SOURCES_CONFIG_PATH", raising=False)
        reset_default_registry()
        try:
            registry = get_default_registry()
            assert registry.get_source("fixture") is not None
            assert registry.get_source("example-tackle").adapter == "jsonld"
        finally:
            reset_default_registry()
