"""
Source Registry Module
======================

Source configurations loaded from sources.yaml. Each source binds a
manufacturer site to the adapter that parses its pages, with optional
overrides such as the Referer its image CDN expects.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from lure_catalog.core.errors import ConfigError

DEFAULT_USER_AGENT = "LureCatalogBot/0.1 (+https://github.com/lure-catalog/lure-catalog)"


@dataclass
class ImageConfig:
    """Image relocation settings."""

    max_width: int = 500
    quality: int = 80
    max_attempts: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ImageConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            max_width=int(data.get("max_width", 500)),
            quality=int(data.get("quality", 80)),
            max_attempts=int(data.get("max_attempts", 1)),
        )


@dataclass
class RebuildConfig:
    """Downstream rebuild signal settings."""

    max_attempts: int = 3
    backoff_seconds: float = 10.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RebuildConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            max_attempts=int(data.get("max_attempts", 3)),
            backoff_seconds=float(data.get("backoff_seconds", 10.0)),
        )


@dataclass
class SourceConfig:
    """One manufacturer site: its adapter, domain and per-site overrides."""

    name: str
    adapter: str
    domain: str = ""
    display_name: str = ""
    enabled: bool = True
    description: str = ""
    image_referer: str | None = None
    custom_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceConfig:
        """
        Build a source entry from one item of the ``sources`` list.

        Raises:
            ConfigError: If ``name`` or ``adapter`` is missing.
        """
        missing = [key for key in ("name", "adapter") if not data.get(key)]
        if missing:
            raise ConfigError(f"Source entry {data!r} is missing: {', '.join(missing)}")

        name = str(data["name"])
        return cls(
            name=name,
            adapter=str(data["adapter"]),
            domain=data.get("domain") or "",
            display_name=data.get("display_name") or name,
            enabled=bool(data.get("enabled", True)),
            description=data.get("description") or "",
            image_referer=data.get("image_referer"),
            custom_config=dict(data.get("custom_config") or {}),
        )

    def owns_url(self, url: str) -> bool:
        """True when the URL's host is the source domain or one of its subdomains."""
        if not self.domain:
            return True
        host = urlparse(url).netloc.lower()
        domain = self.domain.lower()
        return host == domain or host.endswith("." + domain)


@dataclass
class GlobalConfig:
    """Settings shared by every source."""

    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: int = 30
    page_delay_seconds: float = 2.0
    max_items_per_run: int = 0  # 0 = all pending
    image: ImageConfig = field(default_factory=ImageConfig)
    rebuild: RebuildConfig = field(default_factory=RebuildConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        if not data:
            return cls()
        defaults = cls()
        return cls(
            user_agent=data.get("user_agent", defaults.user_agent),
            request_timeout=int(data.get("request_timeout", defaults.request_timeout)),
            page_delay_seconds=float(
                data.get("page_delay_seconds", defaults.page_delay_seconds)
            ),
            max_items_per_run=int(data.get("max_items_per_run", defaults.max_items_per_run)),
            image=ImageConfig.from_dict(data.get("image")),
            rebuild=RebuildConfig.from_dict(data.get("rebuild")),
        )


class SourceRegistry:
    """
    Source configurations keyed by name.

    A registry starts empty with default global settings; ``load_config``
    replaces both from a sources.yaml file.
    """

    def __init__(self) -> None:
        self._sources: dict[str, SourceConfig] = {}
        self._global = GlobalConfig()
        self._path: Path | None = None

    @property
    def global_config(self) -> GlobalConfig:
        return self._global

    @property
    def config_path(self) -> Path | None:
        """Path of the loaded configuration file, if any."""
        return self._path

    def load_config(self, config_path: Path | str) -> None:
        """
        Replace the registry contents with a sources.yaml file.

        Args:
            config_path: Path to the YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigError: If the file is not a mapping, or a source entry is
                invalid or declared twice.
        """
        path = Path(config_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")

        sources: dict[str, SourceConfig] = {}
        for entry in data.get("sources") or []:
            source = SourceConfig.from_dict(entry)
            if source.name in sources:
                raise ConfigError(f"Source '{source.name}' is declared twice in {path}")
            sources[source.name] = source

        self._global = GlobalConfig.from_dict(data.get("global"))
        self._sources = sources
        self._path = path

    def add_source(self, source: SourceConfig) -> None:
        self._sources[source.name] = source

    def get_source(self, name: str) -> SourceConfig | None:
        """Look up a source by name, or None if it is not configured."""
        return self._sources.get(name)

    def list_sources(self) -> list[SourceConfig]:
        return list(self._sources.values())

    def list_enabled_sources(self) -> list[SourceConfig]:
        return [source for source in self._sources.values() if source.enabled]

    def image_referers(self) -> dict[str, str]:
        """Map each source domain to the Referer its image CDN expects."""
        return {
            source.domain: source.image_referer
            for source in self._sources.values()
            if source.domain and source.image_referer
        }


BUNDLED_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "sources.yaml"

_default_registry: SourceRegistry | None = None


def get_default_registry() -> SourceRegistry:
    """
    Return the process-wide registry, loading it on first use.

    The file comes from SOURCES_CONFIG_PATH when set, otherwise the bundled
    config/sources.yaml. A missing file leaves the registry empty.
    """
    global _default_registry
    if _default_registry is not None:
        return _default_registry

    registry = SourceRegistry()
    env_path = os.environ.get("SOURCES_CONFIG_PATH")
    path = Path(env_path) if env_path else BUNDLED_CONFIG_PATH
    if path.exists():
        registry.load_config(path)

    _default_registry = registry
    return registry


def reset_default_registry() -> None:
    """Forget the process-wide registry so the next call reloads it."""
    global _default_registry
    _default_registry = None
