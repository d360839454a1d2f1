"""
Adapter Registry Module
=======================

Central registry for source-specific adapters.

ADAPTER_CLASSES maps adapter type names (as used in sources.yaml) to
classes. AdapterRegistry is the immutable source id -> adapter instance
mapping built once at startup and handed to the pipeline.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from lure_catalog.core.errors import ConfigError, UnknownSourceError
from lure_catalog.ingestion.adapters.base import BaseAdapter
from lure_catalog.ingestion.adapters.fixture_adapter import FixtureAdapter
from lure_catalog.ingestion.adapters.jsonld import JsonLdAdapter
from lure_catalog.ingestion.fetcher import PageFetcher
from lure_catalog.ingestion.registry import SourceRegistry

# Registry mapping adapter names to their classes
ADAPTER_CLASSES: Mapping[str, type[BaseAdapter]] = MappingProxyType(
    {
        "fixture": FixtureAdapter,
        "jsonld": JsonLdAdapter,
    }
)


class AdapterRegistry(Mapping[str, BaseAdapter]):
    """
    Read-only mapping of source identifier to adapter instance.

    Built once and never mutated, so every item of a run is dispatched
    against the same set of adapters.
    """

    def __init__(self, adapters: Mapping[str, BaseAdapter]) -> None:
        self._adapters = MappingProxyType(dict(adapters))

    def __getitem__(self, source: str) -> BaseAdapter:
        return self._adapters[source]

    def __iter__(self) -> Iterator[str]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)

    def resolve(self, source: str) -> BaseAdapter:
        """
        Get the adapter for a source.

        Raises:
            UnknownSourceError: if no adapter is registered for the source
        """
        adapter = self._adapters.get(source)
        if adapter is None:
            raise UnknownSourceError(source, list(self._adapters))
        return adapter


def create_adapter(
    adapter_type: str,
    config: dict[str, Any] | None = None,
    fetcher: PageFetcher | None = None,
) -> BaseAdapter | None:
    """
    Get an adapter instance by type name.

    Args:
        adapter_type: Name of the adapter (e.g., "jsonld")
        config: Optional custom configuration
        fetcher: Shared page fetcher

    Returns:
        Adapter instance, or None if type not found
    """
    adapter_class = ADAPTER_CLASSES.get(adapter_type)
    if adapter_class is None:
        return None
    return adapter_class(config, fetcher)


def build_adapter_registry(
    source_registry: SourceRegistry,
    fetcher: PageFetcher | None = None,
) -> AdapterRegistry:
    """
    Instantiate one adapter per enabled source.

    Each adapter receives the source's custom_config plus its source
    identifier under "source".

    Raises:
        ConfigError: if a source names an unknown adapter type
    """
    global_config = source_registry.global_config
    if fetcher is None:
        fetcher = PageFetcher(global_config.user_agent, global_config.request_timeout)

    adapters: dict[str, BaseAdapter] = {}
    for source in source_registry.list_enabled_sources():
        config = {**source.custom_config, "source": source.name}
        adapter = create_adapter(source.adapter, config, fetcher)
        if adapter is None:
            raise ConfigError(
                f"Source '{source.name}' uses unknown adapter '{source.adapter}'. "
                f"Available: {', '.join(list_adapters())}"
            )
        adapters[source.name] = adapter
    return AdapterRegistry(adapters)


def list_adapters() -> list[str]:
    """
    List all adapter type names.

    Returns:
        List of adapter type names
    """
    return list(ADAPTER_CLASSES.keys())


def get_adapter_info(adapter_type: str) -> dict[str, str] | None:
    """
    Get information about an adapter type.

    Args:
        adapter_type: Name of the adapter

    Returns:
        Dict with adapter info, or None if not found
    """
    adapter_class = ADAPTER_CLASSES.get(adapter_type)
    if adapter_class is None:
        return None

    return {
        "name": adapter_class.ADAPTER_NAME,
        "version": adapter_class.ADAPTER_VERSION,
        "class": adapter_class.__name__,
    }


__all__ = [
    # Registry
    "ADAPTER_CLASSES",
    "AdapterRegistry",
    "build_adapter_registry",
    "create_adapter",
    "list_adapters",
    "get_adapter_info",
    # Base classes
    "BaseAdapter",
    # Concrete adapters
    "FixtureAdapter",
    "JsonLdAdapter",
]
