"""
Lure Catalog Ingestion Framework
================================

This package provides the ingestion pipeline that turns queued product
page URLs into catalog rows.

Pipeline Stages:
1. Dispatch - Resolve the work item's source to an extraction adapter
2. Extract - The adapter fetches and parses the product page
3. Relocate - Color images are transcoded to WebP and uploaded
4. Expand - Colors x weights become one canonical row each
5. Write - Rows not yet in the catalog are inserted
6. Track - The work item is marked done or error
7. Rebuild - The downstream site is signalled after a successful batch
"""

from lure_catalog.ingestion.registry import (
    SourceRegistry,
    SourceConfig,
    GlobalConfig,
    get_default_registry,
)
from lure_catalog.ingestion.fetcher import (
    PageFetcher,
    FetchResult,
)
from lure_catalog.ingestion.object_store import (
    ObjectStore,
    LocalObjectStore,
    S3ObjectStore,
    get_default_object_store,
)
from lure_catalog.ingestion.images import (
    ImageAsset,
    ImageRelocator,
)
from lure_catalog.ingestion.normalizer import VariantExpander
from lure_catalog.ingestion.writer import (
    CatalogWriter,
    WriteStats,
)
from lure_catalog.ingestion.status import StatusTracker
from lure_catalog.ingestion.rebuild import RebuildSignal
from lure_catalog.ingestion.pipeline import (
    IngestionPipeline,
    ItemResult,
    PipelineSummary,
    build_pipeline,
)

__all__ = [
    # Registry
    "SourceRegistry",
    "SourceConfig",
    "GlobalConfig",
    "get_default_registry",
    # Fetcher
    "PageFetcher",
    "FetchResult",
    # Object store
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
    "get_default_object_store",
    # Images
    "ImageAsset",
    "ImageRelocator",
    # Expansion and writing
    "VariantExpander",
    "CatalogWriter",
    "WriteStats",
    "StatusTracker",
    "RebuildSignal",
    # Pipeline
    "IngestionPipeline",
    "ItemResult",
    "PipelineSummary",
    "build_pipeline",
]
