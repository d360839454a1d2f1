"""
Error Taxonomy
==============

Exceptions raised by pipeline components. The orchestrator is the only
place that turns these into work item status changes.
"""

from __future__ import annotations


class LureCatalogError(Exception):
    """Base class for all lure catalog errors."""


class ConfigError(LureCatalogError):
    """Configuration is missing or invalid."""


class AdapterError(LureCatalogError):
    """A source page could not be turned into a valid ExtractionResult."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class UnknownSourceError(AdapterError):
    """No adapter is registered for a work item's source identifier."""

    def __init__(self, source: str, known: list[str] | None = None) -> None:
        message = f"No adapter registered for source '{source}'"
        if known:
            message += f". Supported: {', '.join(sorted(known))}"
        super().__init__(message)
        self.source = source


class ImageError(LureCatalogError):
    """A single image failed to download, transcode or upload."""

    def __init__(self, message: str, image_url: str, key: str | None = None) -> None:
        super().__init__(message)
        self.image_url = image_url
        self.key = key


class RowInsertError(LureCatalogError):
    """A single catalog row could not be inserted."""


class StoreConnectivityError(LureCatalogError):
    """The task queue or catalog store is unreachable."""


class InvalidTransitionError(LureCatalogError):
    """A work item status change is not allowed by the state machine."""
