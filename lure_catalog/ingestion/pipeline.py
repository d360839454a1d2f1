"""
Ingestion Pipeline Module
=========================

Drives one batch run over the task queue:

1. List pending work items (optionally capped)
2. For each item: mark in progress, extract with the source's adapter,
   relocate images, expand colors x weights, write new rows, mark done
   or error
3. Wait politely between items
4. Signal a downstream rebuild if anything succeeded

Items are processed strictly one at a time. A failure in one item is
recorded on that item and never stops the batch; only an unreachable
task queue at the start aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from lure_catalog.core.enums import ItemOutcome
from lure_catalog.core.errors import AdapterError, ImageError, LureCatalogError, RowInsertError
from lure_catalog.core.schema import ColorVariant, ExtractionResult, WorkItem
from lure_catalog.db.repositories import (
    CatalogRepository,
    CatalogStore,
    TaskQueueStore,
    WorkItemRepository,
)
from lure_catalog.ingestion.adapters import AdapterRegistry, build_adapter_registry
from lure_catalog.ingestion.fetcher import PageFetcher
from lure_catalog.ingestion.images import ImageRelocator
from lure_catalog.ingestion.normalizer import VariantExpander
from lure_catalog.ingestion.object_store import ObjectStore, get_default_object_store
from lure_catalog.ingestion.rebuild import RebuildSignal, create_rebuild_signal_from_env
from lure_catalog.ingestion.registry import SourceRegistry, get_default_registry
from lure_catalog.ingestion.retry import RetryPolicy
from lure_catalog.ingestion.status import StatusTracker, done_note
from lure_catalog.ingestion.writer import CatalogWriter

logger = logging.getLogger(__name__)


@dataclass
class ItemResult:
    """Outcome of processing one work item."""

    item_id: str
    name: str
    url: str
    outcome: ItemOutcome
    message: str = ""
    colors_processed: int = 0
    rows_inserted: int = 0
    rows_skipped: int = 0
    rows_failed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.outcome == ItemOutcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "item_id": self.item_id,
            "name": self.name,
            "url": self.url,
            "outcome": self.outcome.value,
            "message": self.message,
            "colors_processed": self.colors_processed,
            "rows_inserted": self.rows_inserted,
            "rows_skipped": self.rows_skipped,
            "rows_failed": self.rows_failed,
        }


@dataclass
class PipelineSummary:
    """Totals for a pipeline run."""

    results: list[ItemResult] = field(default_factory=list)
    pending_total: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    elapsed_seconds: float = 0.0
    rebuild_triggered: bool = False

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def errored(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)

    @property
    def rows_inserted(self) -> int:
        return sum(r.rows_inserted for r in self.results)

    @property
    def rows_skipped(self) -> int:
        return sum(r.rows_skipped for r in self.results)

    @property
    def colors_processed(self) -> int:
        return sum(r.colors_processed for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "errored": self.errored,
            "rows_inserted": self.rows_inserted,
            "rows_skipped": self.rows_skipped,
            "colors_processed": self.colors_processed,
            "pending_total": self.pending_total,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "elapsed_seconds": self.elapsed_seconds,
            "rebuild_triggered": self.rebuild_triggered,
            "results": [r.to_dict() for r in self.results],
        }


class IngestionPipeline:
    """
    Sequential batch orchestrator.

    The only component that decides whether a work item ends Done or Error.
    """

    def __init__(
        self,
        queue: TaskQueueStore,
        catalog: CatalogStore,
        adapters: AdapterRegistry,
        relocator: ImageRelocator,
        expander: VariantExpander | None = None,
        rebuild_signal: RebuildSignal | None = None,
        page_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        manufacturers: Mapping[str, str] | None = None,
    ) -> None:
        self.queue = queue
        # source id -> manufacturer display name; unknown sources use the id
        self.manufacturers = dict(manufacturers or {})
        self.adapters = adapters
        self.relocator = relocator
        self.expander = expander or VariantExpander()
        self.rebuild_signal = rebuild_signal
        self.page_delay = page_delay
        self.writer = CatalogWriter(catalog)
        self.tracker = StatusTracker(queue)
        self._sleep = sleep

    async def run(self, limit: int | None = None) -> PipelineSummary:
        """
        Process pending work items.

        Args:
            limit: Maximum number of items (None or 0 = all pending)

        Returns:
            PipelineSummary for the run

        Raises:
            StoreConnectivityError: if pending items cannot be listed
        """
        logger.info("Lure catalog pipeline starting")
        started = time.monotonic()
        summary = PipelineSummary(started_at=datetime.now(UTC))

        pending = self.queue.list_pending()
        summary.pending_total = len(pending)
        items = pending[:limit] if limit else pending

        if not items:
            logger.info("No pending work items")
        else:
            suffix = f" (limit {limit})" if limit else ""
            logger.info(f"Processing {len(items)} of {len(pending)} pending item(s){suffix}")

        for i, item in enumerate(items):
            logger.info(f"--- Item {i + 1} of {len(items)} ---")
            summary.results.append(await self.process_item(item))

            if i < len(items) - 1 and self.page_delay > 0:
                logger.debug(f"Waiting {self.page_delay}s before next item...")
                await self._sleep(self.page_delay)

        if summary.succeeded > 0 and self.rebuild_signal is not None:
            summary.rebuild_triggered = await self.rebuild_signal.trigger()

        summary.completed_at = datetime.now(UTC)
        summary.elapsed_seconds = round(time.monotonic() - started, 1)
        self._log_summary(summary)
        return summary

    async def process_item(self, item: WorkItem) -> ItemResult:
        """
        Run one work item end to end and record its terminal status.

        Never raises; every failure ends in an ERROR result.
        """
        label = item.name or item.url or item.id
        logger.info(f"=== Processing: {label} ({item.url}) ===")

        if not item.url:
            message = "Work item has no URL"
            logger.error(f"{label}: {message}")
            self._record_failure(item, message)
            return self._error_result(item, message)

        try:
            self.tracker.start(item)

            adapter = self.adapters.resolve(item.source)
            result = await adapter.extract(item.url)
            problems = adapter.validate_result(result)
            if problems:
                raise AdapterError(f"Invalid extraction: {'; '.join(problems)}", url=item.url)

            if result.source != item.source:
                logger.warning(
                    f"Adapter reported source '{result.source}' for {label}; "
                    f"using the work item's source '{item.source}'"
                )
                result = result.model_copy(update={"source": item.source})

            logger.info(
                f"Extracted: {result.name}, {len(result.colors)} colors, "
                f"{len(result.weights)} weights, price: {result.price}"
            )

            colors = self.expander.effective_colors(result)
            image_urls = await self.relocator.relocate_colors(result.source, result.slug, colors)
            main_image_url = await self._relocate_main_image(result, colors, image_urls)

            rows = self.expander.expand(
                result,
                image_urls,
                main_image_url,
                manufacturer=self.manufacturers.get(item.source),
            )
            stats = self.writer.write(rows)
            if stats.all_failed:
                raise RowInsertError(
                    f"All {stats.attempted} rows failed to insert: {stats.errors[0]}"
                )

            note = done_note(
                len(colors),
                len(result.weights) or 1,
                stats.inserted,
                stats.skipped,
                stats.failed,
            )
            self.tracker.complete(item, note)
        except LureCatalogError as e:
            logger.error(f"Failed to process {label}: {e}")
            self._record_failure(item, str(e))
            return self._error_result(item, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error processing {label}")
            message = str(e) or e.__class__.__name__
            self._record_failure(item, message)
            return self._error_result(item, message)

        logger.info(f"{label}: {note}")
        return ItemResult(
            item_id=item.id,
            name=label,
            url=item.url,
            outcome=ItemOutcome.SUCCESS,
            message=note,
            colors_processed=len(colors),
            rows_inserted=stats.inserted,
            rows_skipped=stats.skipped,
            rows_failed=stats.failed,
        )

    async def _relocate_main_image(
        self,
        result: ExtractionResult,
        colors: list[ColorVariant],
        image_urls: dict[str, str],
    ) -> str | None:
        """
        Relocate the product's main image when some color lacks its own.

        Without adapter colors the main image was already relocated as the
        placeholder color, so nothing more is fetched.
        """
        if not result.colors:
            return image_urls.get(self.expander.placeholder_color)
        if not result.main_image or all(c.name in image_urls for c in colors):
            return None
        try:
            asset = await self.relocator.relocate(
                result.main_image, f"{result.source}/{result.slug}/main.webp"
            )
        except ImageError as e:
            logger.warning(f"Failed to relocate main image for {result.slug}: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error relocating main image for {result.slug}: {e}")
            return None
        return asset.public_url

    def _record_failure(self, item: WorkItem, message: str) -> None:
        try:
            self.tracker.fail(item, message)
        except Exception as e:
            logger.error(f"Failed to record error status for {item.name or item.id}: {e}")

    @staticmethod
    def _error_result(item: WorkItem, message: str) -> ItemResult:
        return ItemResult(
            item_id=item.id,
            name=item.name or item.url or item.id,
            url=item.url,
            outcome=ItemOutcome.ERROR,
            message=message,
        )

    @staticmethod
    def _log_summary(summary: PipelineSummary) -> None:
        logger.info("Pipeline summary")
        logger.info(f"Total items processed: {summary.processed}")
        logger.info(f"Successful: {summary.succeeded}")
        logger.info(f"Errors: {summary.errored}")
        logger.info(f"Total rows inserted: {summary.rows_inserted}")
        logger.info(f"Total colors processed: {summary.colors_processed}")
        logger.info(f"Elapsed time: {summary.elapsed_seconds}s")
        for result in summary.results:
            icon = "OK" if result.succeeded else "FAIL"
            logger.info(f"  [{icon}] {result.name}: {result.message}")


def build_pipeline(
    session: Session,
    registry: SourceRegistry | None = None,
    object_store: ObjectStore | None = None,
    rebuild_signal: RebuildSignal | None = None,
) -> IngestionPipeline:
    """
    Wire a pipeline from configuration.

    Args:
        session: Database session backing the task queue and catalog
        registry: Source registry (default: sources.yaml)
        object_store: Image destination (default: from environment)
        rebuild_signal: Rebuild webhook (default: REBUILD_WEBHOOK_URL, if set)

    Returns:
        Ready-to-run IngestionPipeline
    """
    registry = registry or get_default_registry()
    global_config = registry.global_config

    fetcher = PageFetcher(global_config.user_agent, global_config.request_timeout)
    relocator = ImageRelocator(
        object_store=object_store or get_default_object_store(),
        user_agent=global_config.user_agent,
        max_width=global_config.image.max_width,
        quality=global_config.image.quality,
        referers=registry.image_referers(),
        retry=RetryPolicy(max_attempts=global_config.image.max_attempts),
        timeout=global_config.request_timeout,
    )
    if rebuild_signal is None:
        rebuild_signal = create_rebuild_signal_from_env(
            global_config.rebuild.max_attempts,
            global_config.rebuild.backoff_seconds,
        )

    return IngestionPipeline(
        queue=WorkItemRepository(session),
        catalog=CatalogRepository(session),
        adapters=build_adapter_registry(registry, fetcher),
        relocator=relocator,
        expander=VariantExpander(),
        rebuild_signal=rebuild_signal,
        page_delay=global_config.page_delay_seconds,
        manufacturers={s.name: s.display_name for s in registry.list_sources()},
    )
