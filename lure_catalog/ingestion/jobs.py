"""
Background Jobs Module
======================

Defines arq tasks for running the ingestion pipeline in a worker.
Uses Redis as the job queue backend. The worker runs one job at a time so
two pipeline runs never process the queue concurrently.
"""

from __future__ import annotations

import logging
import os
from typing import Any
from uuid import uuid4

from arq import create_pool
from arq.connections import RedisSettings
from arq.jobs import Job, JobStatus

from lure_catalog.db.engine import get_session
from lure_catalog.ingestion.pipeline import PipelineSummary, build_pipeline
from lure_catalog.ingestion.registry import get_default_registry

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from environment."""
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
    )


async def run_pipeline_sync(limit: int | None = None) -> PipelineSummary:
    """
    Run the pipeline in-process (without arq).

    Useful for CLI commands with --sync flag.

    Args:
        limit: Maximum number of items (None = max_items_per_run from config)

    Returns:
        PipelineSummary
    """
    registry = get_default_registry()
    if limit is None:
        limit = registry.global_config.max_items_per_run or None

    with get_session() as session:
        pipeline = build_pipeline(session, registry)
        return await pipeline.run(limit)


async def run_pipeline(ctx: dict[str, Any], limit: int | None = None) -> dict[str, Any]:
    """
    arq task: run the pipeline once.

    Args:
        ctx: arq context (contains Redis connection)
        limit: Maximum number of items to process

    Returns:
        PipelineSummary as dictionary
    """
    job_id = ctx.get("job_id", str(uuid4()))
    logger.info(f"Pipeline job {job_id} starting")
    summary = await run_pipeline_sync(limit)
    result = summary.to_dict()
    result["job_id"] = job_id
    return result


async def enqueue_pipeline_run(limit: int | None = None) -> str:
    """
    Enqueue a pipeline run for async processing.

    Args:
        limit: Maximum number of items to process

    Returns:
        Job ID
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = await redis.enqueue_job("run_pipeline", limit)
    finally:
        await redis.aclose()
    if job is None:
        raise RuntimeError("A pipeline job with this ID is already queued")
    return job.job_id


async def get_job_status(job_id: str) -> dict[str, Any] | None:
    """
    Get the status of a pipeline job.

    Args:
        job_id: Job ID to look up

    Returns:
        Job info dict, or None if not found
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = Job(job_id, redis)
        status = await job.status()
        if status == JobStatus.not_found:
            return None

        result = None
        if status == JobStatus.complete:
            info = await job.result_info()
            result = info.result if info else None
    finally:
        await redis.aclose()

    return {
        "job_id": job_id,
        "status": status.value,
        "result": result,
    }


class WorkerSettings:
    """arq worker settings."""

    functions = [run_pipeline]
    redis_settings = get_redis_settings()
    max_jobs = 1
    job_timeout = 3600  # 1 hour
    keep_result = 86400  # 24 hours
