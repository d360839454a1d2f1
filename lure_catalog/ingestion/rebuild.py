"""
Rebuild Signal Module
=====================

Notifies the downstream site build (a deploy webhook) that the catalog
changed. Best effort: failures are logged, never raised.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable

import httpx

from lure_catalog.ingestion.retry import RetryPolicy

logger = logging.getLogger(__name__)


class RebuildSignal:
    """
    POSTs to a deploy webhook.

    Rate-limited responses (429) are retried with linear backoff
    (10s, 20s, ... by default). Any other failure is logged and dropped.
    """

    def __init__(
        self,
        webhook_url: str,
        max_attempts: int = 3,
        backoff_seconds: float = 10.0,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.webhook_url = webhook_url
        self.retry = RetryPolicy(
            max_attempts=max_attempts,
            delay_seconds=backoff_seconds,
            backoff="linear",
            max_delay_seconds=backoff_seconds * max_attempts,
        )
        self.timeout = timeout
        self._client = client
        self._sleep = sleep

    async def trigger(self) -> bool:
        """
        Fire the webhook. Never raises.

        Returns:
            True if the webhook accepted the request, False otherwise
        """
        logger.info("Triggering downstream rebuild...")
        try:
            response = await self.retry.call(
                self._post,
                retry_if=lambda r: r.status_code == 429,
                sleep=self._sleep,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Rebuild webhook error: {e}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected rebuild webhook error: {e}")
            return False

        if response.is_success:
            logger.info("Rebuild triggered successfully")
            return True
        if response.status_code == 429:
            logger.error("Rebuild webhook still rate limited after all retries; rebuild manually if needed")
        else:
            logger.error(f"Rebuild webhook failed: HTTP {response.status_code}")
        return False

    async def _post(self) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.webhook_url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.webhook_url)


def create_rebuild_signal_from_env(
    max_attempts: int = 3,
    backoff_seconds: float = 10.0,
) -> RebuildSignal | None:
    """Build a RebuildSignal from REBUILD_WEBHOOK_URL, or None when it is unset."""
    webhook_url = os.environ.get("REBUILD_WEBHOOK_URL")
    if not webhook_url:
        return None
    return RebuildSignal(webhook_url, max_attempts=max_attempts, backoff_seconds=backoff_seconds)
