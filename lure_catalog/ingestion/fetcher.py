"""
Page Fetcher Module
===================

Shared HTTP fetching for extraction adapters: a descriptive User-Agent,
per-request timeout and optional extra headers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from lure_catalog.core.errors import AdapterError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    content: bytes
    status_code: int
    encoding: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if fetch was successful."""
        return self.error is None and 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Decode the content using the response encoding (UTF-8 fallback)."""
        return self.content.decode(self.encoding or "utf-8", errors="replace")


class PageFetcher:
    """
    HTTP client used by adapters to read product pages.

    Accepts an existing httpx.AsyncClient so tests can inject a
    MockTransport-backed client.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> FetchResult:
        """
        Fetch a URL.

        Transport errors are reported on the result rather than raised.

        Args:
            url: URL to fetch
            headers: Extra request headers

        Returns:
            FetchResult with content or error
        """
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)

        try:
            if self._client is not None:
                response = await self._client.get(
                    url, headers=request_headers, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(
                        url, headers=request_headers, follow_redirects=True
                    )
        except httpx.TimeoutException:
            logger.warning(f"Timeout fetching {url}")
            return self._failed(url, f"Timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error fetching {url}: {e}")
            return self._failed(url, str(e))

        return FetchResult(
            url=url,
            content=response.content,
            status_code=response.status_code,
            encoding=response.encoding,
            error=None if response.is_success else f"HTTP {response.status_code}",
        )

    async def fetch_text(self, url: str, headers: dict[str, str] | None = None) -> str:
        """
        Fetch a page and return its decoded text.

        Raises:
            AdapterError: on transport errors and non-2xx responses
        """
        result = await self.fetch(url, headers)
        if not result.success:
            raise AdapterError(f"Failed to fetch {url}: {result.error}", url=url)
        return result.text

    @staticmethod
    def _failed(url: str, error: str) -> FetchResult:
        return FetchResult(url=url, content=b"", status_code=0, error=error)
