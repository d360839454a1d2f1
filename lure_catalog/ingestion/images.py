"""
Image Relocation Module
=======================

Downloads product images from source sites, transcodes them to a
width-bounded WebP and uploads them to the object store so the catalog
never hot-links a manufacturer's CDN.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from lure_catalog.core.errors import ImageError
from lure_catalog.core.schema import ColorVariant
from lure_catalog.ingestion.object_store import IMMUTABLE_CACHE_CONTROL, ObjectStore
from lure_catalog.ingestion.retry import RetryPolicy

logger = logging.getLogger(__name__)

WEBP_CONTENT_TYPE = "image/webp"


@dataclass
class ImageAsset:
    """A relocated image."""

    remote_url: str
    key: str
    public_url: str
    size_bytes: int = 0


def image_key(source: str, slug: str, index: int) -> str:
    """
    Build the object key for the index-th color image (0-based index).

    Example: image_key("megabass", "vision-110", 0) -> "megabass/vision-110/01.webp"
    """
    return f"{source}/{slug}/{index + 1:02d}.webp"


class ImageRelocator:
    """
    Relocates remote images into the object store.

    Each call is independent: a failed image raises ImageError for that
    image only.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        user_agent: str,
        max_width: int = 500,
        quality: int = 80,
        referers: dict[str, str] | None = None,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the relocator.

        Args:
            object_store: Destination store
            user_agent: User-Agent header for image downloads
            max_width: Maximum output width in pixels (never upscaled)
            quality: WebP quality (0-100)
            referers: Map of host fragment -> Referer header, for CDNs
                that reject requests without one
            retry: Retry policy per image (default: single attempt)
            timeout: Download timeout in seconds
            client: Shared httpx client (tests inject a MockTransport one)
            sleep: Sleep used between retries
        """
        self.object_store = object_store
        self.user_agent = user_agent
        self.max_width = max_width
        self.quality = quality
        self.referers = dict(referers or {})
        self.retry = retry or RetryPolicy(max_attempts=1)
        self.timeout = timeout
        self._client = client
        self._sleep = sleep

    def headers_for(self, image_url: str) -> dict[str, str]:
        """Request headers for an image URL, including any Referer override."""
        headers = {"User-Agent": self.user_agent}
        host = urlparse(image_url).netloc.lower()
        for fragment, referer in self.referers.items():
            if fragment and fragment.lower() in host:
                headers["Referer"] = referer
                break
        return headers

    async def relocate(self, image_url: str, key: str) -> ImageAsset:
        """
        Download, transcode and upload one image.

        Args:
            image_url: Remote image URL
            key: Destination object key

        Returns:
            ImageAsset with the public URL

        Raises:
            ImageError: if any step fails after the retry policy is exhausted
        """

        async def attempt() -> ImageAsset:
            return await self._relocate_once(image_url, key)

        return await self.retry.call(attempt, retry_on=ImageError, sleep=self._sleep)

    async def relocate_colors(
        self,
        source: str,
        slug: str,
        colors: list[ColorVariant],
    ) -> dict[str, str]:
        """
        Relocate every color image that has a URL.

        Keys use the color's 1-based position in `colors`. Any failure is
        logged and only that color is left out of the returned map.

        Returns:
            Dict of color name -> public URL
        """
        urls: dict[str, str] = {}
        for i, color in enumerate(colors):
            if not color.image_url:
                logger.debug(f"Skipping color {i} ({color.name}): no image URL")
                continue
            try:
                asset = await self.relocate(color.image_url, image_key(source, slug, i))
            except ImageError as e:
                logger.warning(f"Failed to relocate image for color {color.name}: {e}")
                continue
            except Exception as e:
                logger.exception(f"Unexpected error relocating image for color {color.name}: {e}")
                continue
            urls[color.name] = asset.public_url
        logger.info(f"Relocated {len(urls)} color images for {source}/{slug}")
        return urls

    def transcode(self, data: bytes) -> bytes:
        """
        Convert image bytes to WebP no wider than max_width.

        Raises:
            ImageError: if the bytes are not a decodable image
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                img = self._normalize_mode(img)
                if img.width > self.max_width:
                    height = max(1, round(img.height * self.max_width / img.width))
                    img = img.resize((self.max_width, height), Image.Resampling.LANCZOS)
                out = io.BytesIO()
                img.save(out, format="WEBP", quality=self.quality)
                return out.getvalue()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageError(f"Cannot transcode image: {e}", image_url="") from e

    @staticmethod
    def _normalize_mode(img: Image.Image) -> Image.Image:
        if img.mode in ("RGB", "RGBA"):
            return img
        has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
        return img.convert("RGBA" if has_alpha else "RGB")

    async def _download(self, image_url: str) -> bytes:
        try:
            headers = self.headers_for(image_url)
            if self._client is not None:
                response = await self._client.get(image_url, headers=headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(image_url, headers=headers, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise ImageError(f"Failed to download image: {e}", image_url=image_url) from e

        if not response.is_success:
            raise ImageError(
                f"Failed to download image: HTTP {response.status_code} for {image_url}",
                image_url=image_url,
            )
        return response.content

    async def _relocate_once(self, image_url: str, key: str) -> ImageAsset:
        logger.debug(f"Downloading image: {image_url}")
        data = await self._download(image_url)

        try:
            webp = self.transcode(data)
        except ImageError as e:
            raise ImageError(str(e), image_url=image_url, key=key) from e

        try:
            public_url = self.object_store.put(
                key, webp, WEBP_CONTENT_TYPE, cache_control=IMMUTABLE_CACHE_CONTROL
            )
        except Exception as e:
            raise ImageError(f"Failed to upload {key}: {e}", image_url=image_url, key=key) from e

        logger.info(f"Uploaded {key} ({len(webp) / 1024:.1f} KB)")
        return ImageAsset(
            remote_url=image_url,
            key=key,
            public_url=public_url,
            size_bytes=len(webp),
        )
