"""Fetch image bytes from their stored URL.

Image records point at Telegram file URLs, and those URLs embed the bot
token.  Public pages therefore load images through the API, which fetches
the bytes server-side and returns them under a stable, cacheable path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from photofolio.core.errors import NotFoundError, StoreError
from photofolio.core.images import ImageService

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ImageContent:
    content: bytes
    content_type: str


class ImageProxy:
    """Resolve an image id to its bytes.

    Args:
        images: Image service used to look up the stored URL.
        client: HTTP client used for the upstream request.  When omitted the
            proxy creates its own and closes it in :meth:`close`.
        timeout: Seconds to wait for the upstream response.
    """

    def __init__(
        self,
        images: ImageService,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        self.images = images
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch(self, image_id: str) -> ImageContent:
        """Return the bytes and content type of *image_id*.

        Raises:
            NotFoundError: If the image record or its URL is missing.
            StoreError: If the upstream request fails.
        """
        image = self.images.get(image_id)
        url = image.get("url")
        if not url:
            raise NotFoundError("Image URL not found")

        try:
            logger.debug(f"Proxying image {image_id}")
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            # The URL carries the bot token, so it is not logged.
            logger.error(f"Failed to fetch image {image_id}: {type(e).__name__}")
            raise StoreError("Failed to fetch image") from e

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        return ImageContent(content=response.content, content_type=content_type)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
