"""Tests for photofolio.core.image_proxy — fetching image bytes by id.

Tests cover:
- Bytes and upstream content type are returned for a known image.
- Missing records and records without a URL are 404s.
- Upstream HTTP errors and transport failures become StoreError.
"""

from __future__ import annotations

import httpx
import pytest

from photofolio.core.errors import NotFoundError, StoreError
from photofolio.core.image_proxy import ImageProxy


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestImageProxy:
    def test_fetch_returns_bytes_and_type(self, image_service, make_image):
        make_image("img1")
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})

        proxy = ImageProxy(image_service, _client(handler))
        image = proxy.fetch("img1")

        assert image.content == b"\x89PNG"
        assert image.content_type == "image/png"
        assert seen == ["https://api.telegram.org/file/bot-token/photos/img1.jpg"]

    def test_missing_content_type_defaults_to_jpeg(self, image_service, make_image):
        make_image("img1")
        proxy = ImageProxy(image_service, _client(lambda request: httpx.Response(200, content=b"x")))
        assert proxy.fetch("img1").content_type == "image/jpeg"

    def test_unknown_image(self, image_service):
        proxy = ImageProxy(image_service, _client(lambda request: httpx.Response(200)))
        with pytest.raises(NotFoundError, match="Image not found"):
            proxy.fetch("ghost")

    def test_record_without_url(self, store, image_service, test_config):
        store.set(test_config.images_collection, "bare", {"id": "bare", "alt": ""})
        proxy = ImageProxy(image_service, _client(lambda request: httpx.Response(200)))
        with pytest.raises(NotFoundError, match="Image URL not found"):
            proxy.fetch("bare")

    def test_upstream_error_status(self, image_service, make_image):
        make_image("img1")
        proxy = ImageProxy(image_service, _client(lambda request: httpx.Response(404)))
        with pytest.raises(StoreError, match="Failed to fetch image"):
            proxy.fetch("img1")

    def test_transport_failure(self, image_service, make_image):
        make_image("img1")

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        proxy = ImageProxy(image_service, _client(handler))
        with pytest.raises(StoreError):
            proxy.fetch("img1")

    def test_close_leaves_injected_client_open(self, image_service):
        client = _client(lambda request: httpx.Response(200))
        ImageProxy(image_service, client).close()
        assert not client.is_closed

    def test_close_owned_client(self, image_service):
        proxy = ImageProxy(image_service)
        proxy.close()
        assert proxy.client.is_closed
