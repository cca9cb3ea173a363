"""Shared pytest fixtures for Photofolio tests."""

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from photofolio.api.main import create_app
from photofolio.core.auth import StaticTokenVerifier
from photofolio.core.categories import CategoryService
from photofolio.core.config import PhotofolioConfig
from photofolio.core.homepage import HomepageService
from photofolio.core.images import ImageService
from photofolio.core.settings_store import SettingsService
from photofolio.core.store import JsonDocumentStore

TEST_TOKEN = "test-token"


@pytest.fixture
def test_config(tmp_path: Path) -> PhotofolioConfig:
    """Create a test configuration backed by a temporary data directory.

    Returns:
        PhotofolioConfig using the JSON store and the static verifier
    """
    return PhotofolioConfig(
        store_backend="json",
        data_dir=tmp_path / "data",
        auth_backend="static",
        static_token=TEST_TOKEN,
        _env_file=None,
    )


@pytest.fixture
def store(test_config: PhotofolioConfig) -> JsonDocumentStore:
    return JsonDocumentStore(test_config.data_dir)


@pytest.fixture
def image_service(store: JsonDocumentStore, test_config: PhotofolioConfig) -> ImageService:
    return ImageService(store, test_config.images_collection)


@pytest.fixture
def category_service(
    store: JsonDocumentStore, test_config: PhotofolioConfig, image_service: ImageService
) -> CategoryService:
    return CategoryService(store, test_config.categories_collection, image_service)


@pytest.fixture
def homepage_service(
    store: JsonDocumentStore, test_config: PhotofolioConfig, image_service: ImageService
) -> HomepageService:
    return HomepageService(store, test_config.homepage_collection, image_service)


@pytest.fixture
def settings_service(store: JsonDocumentStore, test_config: PhotofolioConfig) -> SettingsService:
    return SettingsService(store, test_config.settings_collection)


@pytest.fixture
def make_image(image_service: ImageService):
    """Return a helper that registers an image with a predictable id.

    Usage::

        make_image("img1", alt="Eiffel tower")
    """

    counter = iter(range(10_000))

    def _make(image_id: str, **fields) -> dict:
        metadata = {
            "id": image_id,
            "url": f"https://api.telegram.org/file/bot-token/photos/{image_id}.jpg",
            "file_id": f"file-{image_id}",
            "file_name": f"{image_id}.jpg",
            "file_size": 1024,
            "file_type": "image/jpeg",
            "uploaded_at": f"2025-01-01T00:{next(counter):02d}:00+00:00",
        }
        metadata.update(fields)
        return image_service.register(metadata, uploaded_by="uploader")

    return _make


@pytest.fixture
def test_client(
    test_config: PhotofolioConfig, store: JsonDocumentStore
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the temporary JSON store.

    The client is used as a context manager so the lifespan runs and
    ``app.state`` is populated.
    """
    app = create_app(
        test_config,
        store=store,
        verifier=StaticTokenVerifier(TEST_TOKEN, uid="admin-uid"),
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
