"""Image Store: metadata records for photos uploaded to Telegram.

The binary never passes through this service.  The upload pipeline posts the
file to Telegram and then registers the resulting metadata here.  Records are
deleted independently of category membership and homepage pins, so other
services must tolerate ids that no longer resolve.
"""

from __future__ import annotations

import logging
import time

from photofolio.core.errors import NotFoundError, ValidationError
from photofolio.core.store import DocumentStore, utc_now_iso

logger = logging.getLogger(__name__)

IMAGE_FIELDS = (
    "id",
    "url",
    "file_id",
    "file_name",
    "file_size",
    "file_type",
    "uploaded_by",
    "uploaded_at",
    "alt",
    "telegram_file_path",
)


def generate_image_id() -> str:
    """Return a new image id in the ``tg-<epoch millis>`` form."""
    return f"tg-{int(time.time() * 1000)}"


class ImageService:
    """CRUD over the image metadata collection."""

    def __init__(self, store: DocumentStore, collection: str):
        self.store = store
        self.collection = collection

    def register(self, metadata: dict, uploaded_by: str) -> dict:
        """Store metadata for a freshly uploaded image.

        Unknown keys are dropped.  ``id`` and ``uploaded_at`` are generated
        when absent, ``uploaded_by`` is always the verified caller.

        Returns:
            The stored record.
        """
        if not metadata.get("url"):
            raise ValidationError("Image URL is required")

        record = {key: metadata[key] for key in IMAGE_FIELDS if metadata.get(key) is not None}
        record.setdefault("id", generate_image_id())
        record.setdefault("uploaded_at", utc_now_iso())
        record.setdefault("alt", "")
        record["uploaded_by"] = uploaded_by

        self.store.set(self.collection, record["id"], record)
        logger.info(f"Registered image {record['id']} ({record.get('file_name')})")
        return record

    def list_images(self) -> list[dict]:
        """Return every image, newest upload first."""
        images = [{**doc, "id": key} for key, doc in self.store.list(self.collection)]
        images.sort(key=lambda img: img.get("uploaded_at") or "", reverse=True)
        return images

    def get(self, image_id: str) -> dict:
        doc = self.store.get(self.collection, image_id)
        if doc is None:
            raise NotFoundError("Image not found")
        return {**doc, "id": image_id}

    def get_many(self, image_ids: list[str]) -> tuple[list[dict], list[str]]:
        """Fetch several images at once.

        Returns:
            ``(found, missing)`` where *found* keeps the order of
            *image_ids* and *missing* lists ids with no record.
        """
        docs = self.store.get_all(self.collection, image_ids)
        found: list[dict] = []
        missing: list[str] = []
        for image_id, doc in zip(image_ids, docs):
            if doc is None:
                missing.append(image_id)
            else:
                found.append({**doc, "id": image_id})
        return found, missing

    def update_alt(self, image_id: str, alt: str | None) -> None:
        if not image_id:
            raise ValidationError("Image ID is required")
        if self.store.get(self.collection, image_id) is None:
            raise NotFoundError("Image not found")
        self.store.update(
            self.collection,
            image_id,
            {"alt": alt or "", "updated_at": utc_now_iso()},
        )

    def delete(self, image_id: str) -> None:
        """Delete an image record.

        Category entries and homepage pins that reference the id are left in
        place; readers skip them.
        """
        if not image_id:
            raise ValidationError("Image ID is required")
        self.store.delete(self.collection, image_id)
        logger.info(f"Deleted image {image_id}")
