"""Homepage pin list.

Pins are stored one document per photo (keyed by photo id) with an ``order``
field.  Every mutation computes the complete new list, re-numbers it so the
orders are exactly ``0..N-1``, and then replaces the stored collection with a
single batch that deletes every existing pin and writes every new one.
Readers therefore never observe a half-applied reorder.
"""

from __future__ import annotations

import logging
import threading

from photofolio.core.errors import NotFoundError, ValidationError
from photofolio.core.images import ImageService
from photofolio.core.store import DocumentStore, utc_now_iso

logger = logging.getLogger(__name__)

PUBLIC_IMAGE_FIELDS = (
    "id",
    "url",
    "file_id",
    "file_name",
    "file_size",
    "width",
    "height",
    "alt",
    "category",
    "uploaded_at",
)


def public_image(image: dict) -> dict:
    return {field: image[field] for field in PUBLIC_IMAGE_FIELDS if field in image}


def renumber(photo_ids: list[str]) -> list[dict]:
    """Return ``[{"photoId", "order"}]`` with dense zero-based orders."""
    return [{"photoId": photo_id, "order": index} for index, photo_id in enumerate(photo_ids)]


def pin_ids(pins: list[dict]) -> list[str]:
    return [pin["photoId"] for pin in pins]


def add_pin(pins: list[dict], photo_id: str) -> list[dict]:
    """Append *photo_id* at the end.  Already pinned ids are left where they are."""
    ids = pin_ids(pins)
    if photo_id not in ids:
        ids.append(photo_id)
    return renumber(ids)


def remove_pin(pins: list[dict], photo_id: str) -> list[dict]:
    """Drop *photo_id* and close the gap it leaves."""
    return renumber([pid for pid in pin_ids(pins) if pid != photo_id])


def move_pin(pins: list[dict], from_index: int, to_index: int) -> list[dict]:
    """Move the pin at *from_index* to *to_index* (drag-and-drop semantics).

    Raises:
        ValidationError: If either index is out of range.
    """
    ids = pin_ids(pins)
    for name, index in (("fromIndex", from_index), ("toIndex", to_index)):
        if not 0 <= index < len(ids):
            raise ValidationError(f"{name} {index} is out of range for {len(ids)} pinned photos")
    moved = ids.pop(from_index)
    ids.insert(to_index, moved)
    return renumber(ids)


def normalize_pins(pins: list[dict]) -> list[dict]:
    """Turn a client-supplied pin list into a dense, duplicate-free one.

    Entries are sorted by their supplied ``order`` (stable, so ties keep list
    position), later duplicates of a photo id are dropped, and orders are
    re-numbered from zero.
    """
    ordered = sorted(
        enumerate(pins),
        key=lambda item: (item[1].get("order", item[0]), item[0]),
    )
    ids = list(dict.fromkeys(pin["photoId"] for _, pin in ordered))
    return renumber(ids)


class HomepageService:
    """Read and mutate the homepage pin list.

    Args:
        store: Document store shared with the other services.
        collection: Name of the pin collection.
        images: Image service used to resolve pins for display.
    """

    def __init__(self, store: DocumentStore, collection: str, images: ImageService):
        self.store = store
        self.collection = collection
        self.images = images
        self._write_lock = threading.RLock()

    def get_pins(self) -> list[dict]:
        """Return the stored pins ordered by ``order``."""
        pins = [
            {"photoId": key, "order": doc.get("order", 0)}
            for key, doc in self.store.list(self.collection)
        ]
        pins.sort(key=lambda pin: pin["order"])
        return pins

    def _replace(self, existing: list[dict], pins: list[dict]) -> list[dict]:
        now = utc_now_iso()
        batch = self.store.batch()
        for pin in existing:
            batch.delete(self.collection, pin["photoId"])
        for pin in pins:
            batch.set(self.collection, pin["photoId"], {"order": pin["order"], "updatedAt": now})
        batch.commit()
        logger.info(f"Homepage pin list replaced ({len(pins)} photos)")
        return pins

    def replace(self, pins: list[dict]) -> list[dict]:
        """Replace the whole pin list with a client-supplied one."""
        with self._write_lock:
            return self._replace(self.get_pins(), normalize_pins(pins))

    def add(self, photo_id: str) -> list[dict]:
        if not photo_id:
            raise ValidationError("photoId is required")
        self.images.get(photo_id)
        with self._write_lock:
            existing = self.get_pins()
            return self._replace(existing, add_pin(existing, photo_id))

    def remove(self, photo_id: str) -> list[dict]:
        with self._write_lock:
            existing = self.get_pins()
            if photo_id not in pin_ids(existing):
                raise NotFoundError("Photo is not pinned to the homepage")
            return self._replace(existing, remove_pin(existing, photo_id))

    def move(self, from_index: int, to_index: int) -> list[dict]:
        with self._write_lock:
            existing = self.get_pins()
            return self._replace(existing, move_pin(existing, from_index, to_index))

    def pinned_images(self) -> list[dict]:
        """Resolve pins to public image fields in pin order.

        Only :data:`PUBLIC_IMAGE_FIELDS` are returned, so uploader ids and
        Telegram file paths stay private.  Pins whose image was deleted are
        skipped, and ``order`` is the position in the resolved list.
        """
        ids = pin_ids(self.get_pins())
        if not ids:
            return []
        found, missing = self.images.get_many(ids)
        if missing:
            logger.debug(f"Skipping dangling homepage pins: {missing}")
        return [{**public_image(image), "order": index} for index, image in enumerate(found)]
