"""Category store and membership reconciliation.

A category is a document keyed by its slug that holds a denormalized, ordered
copy of selected image fields::

    {
        "slug": "paris",
        "images": [{"id", "url", "file_name", "alt", "variant", "uploaded_at"}],
        "createdAt": "...",
        "updatedAt": "...",
    }

The service in this module keeps three rules true across every mutation:

- an image id appears in at most one category's ``images`` array
- a category document never exists with an empty ``images`` array
- every category document that changes gets a fresh ``updatedAt``

Each mutation reads the categories it needs, computes the new documents in
memory, and commits all of them with one store batch.  Mutations are also
serialized through a single writer lock, so two requests in the same process
cannot interleave their read-modify-write cycles and drop each other's
changes.
"""

from __future__ import annotations

import logging
import threading

from photofolio.core.errors import ConflictError, NotFoundError, ValidationError
from photofolio.core.images import ImageService
from photofolio.core.store import DocumentStore, utc_now_iso

logger = logging.getLogger(__name__)

VARIANTS = ("original", "square")
DEFAULT_VARIANT = "original"
EDITABLE_PHOTO_FIELDS = ("alt", "url", "variant")


def validate_variant(variant: str | None) -> str | None:
    """Return *variant* unchanged if it is ``None`` or a known variant.

    Raises:
        ValidationError: For any other value.
    """
    if variant is not None and variant not in VARIANTS:
        raise ValidationError(f"Unknown variant '{variant}' (expected one of {', '.join(VARIANTS)})")
    return variant


def build_category_photo(image: dict, variant: str) -> dict:
    """Build the denormalized entry stored inside a category for *image*."""
    return {
        "id": image["id"],
        "url": image.get("url") or "",
        "file_name": image.get("file_name") or "",
        "alt": image.get("alt") or "",
        "variant": variant,
        "uploaded_at": image.get("uploaded_at") or utc_now_iso(),
    }


def find_photo_index(photos: list[dict], image_id: str) -> int:
    """Return the index of the entry with *image_id*, or ``-1``."""
    return next((i for i, photo in enumerate(photos) if photo.get("id") == image_id), -1)


def remove_photos(photos: list[dict], image_ids: set[str]) -> list[dict]:
    """Return *photos* without the entries whose id is in *image_ids*.

    Order of the surviving entries is preserved.
    """
    return [photo for photo in photos if photo.get("id") not in image_ids]


class CategoryService:
    """Category CRUD plus the reconciliation rules described in the module docstring.

    Args:
        store: Document store shared with the other services.
        collection: Name of the category collection.
        images: Image service used to validate ids and copy image fields.
    """

    def __init__(self, store: DocumentStore, collection: str, images: ImageService):
        self.store = store
        self.collection = collection
        self.images = images
        self._write_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_categories(self) -> list[dict]:
        """Return all categories, most recently updated first."""
        categories = [{**doc, "slug": key} for key, doc in self.store.list(self.collection)]
        categories.sort(key=lambda c: c.get("updatedAt") or "", reverse=True)
        return categories

    def get_category(self, slug: str) -> dict | None:
        doc = self.store.get(self.collection, slug)
        if doc is None:
            return None
        return {**doc, "slug": slug}

    def _require_category(self, slug: str) -> dict:
        doc = self.store.get(self.collection, slug)
        if doc is None:
            raise NotFoundError("Category not found")
        return doc

    # ------------------------------------------------------------------
    # Single image assignment
    # ------------------------------------------------------------------

    def assign(self, image_id: str, slug: str | None, variant: str | None = None) -> dict:
        """Move one image into *slug*, or out of every category if *slug* is blank.

        Variant resolution: an explicit *variant* wins; otherwise the variant
        of the image's current entry (target category first) is kept;
        otherwise ``"original"``.

        Args:
            image_id: Id of an existing image.
            slug: Target category.  ``None`` or blank removes the image from
                all categories.
            variant: Optional display variant.

        Returns:
            Dictionary with ``slug`` (``None`` when uncategorized),
            ``variant``, and ``moved`` (``False`` when the image was already
            in the target and only its entry was refreshed).

        Raises:
            ValidationError: If *image_id* is empty or *variant* is unknown.
            NotFoundError: If the image does not exist.
        """
        if not image_id:
            raise ValidationError("Image ID is required")
        validate_variant(variant)
        image = self.images.get(image_id)
        target = (slug or "").strip()

        with self._write_lock:
            now = utc_now_iso()
            batch = self.store.batch()
            target_doc: dict | None = None
            target_index = -1
            previous_variant: str | None = None

            for key, doc in self.store.list(self.collection):
                photos = list(doc.get("images") or [])
                index = find_photo_index(photos, image_id)

                if key == target:
                    target_doc, target_index = doc, index
                    if index != -1:
                        previous_variant = photos[index].get("variant")
                    continue

                if index == -1:
                    continue

                previous_variant = previous_variant or photos[index].get("variant")
                remaining = remove_photos(photos, {image_id})
                if remaining:
                    batch.set(self.collection, key, {**doc, "images": remaining, "updatedAt": now})
                else:
                    batch.delete(self.collection, key)
                    logger.info(f"Category '{key}' emptied and deleted")

            resolved_variant = variant or previous_variant or DEFAULT_VARIANT

            if target:
                photo = build_category_photo(image, resolved_variant)
                if target_doc is None:
                    batch.set(
                        self.collection,
                        target,
                        {"slug": target, "images": [photo], "createdAt": now, "updatedAt": now},
                    )
                else:
                    photos = list(target_doc.get("images") or [])
                    if target_index != -1:
                        photos[target_index] = photo
                    else:
                        photos.append(photo)
                    batch.set(
                        self.collection, target, {**target_doc, "images": photos, "updatedAt": now}
                    )

            batch.commit()

        logger.info(f"Assigned image {image_id} to category {target or '(none)'}")
        return {
            "slug": target or None,
            "variant": resolved_variant,
            "moved": target_index == -1,
        }

    # ------------------------------------------------------------------
    # Batch assignment
    # ------------------------------------------------------------------

    def assign_batch(self, image_ids: list[str], slug: str, variant: str | None = None) -> int:
        """Move several images into *slug* in one step.

        Every id must resolve to an image; otherwise nothing is written and
        :class:`NotFoundError` lists the missing ids.  Ids already present in
        the target keep their position but have their entry refreshed with
        the current image fields and the batch variant.  Repeated ids in the
        request are collapsed.

        Returns:
            Number of distinct images assigned.
        """
        if not image_ids:
            raise ValidationError("Image IDs array is required")
        target = (slug or "").strip()
        if not target:
            raise ValidationError("Slug is required")
        batch_variant = validate_variant(variant) or DEFAULT_VARIANT

        unique_ids = list(dict.fromkeys(image_ids))
        found, missing = self.images.get_many(unique_ids)
        if missing:
            raise NotFoundError("Some images not found", missing=missing)

        new_photos = [build_category_photo(image, batch_variant) for image in found]
        moving = set(unique_ids)

        with self._write_lock:
            now = utc_now_iso()
            batch = self.store.batch()
            target_doc: dict | None = None

            for key, doc in self.store.list(self.collection):
                if key == target:
                    target_doc = doc
                    continue

                photos = list(doc.get("images") or [])
                remaining = remove_photos(photos, moving)
                if len(remaining) == len(photos):
                    continue
                if remaining:
                    batch.set(self.collection, key, {**doc, "images": remaining, "updatedAt": now})
                else:
                    batch.delete(self.collection, key)
                    logger.info(f"Category '{key}' emptied and deleted")

            if target_doc is None:
                batch.set(
                    self.collection,
                    target,
                    {"slug": target, "images": new_photos, "createdAt": now, "updatedAt": now},
                )
            else:
                photos = list(target_doc.get("images") or [])
                for photo in new_photos:
                    index = find_photo_index(photos, photo["id"])
                    if index == -1:
                        photos.append(photo)
                    else:
                        photos[index] = photo
                batch.set(self.collection, target, {**target_doc, "images": photos, "updatedAt": now})

            batch.commit()

        logger.info(f"Batch-assigned {len(unique_ids)} images to category {target}")
        return len(unique_ids)

    # ------------------------------------------------------------------
    # Rename
    # ------------------------------------------------------------------

    def rename(self, old_slug: str, new_slug: str) -> None:
        """Rename a category, keeping its images and ``createdAt``.

        Raises:
            ValidationError: If either slug is blank or both are equal.
            NotFoundError: If *old_slug* does not exist.
            ConflictError: If *new_slug* already exists.
        """
        old_slug = (old_slug or "").strip()
        new_slug = (new_slug or "").strip()
        if not old_slug or not new_slug:
            raise ValidationError("Both oldSlug and newSlug are required")
        if old_slug == new_slug:
            raise ValidationError("New slug must be different from old slug")

        with self._write_lock:
            old_doc = self.store.get(self.collection, old_slug)
            if old_doc is None:
                raise NotFoundError("Old slug not found")
            if self.store.get(self.collection, new_slug) is not None:
                raise ConflictError("New slug already exists")

            batch = self.store.batch()
            batch.set(
                self.collection,
                new_slug,
                {**old_doc, "slug": new_slug, "updatedAt": utc_now_iso()},
            )
            batch.delete(self.collection, old_slug)
            batch.commit()

        logger.info(f"Renamed category {old_slug} -> {new_slug}")

    # ------------------------------------------------------------------
    # Ordering and per-photo edits
    # ------------------------------------------------------------------

    def reorder(self, slug: str, photos: list[dict]) -> None:
        """Replace a category's images with a client-ordered array, verbatim.

        The caller is trusted to send the same set of entries in a new
        order; only emptiness is rejected so a category is never left
        without images.
        """
        if not photos:
            raise ValidationError("Photos array must not be empty")

        with self._write_lock:
            self._require_category(slug)
            self.store.update(
                self.collection,
                slug,
                {"images": [dict(photo) for photo in photos], "updatedAt": utc_now_iso()},
            )

    def edit_photo(self, slug: str, photo_id: str, updates: dict) -> dict:
        """Overwrite selected fields of one entry inside a category.

        Only ``alt``, ``url`` and ``variant`` are editable, and only keys
        present in *updates* with a non-``None`` value are applied.

        Returns:
            The updated entry.
        """
        if not slug or not photo_id:
            raise ValidationError("Slug and photoId are required")
        validate_variant(updates.get("variant"))

        with self._write_lock:
            doc = self._require_category(slug)
            photos = list(doc.get("images") or [])
            index = find_photo_index(photos, photo_id)
            if index == -1:
                raise NotFoundError("Photo not found in category")

            changes = {
                field: updates[field]
                for field in EDITABLE_PHOTO_FIELDS
                if updates.get(field) is not None
            }
            photos[index] = {**photos[index], **changes}
            self.store.update(
                self.collection, slug, {"images": photos, "updatedAt": utc_now_iso()}
            )

        return photos[index]

    def remove_photo(self, slug: str, photo_id: str) -> bool:
        """Remove one entry from a category, deleting the category if it empties.

        Returns:
            ``True`` if the category document was deleted.
        """
        if not slug or not photo_id:
            raise ValidationError("Slug and photoId are required")

        with self._write_lock:
            doc = self._require_category(slug)
            photos = list(doc.get("images") or [])
            remaining = remove_photos(photos, {photo_id})

            if not remaining:
                self.store.delete(self.collection, slug)
                logger.info(f"Category '{slug}' emptied and deleted")
                return True

            if len(remaining) != len(photos):
                self.store.update(
                    self.collection, slug, {"images": remaining, "updatedAt": utc_now_iso()}
                )
            return False
