"""Cloud Firestore implementation of :class:`~photofolio.core.store.DocumentStore`."""

from __future__ import annotations

import logging

from google.api_core import exceptions as gcp_exceptions

from photofolio.core.errors import NotFoundError, StoreError
from photofolio.core.store import DocumentStore, WriteBatch

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """Map document-store calls onto a Firestore client.

    Args:
        client: A ``google.cloud.firestore.Client``, normally obtained with
            ``firebase_admin.firestore.client(app)``.
    """

    def __init__(self, client):
        self._db = client

    @classmethod
    def from_app(cls, app) -> FirestoreDocumentStore:
        from firebase_admin import firestore

        return cls(firestore.client(app))

    def _ref(self, collection: str, key: str):
        return self._db.collection(collection).document(key)

    def get(self, collection: str, key: str) -> dict | None:
        try:
            snapshot = self._ref(collection, key).get()
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"Failed to read '{collection}/{key}'") from e
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, collection: str, key: str, data: dict, *, merge: bool = False) -> None:
        try:
            self._ref(collection, key).set(data, merge=merge)
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"Failed to write '{collection}/{key}'") from e

    def update(self, collection: str, key: str, data: dict) -> None:
        try:
            self._ref(collection, key).update(data)
        except gcp_exceptions.NotFound as e:
            raise NotFoundError(f"Document '{key}' not found in '{collection}'") from e
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"Failed to update '{collection}/{key}'") from e

    def delete(self, collection: str, key: str) -> None:
        try:
            self._ref(collection, key).delete()
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"Failed to delete '{collection}/{key}'") from e

    def get_all(self, collection: str, keys: list[str]) -> list[dict | None]:
        if not keys:
            return []
        refs = [self._ref(collection, key) for key in keys]
        try:
            # get_all streams snapshots in arbitrary order.
            found = {
                snapshot.id: snapshot.to_dict()
                for snapshot in self._db.get_all(refs)
                if snapshot.exists
            }
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"Failed to read from '{collection}'") from e
        return [found.get(key) for key in keys]

    def list(self, collection: str) -> list[tuple[str, dict]]:
        try:
            return [
                (snapshot.id, snapshot.to_dict())
                for snapshot in self._db.collection(collection).stream()
            ]
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"Failed to list '{collection}'") from e

    def commit_batch(self, batch: WriteBatch) -> None:
        fs_batch = self._db.batch()
        for op, collection, key, data in batch.operations:
            if op == "delete":
                fs_batch.delete(self._ref(collection, key))
            else:
                fs_batch.set(self._ref(collection, key), data)
        try:
            fs_batch.commit()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore batch commit failed: {e}")
            raise StoreError("Failed to commit batch write") from e
