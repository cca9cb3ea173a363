"""Document store abstraction and the file-backed implementation.

Services talk to the store through :class:`DocumentStore`, which models the
small subset of a document database this application needs:

- ``get`` / ``set`` / ``update`` / ``delete`` on a single key
- ``get_all`` for a list of keys (missing keys yield ``None``)
- ``list`` for a whole collection
- ``batch`` for an atomic group of deletes and sets

Two implementations exist.  :class:`JsonDocumentStore` (this module) keeps each
collection in a single JSON file, which is enough for a personal portfolio
and needs no external service.  :class:`~photofolio.core.firestore_store.FirestoreDocumentStore`
maps the same calls onto Cloud Firestore.

Documents are plain JSON-compatible dictionaries.  Keys are strings (category
slugs or generated image ids).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from photofolio.core.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class WriteBatch:
    """An ordered group of deletes and sets committed atomically.

    Operations are only recorded until :meth:`commit` is called, at which
    point the owning store applies all of them or none of them.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._operations: list[tuple[str, str, str, dict | None]] = []

    def set(self, collection: str, key: str, data: dict) -> WriteBatch:
        self._operations.append(("set", collection, key, dict(data)))
        return self

    def delete(self, collection: str, key: str) -> WriteBatch:
        self._operations.append(("delete", collection, key, None))
        return self

    @property
    def operations(self) -> list[tuple[str, str, str, dict | None]]:
        return list(self._operations)

    def commit(self) -> None:
        """Apply every recorded operation in one atomic write."""
        if not self._operations:
            return
        self._store.commit_batch(self)
        self._operations.clear()


class DocumentStore(ABC):
    """Abstract key/document store used by every service."""

    @abstractmethod
    def get(self, collection: str, key: str) -> dict | None:
        """Return the document stored under *key*, or ``None``."""

    @abstractmethod
    def set(self, collection: str, key: str, data: dict, *, merge: bool = False) -> None:
        """Create or overwrite a document.

        Args:
            collection: Collection name.
            key: Document key.
            data: Document body.
            merge: When ``True``, shallow-merge *data* into an existing
                document instead of replacing it.
        """

    @abstractmethod
    def update(self, collection: str, key: str, data: dict) -> None:
        """Shallow-merge *data* into an existing document.

        Raises:
            NotFoundError: If the document does not exist.
        """

    @abstractmethod
    def delete(self, collection: str, key: str) -> None:
        """Delete a document.  Deleting a missing key is not an error."""

    @abstractmethod
    def get_all(self, collection: str, keys: list[str]) -> list[dict | None]:
        """Fetch several documents, preserving the order of *keys*."""

    @abstractmethod
    def list(self, collection: str) -> list[tuple[str, dict]]:
        """Return ``(key, document)`` pairs for a whole collection."""

    @abstractmethod
    def commit_batch(self, batch: WriteBatch) -> None:
        """Apply a :class:`WriteBatch` atomically."""

    def batch(self) -> WriteBatch:
        return WriteBatch(self)


class JsonDocumentStore(DocumentStore):
    """File-backed store: one ``<collection>.json`` object per collection.

    Every public call holds a re-entrant lock for its full read-modify-write
    cycle, and files are replaced atomically via a temporary file and
    ``os.replace``.  A batch touching several collections writes each file in
    turn while still holding the lock, so no reader in this process can
    observe a partial batch.

    A missing file is an empty collection.  A file that exists but cannot be
    read or parsed raises :class:`StoreError` instead, so a later write never
    replaces documents this process failed to see.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        logger.info(f"Initialized JSON document store at {self.data_dir}")

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> dict[str, dict]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read {path}: {e}")
            raise StoreError(f"Failed to read collection '{collection}'") from e

        if not isinstance(raw, dict) or not all(isinstance(doc, dict) for doc in raw.values()):
            logger.error(f"Unexpected content in {path}: expected an object of documents")
            raise StoreError(f"Failed to read collection '{collection}'")

        return raw

    def _save(self, collection: str, documents: dict[str, dict]) -> None:
        path = self._path(collection)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{collection}.", suffix=".tmp", dir=self.data_dir
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(documents, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write collection '{collection}'") from e

    # ------------------------------------------------------------------
    # DocumentStore API
    # ------------------------------------------------------------------

    def get(self, collection: str, key: str) -> dict | None:
        with self._lock:
            return self._load(collection).get(key)

    def set(self, collection: str, key: str, data: dict, *, merge: bool = False) -> None:
        with self._lock:
            documents = self._load(collection)
            if merge and key in documents:
                documents[key] = {**documents[key], **data}
            else:
                documents[key] = dict(data)
            self._save(collection, documents)

    def update(self, collection: str, key: str, data: dict) -> None:
        with self._lock:
            documents = self._load(collection)
            if key not in documents:
                raise NotFoundError(f"Document '{key}' not found in '{collection}'")
            documents[key] = {**documents[key], **data}
            self._save(collection, documents)

    def delete(self, collection: str, key: str) -> None:
        with self._lock:
            documents = self._load(collection)
            if documents.pop(key, None) is not None:
                self._save(collection, documents)

    def get_all(self, collection: str, keys: list[str]) -> list[dict | None]:
        with self._lock:
            documents = self._load(collection)
            return [documents.get(key) for key in keys]

    def list(self, collection: str) -> list[tuple[str, dict]]:
        with self._lock:
            return list(self._load(collection).items())

    def commit_batch(self, batch: WriteBatch) -> None:
        with self._lock:
            # Stage every touched collection in memory first so a failure
            # while building the new state leaves all files untouched.
            staged: dict[str, dict[str, dict]] = {}
            for op, collection, key, data in batch.operations:
                documents = staged.setdefault(collection, self._load(collection))
                if op == "delete":
                    documents.pop(key, None)
                else:
                    documents[key] = data

            for collection, documents in staged.items():
                self._save(collection, documents)
