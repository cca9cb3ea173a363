"""Tests for photofolio.core.firestore_store using a mocked Firestore client."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gcp_exceptions

from photofolio.core.errors import NotFoundError, StoreError
from photofolio.core.firestore_store import FirestoreDocumentStore


def _snapshot(doc_id: str, data: dict | None) -> MagicMock:
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = data
    return snapshot


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def fs_store(client) -> FirestoreDocumentStore:
    return FirestoreDocumentStore(client)


class TestFirestoreDocumentStore:
    def test_get_existing(self, fs_store, client):
        client.collection.return_value.document.return_value.get.return_value = _snapshot(
            "a", {"n": 1}
        )
        assert fs_store.get("things", "a") == {"n": 1}
        client.collection.assert_called_with("things")
        client.collection.return_value.document.assert_called_with("a")

    def test_get_missing(self, fs_store, client):
        client.collection.return_value.document.return_value.get.return_value = _snapshot(
            "a", None
        )
        assert fs_store.get("things", "a") is None

    def test_set_passes_merge(self, fs_store, client):
        fs_store.set("things", "a", {"n": 1}, merge=True)
        client.collection.return_value.document.return_value.set.assert_called_once_with(
            {"n": 1}, merge=True
        )

    def test_update_missing_raises_not_found(self, fs_store, client):
        ref = client.collection.return_value.document.return_value
        ref.update.side_effect = gcp_exceptions.NotFound("no document")
        with pytest.raises(NotFoundError):
            fs_store.update("things", "a", {"n": 2})

    def test_api_failure_raises_store_error(self, fs_store, client):
        ref = client.collection.return_value.document.return_value
        ref.delete.side_effect = gcp_exceptions.ServiceUnavailable("down")
        with pytest.raises(StoreError):
            fs_store.delete("things", "a")

    def test_get_all_reorders_snapshots(self, fs_store, client):
        client.get_all.return_value = [
            _snapshot("a", {"n": 1}),
            _snapshot("ghost", None),
            _snapshot("b", {"n": 2}),
        ]
        assert fs_store.get_all("things", ["b", "ghost", "a"]) == [{"n": 2}, None, {"n": 1}]

    def test_get_all_empty(self, fs_store, client):
        assert fs_store.get_all("things", []) == []
        client.get_all.assert_not_called()

    def test_list(self, fs_store, client):
        client.collection.return_value.stream.return_value = [
            _snapshot("a", {"n": 1}),
            _snapshot("b", {"n": 2}),
        ]
        assert fs_store.list("things") == [("a", {"n": 1}), ("b", {"n": 2})]

    def test_batch_maps_operations(self, fs_store, client):
        fs_batch = client.batch.return_value
        fs_store.batch().delete("pins", "old").set("pins", "new", {"order": 0}).commit()

        assert fs_batch.delete.call_count == 1
        fs_batch.set.assert_called_once()
        assert fs_batch.set.call_args.args[1] == {"order": 0}
        fs_batch.commit.assert_called_once()

    def test_batch_commit_failure(self, fs_store, client):
        client.batch.return_value.commit.side_effect = gcp_exceptions.Aborted("contention")
        with pytest.raises(StoreError):
            fs_store.batch().set("pins", "x", {"order": 0}).commit()
