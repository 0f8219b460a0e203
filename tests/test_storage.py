"""
Persistence Store Tests
=======================

Key-value blob stores: load returns arrays or None, save reports
failures as data instead of raising.
"""

import json
import os

import pytest

from asset_registry.contracts.base import ErrorCode
from asset_registry.storage import (
    FileKeyValueStore, InMemoryKeyValueStore, StorageConfig, create_store
)


class TestInMemoryStore:

    def test_missing_key(self):
        """Unknown keys load as None."""
        assert InMemoryKeyValueStore().load("nope") is None

    def test_save_then_load(self):
        """Saved arrays load back equal but not identical."""
        store = InMemoryKeyValueStore()
        records = [{"id": "a"}]
        result = store.save("k", records)
        assert result.success
        assert result.record_count == 1
        loaded = store.load("k")
        assert loaded == records
        assert loaded is not records

    def test_unserializable_records(self):
        """Serialization errors come back as STORAGE_WRITE_FAILED."""
        result = InMemoryKeyValueStore().save("k", [object()])
        assert not result.success
        assert result.error.code == ErrorCode.STORAGE_WRITE_FAILED

    def test_non_array_value_ignored(self):
        """A stored object is treated as absent."""
        store = InMemoryKeyValueStore({"k": {"not": "a list"}})
        assert store.load("k") is None


class TestFileStore:

    def test_round_trip(self, tmp_path):
        """One <key>.json file per key."""
        store = FileKeyValueStore(str(tmp_path))
        assert store.save("module1_asset_nodes", [{"id": "a"}]).success
        assert os.path.exists(tmp_path / "module1_asset_nodes.json")
        assert FileKeyValueStore(str(tmp_path)).load("module1_asset_nodes") == [{"id": "a"}]

    def test_corrupt_file_loads_as_none(self, tmp_path):
        """Unreadable JSON is treated as absent."""
        (tmp_path / "k.json").write_text("{broken", encoding="utf-8")
        assert FileKeyValueStore(str(tmp_path)).load("k") is None

    def test_non_array_file_loads_as_none(self, tmp_path):
        """A JSON object is not a collection."""
        (tmp_path / "k.json").write_text(json.dumps({"a": 1}), encoding="utf-8")
        assert FileKeyValueStore(str(tmp_path)).load("k") is None

    def test_write_failure_is_reported(self, tmp_path):
        """A directory in place of the target file fails the write."""
        store = FileKeyValueStore(str(tmp_path))
        os.makedirs(tmp_path / "k.json.tmp")
        result = store.save("k", [])
        assert not result.success
        assert result.error.code == ErrorCode.STORAGE_WRITE_FAILED

    def test_no_temp_file_left_behind(self, tmp_path):
        """Successful writes leave only the target."""
        store = FileKeyValueStore(str(tmp_path))
        store.save("k", [1, 2, 3])
        assert sorted(os.listdir(tmp_path)) == ["k.json"]


class TestCreateStore:

    def test_default_is_memory(self):
        """No configuration means an in-memory store."""
        assert isinstance(create_store(), InMemoryKeyValueStore)

    def test_file_backend(self, tmp_path):
        """backend_type=file with a directory yields a file store."""
        store = create_store(StorageConfig(backend_type="file", storage_dir=str(tmp_path)))
        assert isinstance(store, FileKeyValueStore)
        assert store.storage_dir == str(tmp_path)

    @pytest.mark.parametrize("config", [
        StorageConfig(backend_type="file"),
        StorageConfig(backend_type="memory", storage_dir="/tmp/ignored"),
    ])
    def test_fallbacks_to_memory(self, config):
        """A file backend without a directory falls back to memory."""
        assert isinstance(create_store(config), InMemoryKeyValueStore)
