"""
Persistence Store Layer

RESPONSIBILITY: Key-value blob persistence of JSON arrays
ALLOWED INPUTS: A key and a JSON-serializable list
OUTPUTS: Optional list on load, StorageWriteResult on save

WHAT THIS LAYER MUST NOT DO:
============================
- Interpret, validate or repair node data
- Raise on a failed write (failures are returned as data)
- Hold more than one writer's view; the store is single-writer

BOUNDARY ENFORCEMENT:
=====================
- load() returns None for a missing, unreadable or non-array value
- save() serializes fully before touching the target, so a failed
  write never leaves a half-written value behind
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import json
import logging
import os

from ..contracts.base import Error, ErrorCode
from ..contracts.events import StorageWriteResult

logger = logging.getLogger(__name__)


# =============================================================================
# STORE INTERFACE (Dependency Inversion)
# =============================================================================

class KeyValueStore:
    """
    Abstract key-value blob store.

    Implementations can use different storage systems (memory, file)
    while keeping the same load/save semantics.
    """

    def load(self, key: str) -> Optional[List[Any]]:
        """Return the stored array for key, or None."""
        raise NotImplementedError

    def save(self, key: str, records: List[Any]) -> StorageWriteResult:
        """Replace the value stored under key."""
        raise NotImplementedError

    @staticmethod
    def _failure(key: str, message: str) -> StorageWriteResult:
        return StorageWriteResult(
            success=False,
            key=key,
            error=Error.create(ErrorCode.STORAGE_WRITE_FAILED, message, key=key)
        )


# =============================================================================
# IN-MEMORY STORE (Reference Implementation)
# =============================================================================

class InMemoryKeyValueStore(KeyValueStore):
    """
    In-memory implementation.

    Values are kept as serialized JSON text, so callers never share
    references with the store. Suitable for testing and ephemeral sessions.
    """

    def __init__(self, initial: Optional[Dict[str, List[Any]]] = None):
        self._blobs: Dict[str, str] = {}
        for key, records in (initial or {}).items():
            self._blobs[key] = json.dumps(records)

    def load(self, key: str) -> Optional[List[Any]]:
        raw = self._blobs.get(key)
        if raw is None:
            return None
        value = json.loads(raw)
        return value if isinstance(value, list) else None

    def save(self, key: str, records: List[Any]) -> StorageWriteResult:
        try:
            self._blobs[key] = json.dumps(records)
        except (TypeError, ValueError) as e:
            return self._failure(key, f"Failed to serialize records: {e}")
        return StorageWriteResult(success=True, key=key, record_count=len(records))

    def keys(self) -> List[str]:
        return sorted(self._blobs)


# =============================================================================
# FILE-BASED STORE
# =============================================================================

class FileKeyValueStore(KeyValueStore):
    """
    File-based implementation: one `<key>.json` file per key.

    Writes go to a temporary sibling file that is then renamed over the
    target.
    """

    def __init__(self, storage_dir: str):
        self._storage_dir = storage_dir
        os.makedirs(storage_dir, exist_ok=True)

    @property
    def storage_dir(self) -> str:
        return self._storage_dir

    def _path(self, key: str) -> str:
        return os.path.join(self._storage_dir, f"{key}.json")

    def load(self, key: str) -> Optional[List[Any]]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                value = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Unreadable store value for %s: %s", key, e)
            return None
        return value if isinstance(value, list) else None

    def save(self, key: str, records: List[Any]) -> StorageWriteResult:
        try:
            payload = json.dumps(records, indent=2)
        except (TypeError, ValueError) as e:
            return self._failure(key, f"Failed to serialize records: {e}")

        path = self._path(key)
        tmp_path = path + ".tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            return self._failure(key, f"Failed to write {path}: {e}")

        return StorageWriteResult(success=True, key=key, record_count=len(records))


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class StorageConfig:
    """Configuration for the persistence store."""
    backend_type: str = "memory"  # "memory" or "file"
    storage_dir: Optional[str] = None


def create_store(config: Optional[StorageConfig] = None) -> KeyValueStore:
    """Create a store based on configuration."""
    config = config or StorageConfig()
    if config.backend_type == "file" and config.storage_dir:
        return FileKeyValueStore(config.storage_dir)
    return InMemoryKeyValueStore()
