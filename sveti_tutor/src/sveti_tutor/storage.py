"""
Key-Value Storage Backends

The tutor persists everything as string values under opaque string keys,
the same shape as browser localStorage. Three backends:

- InMemoryStorage: process-local dict (tests, ephemeral runs)
- JsonFileStorage: a single JSON file on disk (local single-user runs)
- SupabaseStorage: a `kv_store` table in Supabase (hosted runs)

Backends raise StorageError on failure; callers decide how to degrade.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from sveti_tutor.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """get/set/remove over opaque string keys."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Removing an absent key is not an error."""


class InMemoryStorage(KeyValueStorage):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileStorage(KeyValueStorage):
    """
    Stores all keys in one JSON object on disk.

    Every write rewrites the file through a temporary file and os.replace,
    so a crash mid-write never leaves a half-written store behind.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # ValueError covers both bad JSON and bytes that are not UTF-8
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".sveti-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class SupabaseStorage(KeyValueStorage):
    """
    Key-value storage on a Supabase table.

    Expected schema:
        create table kv_store (key text primary key, value text not null);
    """

    def __init__(self, supabase_client, table: str = "kv_store"):
        """
        Args:
            supabase_client: Supabase client instance
            table: Name of the key/value table
        """
        self.supabase = supabase_client
        self.table = table

    def get(self, key: str) -> Optional[str]:
        try:
            result = self.supabase.table(self.table) \
                .select('value') \
                .eq('key', key) \
                .execute()
        except Exception as e:
            raise StorageError(f"Supabase read failed for '{key}': {e}") from e

        if result.data and len(result.data) > 0:
            return result.data[0].get("value")
        return None

    def set(self, key: str, value: str) -> None:
        try:
            self.supabase.table(self.table).upsert({"key": key, "value": value}).execute()
        except Exception as e:
            raise StorageError(f"Supabase write failed for '{key}': {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.supabase.table(self.table).delete().eq('key', key).execute()
        except Exception as e:
            raise StorageError(f"Supabase delete failed for '{key}': {e}") from e
