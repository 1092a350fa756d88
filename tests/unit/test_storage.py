"""
Unit Tests for Storage Backends and Settings
"""

import json
import pytest
import sys
import os
from unittest.mock import MagicMock

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "sveti_tutor", "src"))

from sveti_tutor.config import TutorSettings
from sveti_tutor import storage as storage_module
from sveti_tutor.errors import StorageError
from sveti_tutor.storage import InMemoryStorage, JsonFileStorage, SupabaseStorage
from sveti_tutor.tutor import build_storage


class TestInMemoryStorage:

    def test_get_set_remove(self):
        storage = InMemoryStorage({"a": "1"})

        assert storage.get("a") == "1"
        storage.set("b", "2")
        storage.remove("a")
        storage.remove("missing")

        assert storage.get("a") is None
        assert storage.keys() == ["b"]


class TestJsonFileStorage:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "storage.json"
        JsonFileStorage(str(path)).set("sveti-learning-style", "socratic")

        assert JsonFileStorage(str(path)).get("sveti-learning-style") == "socratic"
        assert json.loads(path.read_text(encoding="utf-8")) == {"sveti-learning-style": "socratic"}

    def test_missing_file_is_empty(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "none.json"))
        assert storage.get("anything") is None
        storage.remove("anything")

    def test_remove(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "s.json"))
        storage.set("a", "1")
        storage.set("b", "2")
        storage.remove("a")

        assert storage.get("a") is None
        assert storage.get("b") == "2"

    def test_unreadable_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(StorageError):
            JsonFileStorage(str(path)).get("a")

    def test_non_utf8_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_bytes(b"\xff\xfe garbage")

        with pytest.raises(StorageError):
            JsonFileStorage(str(path)).get("a")

    def test_failed_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(storage_module.os, "replace", fail_replace)

        with pytest.raises(StorageError):
            JsonFileStorage(str(tmp_path / "s.json")).set("a", "1")
        assert list(tmp_path.iterdir()) == []

    def test_non_object_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(StorageError):
            JsonFileStorage(str(path)).set("a", "1")


class TestSupabaseStorage:

    @pytest.fixture
    def supabase(self):
        return MagicMock()

    def test_get(self, supabase):
        query = supabase.table.return_value.select.return_value.eq.return_value
        query.execute.return_value = MagicMock(data=[{"value": "true"}])

        assert SupabaseStorage(supabase).get("sveti-game-asked") == "true"
        supabase.table.assert_called_with("kv_store")
        supabase.table.return_value.select.return_value.eq.assert_called_with("key", "sveti-game-asked")

    def test_get_missing(self, supabase):
        query = supabase.table.return_value.select.return_value.eq.return_value
        query.execute.return_value = MagicMock(data=[])

        assert SupabaseStorage(supabase).get("nothing") is None

    def test_set_upserts(self, supabase):
        SupabaseStorage(supabase, table="prefs").set("k", "v")

        supabase.table.assert_called_with("prefs")
        supabase.table.return_value.upsert.assert_called_with({"key": "k", "value": "v"})

    def test_remove(self, supabase):
        SupabaseStorage(supabase).remove("k")
        supabase.table.return_value.delete.return_value.eq.assert_called_with("key", "k")

    def test_errors_become_storage_errors(self, supabase):
        supabase.table.side_effect = RuntimeError("network down")

        with pytest.raises(StorageError):
            SupabaseStorage(supabase).get("k")
        with pytest.raises(StorageError):
            SupabaseStorage(supabase).set("k", "v")


class TestSettings:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("SVETI_STORAGE_BACKEND", " Memory ")
        monkeypatch.setenv("SVETI_USE_MOCK", "yes")
        monkeypatch.setenv("SVETI_ASK_DELAY_SECONDS", "0")
        monkeypatch.setenv("SVETI_CONTEXT_MESSAGES", "4")

        settings = TutorSettings.from_env(load_env_file=False)

        assert settings.has_api_key
        assert settings.storage_backend == "memory"
        assert settings.use_mock is True
        assert settings.ask_delay_seconds == 0.0
        assert settings.ack_delay_seconds == 2.0
        assert settings.context_messages == 4

    def test_placeholder_key_is_not_a_key(self):
        assert not TutorSettings(openai_api_key="sk-your-key-goes-here").has_api_key
        assert not TutorSettings().has_api_key

    def test_build_storage(self, tmp_path):
        assert isinstance(build_storage(TutorSettings(storage_backend="memory")), InMemoryStorage)
        file_storage = build_storage(TutorSettings(storage_backend="file", storage_path=str(tmp_path / "s.json")))
        assert isinstance(file_storage, JsonFileStorage)
        assert isinstance(build_storage(TutorSettings(storage_backend="supabase"), supabase_client=MagicMock()),
                          SupabaseStorage)

        with pytest.raises(ValueError):
            build_storage(TutorSettings(storage_backend="supabase"))
        with pytest.raises(ValueError):
            build_storage(TutorSettings(storage_backend="redis"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
