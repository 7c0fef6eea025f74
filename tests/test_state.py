"""Tests for session state persistence and settings."""

from pathlib import Path

import pytest

from omnisearch.backend import DEFAULT_STARTUP_TIMEOUT
from omnisearch.config import Settings
from omnisearch.state import SessionStateStore


@pytest.fixture
def store(tmp_path):
    return SessionStateStore(tmp_path / "omnisearch" / "session.json")


class TestSessionStateStore:
    """Tests for the JSON state file."""

    def test_missing_file(self, store):
        assert store.load() is None
        assert store.info()["exists"] is False

    def test_save_and_load(self, store):
        """Test that saved state is read back unchanged."""
        state = {"deserializer": "omnisearch/SearchSession", "history": {"buffer": ["a"], "pos": 1}}
        assert store.save(state)
        assert store.load() == state

    def test_corrupt_file(self, store):
        """Test that an unreadable file behaves like no state."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert store.load() is None

    def test_non_object_file(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[1, 2]")
        assert store.load() is None

    def test_clear(self, store):
        store.save({"history": {"buffer": [], "pos": 0}})
        assert store.clear()
        assert not store.path.exists()
        assert not store.clear()

    def test_info(self, store):
        store.save({"history": {"buffer": ["a", "b"], "pos": 2}})
        info = store.info()
        assert info["exists"] is True
        assert info["history_entries"] == 2
        assert info["size"] > 0
        assert info["path"] == str(store.path)


class TestSettings:
    """Tests for environment configuration."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.server_command == ["omnisearch-server"]
        assert settings.startup_timeout == DEFAULT_STARTUP_TIMEOUT

    def test_overrides(self):
        settings = Settings.from_env({
            "OMNISEARCH_SERVER": "/opt/search/server --threads 2",
            "OMNISEARCH_STARTUP_TIMEOUT": "0",
            "OMNISEARCH_REQUEST_TIMEOUT": "5.5",
            "OMNISEARCH_STATE_PATH": "/tmp/omni.json",
        })
        assert settings.server_command == ["/opt/search/server", "--threads", "2"]
        assert settings.startup_timeout == 0
        assert settings.request_timeout == 5.5
        assert settings.state_path == Path("/tmp/omni.json")

    def test_invalid_number_falls_back(self):
        settings = Settings.from_env({"OMNISEARCH_REQUEST_TIMEOUT": "soon"})
        assert settings.request_timeout == 60.0
