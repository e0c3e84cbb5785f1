"""Tests for credential caches."""

import json
import os
import stat

import pytest

from dropbox_client.auth import credential_cache
from dropbox_client.auth.credential_cache import (
    LocalDirectoryCredentialCache,
    MemoryCredentialCache,
    get_credential_cache,
    set_credential_cache,
)
from dropbox_client.auth.credential_store import Credentials
from dropbox_client.core.config import ServerOverrides

from conftest import SAMPLE_KEY, SAMPLE_TOKEN, SAMPLE_UID

CREDS = Credentials(key=SAMPLE_KEY, token=SAMPLE_TOKEN, uid=SAMPLE_UID)


@pytest.fixture
def local_cache(tmp_path):
    return LocalDirectoryCredentialCache(str(tmp_path / "credentials"))


class TestLocalDirectoryCredentialCache:
    """Tests for the JSON file cache."""

    def test_store_and_load(self, local_cache):
        assert local_cache.store("hash1", CREDS)
        assert local_cache.load("hash1") == CREDS

    def test_file_layout_and_permissions(self, local_cache):
        local_cache.store("hash1", CREDS)
        path = os.path.join(local_cache.base_dir, "hash1.json")

        with open(path) as f:
            assert json.load(f) == {"key": SAMPLE_KEY, "token": SAMPLE_TOKEN, "uid": SAMPLE_UID}
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_server_overrides_survive(self, local_cache):
        creds = Credentials(
            key=SAMPLE_KEY,
            token=SAMPLE_TOKEN,
            servers=ServerOverrides(api_server="https://api.example.test"),
        )
        local_cache.store("hash1", creds)
        assert local_cache.load("hash1").servers.api_server == "https://api.example.test"

    def test_missing_entry(self, local_cache):
        assert local_cache.load("nope") is None

    def test_malformed_file_is_ignored(self, local_cache):
        path = os.path.join(local_cache.base_dir, "broken.json")
        with open(path, "w") as f:
            f.write("{not json")
        assert local_cache.load("broken") is None

    def test_file_without_key_is_ignored(self, local_cache):
        path = os.path.join(local_cache.base_dir, "nokey.json")
        with open(path, "w") as f:
            json.dump({"token": "x"}, f)
        assert local_cache.load("nokey") is None

    def test_forget_and_list(self, local_cache):
        local_cache.store("b", CREDS)
        local_cache.store("a", CREDS)
        assert local_cache.list_apps() == ["a", "b"]

        assert local_cache.forget("a")
        assert local_cache.forget("a")
        assert local_cache.list_apps() == ["b"]

    def test_env_directory(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DROPBOX_CLIENT_CREDENTIALS_DIR", str(tmp_path))
        cache = LocalDirectoryCredentialCache()
        assert cache.base_dir == os.path.join(str(tmp_path), "credentials")
        assert os.path.isdir(cache.base_dir)


class TestMemoryCredentialCache:
    def test_round_trip(self):
        cache = MemoryCredentialCache()
        cache.store("h", CREDS)
        assert cache.load("h") is CREDS
        cache.forget("h")
        assert cache.list_apps() == []


class TestGlobalCache:
    def test_set_and_get(self, monkeypatch):
        monkeypatch.setattr(credential_cache, "_credential_cache", None)
        cache = MemoryCredentialCache()
        set_credential_cache(cache)
        assert get_credential_cache() is cache

    def test_default_uses_env_directory(self, tmp_path, monkeypatch):
        monkeypatch.setattr(credential_cache, "_credential_cache", None)
        monkeypatch.setenv("DROPBOX_CLIENT_CREDENTIALS_DIR", str(tmp_path))
        cache = get_credential_cache()
        assert isinstance(cache, LocalDirectoryCredentialCache)
        assert cache.base_dir.startswith(str(tmp_path))
