"""
Credential Cache for the Dropbox client.

This module provides a standardized interface for persisting credentials
between runs, using local JSON files. Drivers use it from their
on_auth_step_change hook so that a half-finished authorization (state
parameter) or a finished one (access token) survives a process restart.
"""

import os
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, List

from ..core.config import get_credentials_dir
from .credential_store import Credentials

logger = logging.getLogger(__name__)


class CredentialCache(ABC):
    """Abstract base class for credential persistence, keyed by app hash."""

    @abstractmethod
    def load(self, app_hash: str) -> Optional[Credentials]:
        """Get the cached credentials for an application."""
        pass

    @abstractmethod
    def store(self, app_hash: str, credentials: Credentials) -> bool:
        """Cache credentials for an application."""
        pass

    @abstractmethod
    def forget(self, app_hash: str) -> bool:
        """Delete the cached credentials for an application."""
        pass

    @abstractmethod
    def list_apps(self) -> List[str]:
        """List all app hashes with cached credentials."""
        pass


class MemoryCredentialCache(CredentialCache):
    """Credential cache that lives only as long as the process."""

    def __init__(self) -> None:
        self._entries: dict[str, Credentials] = {}

    def load(self, app_hash: str) -> Optional[Credentials]:
        return self._entries.get(app_hash)

    def store(self, app_hash: str, credentials: Credentials) -> bool:
        self._entries[app_hash] = credentials
        return True

    def forget(self, app_hash: str) -> bool:
        self._entries.pop(app_hash, None)
        return True

    def list_apps(self) -> List[str]:
        return sorted(self._entries)


class LocalDirectoryCredentialCache(CredentialCache):
    """Credential cache that uses local JSON files for storage."""

    def __init__(self, base_dir: Optional[str] = None) -> None:
        """
        Initialize the local credential cache.

        Args:
            base_dir: Base directory for credential files. If None, uses
                     get_credentials_dir()
        """
        if base_dir is None:
            base_dir = get_credentials_dir()

        self.base_dir = base_dir
        self._ensure_dir_exists()
        logger.info(f"LocalDirectoryCredentialCache initialized: {base_dir}")

    def _ensure_dir_exists(self) -> None:
        """Ensure the credentials directory exists."""
        if not os.path.exists(self.base_dir):
            os.makedirs(self.base_dir, exist_ok=True)
            logger.info(f"Created credentials directory: {self.base_dir}")

    def _get_credential_path(self, app_hash: str) -> str:
        """Get the file path for an application's credentials.

        App hashes are URL-safe base64 already, so they are valid file names.
        """
        self._ensure_dir_exists()
        return os.path.join(self.base_dir, f"{app_hash}.json")

    def load(self, app_hash: str) -> Optional[Credentials]:
        """Get credentials from the local JSON file."""
        creds_path = self._get_credential_path(app_hash)

        if not os.path.exists(creds_path):
            logger.debug(f"No credential file found for app {app_hash}")
            return None

        try:
            with open(creds_path, "r") as f:
                creds_data = json.load(f)

            if not isinstance(creds_data, dict) or not creds_data.get("key"):
                logger.warning(f"Ignoring malformed credential file {creds_path}")
                return None

            logger.debug(f"Loaded credentials for app {app_hash}")
            return Credentials.from_dict(creds_data)

        except (IOError, json.JSONDecodeError) as e:
            logger.error(f"Error loading credentials for app {app_hash}: {e}")
            return None

    def store(self, app_hash: str, credentials: Credentials) -> bool:
        """Store credentials to the local JSON file."""
        creds_path = self._get_credential_path(app_hash)

        try:
            with open(creds_path, "w") as f:
                json.dump(credentials.to_dict(), f, indent=2)
            # The file holds a bearer token
            os.chmod(creds_path, 0o600)
            logger.info(f"Stored credentials for app {app_hash}")
            return True
        except IOError as e:
            logger.error(f"Error storing credentials for app {app_hash}: {e}")
            return False

    def forget(self, app_hash: str) -> bool:
        """Delete the credential file for an application."""
        creds_path = self._get_credential_path(app_hash)

        try:
            if os.path.exists(creds_path):
                os.remove(creds_path)
                logger.info(f"Deleted credentials for app {app_hash}")
            return True
        except IOError as e:
            logger.error(f"Error deleting credentials for app {app_hash}: {e}")
            return False

    def list_apps(self) -> List[str]:
        """List all app hashes with credential files."""
        if not os.path.exists(self.base_dir):
            return []

        apps = []
        try:
            for filename in os.listdir(self.base_dir):
                if filename.endswith(".json"):
                    apps.append(filename[:-5])
            logger.debug(f"Found {len(apps)} cached applications")
        except OSError as e:
            logger.error(f"Error listing credential files: {e}")

        return sorted(apps)


# Global credential cache instance
_credential_cache: Optional[CredentialCache] = None


def get_credential_cache() -> CredentialCache:
    """Get the global credential cache instance."""
    global _credential_cache

    if _credential_cache is None:
        _credential_cache = LocalDirectoryCredentialCache()
        logger.info(f"Initialized credential cache: {type(_credential_cache).__name__}")

    return _credential_cache


def set_credential_cache(cache: CredentialCache) -> None:
    """Set the global credential cache instance."""
    global _credential_cache
    _credential_cache = cache
    logger.info(f"Set credential cache: {type(cache).__name__}")
