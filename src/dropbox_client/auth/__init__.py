"""
OAuth 2 Authentication Package for the Dropbox client.

This package provides:
- The credential store that signs requests and derives the auth step
- The auth state machine driving the authorize handshake
- Pluggable drivers (console, local callback server) with credential caching
"""

from .steps import AuthStep
from .scopes import SCOPES, FILES_SCOPES, SHARING_SCOPES, get_scopes, get_minimal_scopes
from .credential_store import Credentials, CredentialStore
from .credential_cache import (
    CredentialCache,
    LocalDirectoryCredentialCache,
    MemoryCredentialCache,
    get_credential_cache,
    set_credential_cache,
)
from .state_machine import AuthStateMachine, Done, Pending, Waiting
from .drivers import AuthDriver, ConsoleDriver, CredentialCachingDriver, LocalServerDriver

__all__ = [
    # Steps
    "AuthStep",
    # Scopes
    "SCOPES",
    "FILES_SCOPES",
    "SHARING_SCOPES",
    "get_scopes",
    "get_minimal_scopes",
    # Credential Store
    "Credentials",
    "CredentialStore",
    # Credential Cache
    "CredentialCache",
    "LocalDirectoryCredentialCache",
    "MemoryCredentialCache",
    "get_credential_cache",
    "set_credential_cache",
    # State Machine
    "AuthStateMachine",
    "Pending",
    "Waiting",
    "Done",
    # Drivers
    "AuthDriver",
    "ConsoleDriver",
    "CredentialCachingDriver",
    "LocalServerDriver",
]
