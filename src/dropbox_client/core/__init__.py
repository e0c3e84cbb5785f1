"""
Core utilities package for the Dropbox client.

This package provides shared configuration and the event sources.
"""

from .config import (
    DROPBOX_APP_KEY,
    DROPBOX_APP_SECRET,
    AuthOptions,
    ClientConfig,
    RequestOptions,
    ServerOverrides,
    get_credentials_dir,
)
from .events import EventSource

__all__ = [
    # Config
    "DROPBOX_APP_KEY",
    "DROPBOX_APP_SECRET",
    "AuthOptions",
    "ClientConfig",
    "RequestOptions",
    "ServerOverrides",
    "get_credentials_dir",
    # Events
    "EventSource",
]
