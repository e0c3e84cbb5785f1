"""Dropbox Client - modular implementation.

This module provides a facade that combines all client mixins into
a single DropboxClient class.
"""
from .base import DropboxClientBase
from .account import AccountMixin
from .files import FilesMixin
from .search import SearchMixin
from .sharing import SharingMixin
from .changes import ChangesMixin
from .dispatcher import RequestDispatcher, RequestHandle
from .models import AccountInfo, FolderListing, PublicUrl, PulledChanges, Stat


class DropboxClient(
    DropboxClientBase,
    AccountMixin,
    FilesMixin,
    SearchMixin,
    SharingMixin,
    ChangesMixin,
):
    """Full-featured Dropbox client.

    Combines the authentication core with every endpoint mixin through a
    unified interface.
    """
    pass


__all__ = [
    'DropboxClient',
    'RequestDispatcher',
    'RequestHandle',
    'AccountInfo',
    'FolderListing',
    'PublicUrl',
    'PulledChanges',
    'Stat',
]
