"""
Dropbox OAuth Scopes.

This module defines the OAuth scopes an app can request on the authorize page.
Apps configured without scoped access ignore them.
"""

import logging
from typing import List

logger = logging.getLogger(__name__)

# Account scopes
ACCOUNT_INFO_READ_SCOPE = "account_info.read"

BASE_SCOPES = [ACCOUNT_INFO_READ_SCOPE]

# File scopes
FILES_METADATA_READ_SCOPE = "files.metadata.read"
FILES_METADATA_WRITE_SCOPE = "files.metadata.write"
FILES_CONTENT_READ_SCOPE = "files.content.read"
FILES_CONTENT_WRITE_SCOPE = "files.content.write"

FILES_SCOPES = [
    FILES_METADATA_READ_SCOPE,
    FILES_METADATA_WRITE_SCOPE,
    FILES_CONTENT_READ_SCOPE,
    FILES_CONTENT_WRITE_SCOPE,
]

# Sharing scopes
SHARING_READ_SCOPE = "sharing.read"
SHARING_WRITE_SCOPE = "sharing.write"

SHARING_SCOPES = [SHARING_READ_SCOPE, SHARING_WRITE_SCOPE]

# Everything the client's endpoint operations need
SCOPES = FILES_SCOPES + SHARING_SCOPES + BASE_SCOPES


def get_scopes() -> List[str]:
    """
    Get the list of OAuth scopes used by every client operation.

    Returns:
        List of unique OAuth scopes, in a stable order.
    """
    return list(dict.fromkeys(SCOPES))


def get_minimal_scopes() -> List[str]:
    """
    Get minimal scopes for read-only access.

    Returns:
        List of read-only OAuth scopes.
    """
    return [
        FILES_METADATA_READ_SCOPE,
        FILES_CONTENT_READ_SCOPE,
    ] + BASE_SCOPES
