"""Change-stream mixin for DropboxClient.

A cursor is an opaque token marking a point in a folder's change stream.
"""
from typing import Any

from .dispatcher import RequestHandle
from .files import _normalize_path
from .models import PulledChanges


class ChangesMixin:
    """Mixin providing cursor-based change polling."""

    def latest_cursor(self, callback: Any, path: str = "", recursive: bool = True) -> RequestHandle:
        """Get a cursor for the current state of a folder.

        Args:
            callback: Called as callback(error, cursor string).
            path: Folder to watch; the root by default.
            recursive: Watch subfolders too.
        """
        body = {"path": _normalize_path(path), "recursive": recursive}
        return self._call(
            self._rpc("files/list_folder/get_latest_cursor", body),
            callback,
            lambda payload, meta: payload["cursor"],
        )

    def pull_changes(self, cursor: str, callback: Any) -> RequestHandle:
        """Fetch the changes made since cursor.

        Args:
            cursor: A cursor from latest_cursor() or a previous PulledChanges.
            callback: Called as callback(error, PulledChanges). Call again with
                the new cursor while should_pull_again is True.
        """
        return self._call(
            self._rpc("files/list_folder/continue", {"cursor": cursor}),
            callback,
            lambda payload, meta: PulledChanges.from_api(payload),
        )
