"""File management mixin for DropboxClient."""
from typing import Any, Optional

from ..core.config import RequestOptions
from ..utils.constants import DEFAULT_REVISION_LIMIT
from .dispatcher import RequestHandle
from .models import FolderListing, Stat


def _normalize_path(path: str) -> str:
    """Paths are absolute and the root is the empty string."""
    path = path.strip()
    if path in ("", "/"):
        return ""
    if not path.startswith("/") and not path.startswith("id:"):
        path = "/" + path
    return path.rstrip("/")


class FilesMixin:
    """Mixin providing file and folder operations."""

    def read_file(
        self,
        path: str,
        callback: Any,
        rev: Optional[str] = None,
        http_cache: bool = False,
    ) -> RequestHandle:
        """Download a file's contents.

        Args:
            path: Path of the file.
            callback: Called as callback(error, (data, stat)).
            rev: Optional revision to download instead of the latest one.
            http_cache: Allow intermediate caches to answer.

        Returns:
            The request handle.
        """
        arg: dict[str, Any] = {"path": _normalize_path(path)}
        if rev:
            arg["rev"] = rev
        return self._call(
            self._content("files/download", arg),
            callback,
            lambda payload, meta: (payload, Stat.from_api(meta or {})),
            RequestOptions(http_cache=http_cache),
        )

    def write_file(
        self,
        path: str,
        data: bytes,
        callback: Any,
        no_overwrite: bool = False,
        autorename: bool = False,
    ) -> RequestHandle:
        """Upload a file in a single request.

        Args:
            path: Destination path.
            data: File contents; str is encoded as UTF-8.
            callback: Called as callback(error, stat).
            no_overwrite: Fail (or autorename) instead of replacing an existing file.
            autorename: Pick a free name when the path is taken.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        arg = {
            "path": _normalize_path(path),
            "mode": "add" if no_overwrite else "overwrite",
            "autorename": autorename,
            "mute": False,
        }
        return self._call(
            self._content("files/upload", arg, data),
            callback,
            lambda payload, meta: Stat.from_api(payload),
        )

    def stat(
        self, path: str, callback: Any, include_deleted: bool = False
    ) -> RequestHandle:
        """Get metadata for a file or folder.

        Args:
            path: Path of the entry.
            callback: Called as callback(error, stat).
            include_deleted: Return metadata for deleted entries too.
        """
        body = {"path": _normalize_path(path), "include_deleted": include_deleted}
        return self._call(
            self._rpc("files/get_metadata", body),
            callback,
            lambda payload, meta: Stat.from_api(payload),
        )

    def readdir(self, path: str, callback: Any, recursive: bool = False) -> RequestHandle:
        """List a folder, following continuation pages.

        Args:
            path: Folder path; "" or "/" is the root.
            callback: Called as callback(error, FolderListing).
            recursive: Include the contents of subfolders.

        Returns:
            The handle of the first page request.
        """
        listing = FolderListing()

        def parse_page(payload: Any, meta: Any) -> tuple:
            entries = [Stat.from_api(e) for e in payload.get("entries", [])]
            return entries, payload.get("cursor"), bool(payload.get("has_more"))

        def page(error: Any, result: Any = None, meta: Any = None) -> None:
            if error is not None:
                callback(error, None)
                return
            entries, listing.cursor, has_more = result
            listing.entries.extend(entries)
            if has_more:
                self.dispatch(
                    self._rpc("files/list_folder/continue", {"cursor": listing.cursor}),
                    page,
                    parse=parse_page,
                )
                return
            callback(None, listing)

        body = {"path": _normalize_path(path), "recursive": recursive}
        return self.dispatch(self._rpc("files/list_folder", body), page, parse=parse_page)

    def mkdir(self, path: str, callback: Any) -> RequestHandle:
        """Create a folder. callback(error, stat)."""
        return self._call(
            self._rpc("files/create_folder_v2", {"path": _normalize_path(path)}),
            callback,
            lambda payload, meta: Stat.from_api({".tag": "folder", **payload["metadata"]}),
        )

    def remove(self, path: str, callback: Any) -> RequestHandle:
        """Delete a file or folder. callback(error, stat of the removed entry)."""
        return self._call(
            self._rpc("files/delete_v2", {"path": _normalize_path(path)}),
            callback,
            lambda payload, meta: Stat.from_api(payload["metadata"]),
        )

    def copy(self, from_path: str, to_path: str, callback: Any) -> RequestHandle:
        """Copy a file or folder. callback(error, stat of the copy)."""
        body = {"from_path": _normalize_path(from_path), "to_path": _normalize_path(to_path)}
        return self._call(
            self._rpc("files/copy_v2", body),
            callback,
            lambda payload, meta: Stat.from_api(payload["metadata"]),
        )

    def move(self, from_path: str, to_path: str, callback: Any) -> RequestHandle:
        """Move or rename a file or folder. callback(error, stat at the new path)."""
        body = {"from_path": _normalize_path(from_path), "to_path": _normalize_path(to_path)}
        return self._call(
            self._rpc("files/move_v2", body),
            callback,
            lambda payload, meta: Stat.from_api(payload["metadata"]),
        )

    def history(
        self, path: str, callback: Any, limit: int = DEFAULT_REVISION_LIMIT
    ) -> RequestHandle:
        """List a file's revisions, newest first. callback(error, list of Stat)."""
        body = {"path": _normalize_path(path), "limit": limit}
        return self._call(
            self._rpc("files/list_revisions", body),
            callback,
            lambda payload, meta: [Stat.from_api(e) for e in payload.get("entries", [])],
        )
