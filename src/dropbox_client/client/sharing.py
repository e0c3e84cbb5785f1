"""Link creation mixin for DropboxClient."""
from typing import Any

from .dispatcher import RequestHandle
from .files import _normalize_path
from .models import PublicUrl


class SharingMixin:
    """Mixin providing links to files."""

    def make_url(self, path: str, callback: Any, download: bool = False) -> RequestHandle:
        """Create a link to a file.

        Args:
            path: The file path.
            callback: Called as callback(error, PublicUrl).
            download: If True, return a temporary direct-download link
                (valid for four hours) instead of a shared preview link.

        Returns:
            The request handle.
        """
        body = {"path": _normalize_path(path)}
        if download:
            return self._call(
                self._rpc("files/get_temporary_link", body),
                callback,
                lambda payload, meta: PublicUrl(url=payload["link"], is_direct=True),
            )

        body["settings"] = {"requested_visibility": "public"}
        return self._call(
            self._rpc("sharing/create_shared_link_with_settings", body),
            callback,
            lambda payload, meta: PublicUrl(
                url=payload["url"],
                is_direct=False,
                expires_at=payload.get("expires"),
            ),
        )
