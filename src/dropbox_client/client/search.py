"""Search mixin for DropboxClient."""
from typing import Any

from ..utils.constants import DEFAULT_SEARCH_LIMIT
from .dispatcher import RequestHandle
from .files import _normalize_path
from .models import Stat


class SearchMixin:
    """Mixin providing file name and content search."""

    def search(
        self,
        query: str,
        callback: Any,
        path: str = "",
        limit: int = DEFAULT_SEARCH_LIMIT,
        filename_only: bool = False,
    ) -> RequestHandle:
        """Search for files and folders.

        Args:
            query: The search string.
            callback: Called as callback(error, list of Stat).
            path: Restrict the search to this folder.
            limit: Maximum number of matches.
            filename_only: Match names only, not file contents.

        Returns:
            The request handle.
        """
        body = {
            "query": query,
            "options": {
                "path": _normalize_path(path),
                "max_results": limit,
                "filename_only": filename_only,
            },
        }

        def parse(payload: Any, meta: Any) -> list[Stat]:
            matches = payload.get("matches", [])
            return [
                Stat.from_api(match["metadata"]["metadata"])
                for match in matches
                if "metadata" in match.get("metadata", {})
            ]

        return self._call(self._rpc("files/search_v2", body), callback, parse)
