"""Typed results returned by the endpoint operations."""
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Stat:
    """Metadata of a file, folder or deleted entry."""

    name: str
    path: Optional[str]
    is_file: bool = False
    is_folder: bool = False
    is_removed: bool = False
    id: Optional[str] = None
    rev: Optional[str] = None
    size: int = 0
    content_hash: Optional[str] = None
    client_modified: Optional[str] = None
    server_modified: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Stat":
        """Build a Stat from a metadata object.

        Args:
            data: A metadata dictionary with a ".tag" of file, folder or deleted.

        Returns:
            The parsed Stat.
        """
        tag = data.get(".tag", "file")
        return cls(
            name=data.get("name", ""),
            path=data.get("path_display") or data.get("path_lower"),
            is_file=tag == "file",
            is_folder=tag == "folder",
            is_removed=tag == "deleted",
            id=data.get("id"),
            rev=data.get("rev"),
            size=int(data.get("size", 0)),
            content_hash=data.get("content_hash"),
            client_modified=data.get("client_modified"),
            server_modified=data.get("server_modified"),
        )


@dataclass
class AccountInfo:
    """The signed-in user's account."""

    account_id: str
    display_name: str
    email: Optional[str] = None
    country: Optional[str] = None
    locale: Optional[str] = None
    referral_link: Optional[str] = None
    account_type: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "AccountInfo":
        name = data.get("name") or {}
        account_type = data.get("account_type") or {}
        return cls(
            account_id=data.get("account_id", ""),
            display_name=name.get("display_name", ""),
            email=data.get("email"),
            country=data.get("country"),
            locale=data.get("locale"),
            referral_link=data.get("referral_link"),
            account_type=account_type.get(".tag"),
        )


@dataclass
class FolderListing:
    """Entries of a folder plus the cursor to poll it for changes."""

    entries: list[Stat] = field(default_factory=list)
    cursor: Optional[str] = None


@dataclass
class PulledChanges:
    """One page of a change stream."""

    changes: list[Stat]
    cursor: str
    should_pull_again: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PulledChanges":
        return cls(
            changes=[Stat.from_api(entry) for entry in data.get("entries", [])],
            cursor=data.get("cursor", ""),
            should_pull_again=bool(data.get("has_more")),
        )


@dataclass
class PublicUrl:
    """A link to a file: a temporary direct-download link or a shared preview link."""

    url: str
    is_direct: bool
    expires_at: Optional[str] = None
