"""Tests for the file, account, search, sharing and change endpoints."""

import json
from unittest.mock import Mock

from dropbox_client.client.files import _normalize_path
from dropbox_client.client.models import AccountInfo, FolderListing, PulledChanges
from dropbox_client.utils.errors import AuthErrorKind

FILE_META = {
    ".tag": "file",
    "name": "notes.txt",
    "path_display": "/Docs/notes.txt",
    "id": "id:abc",
    "rev": "015f",
    "size": 11,
}
FOLDER_META = {".tag": "folder", "name": "Docs", "path_display": "/Docs", "id": "id:dir"}


def sent_json(session, index=0):
    return json.loads(session.sent[index].body)


class TestNormalizePath:
    def test_root_variants(self):
        assert _normalize_path("/") == ""
        assert _normalize_path("") == ""

    def test_relative_and_trailing_slash(self):
        assert _normalize_path("Docs/") == "/Docs"
        assert _normalize_path("/Docs/a.txt") == "/Docs/a.txt"

    def test_ids_are_left_alone(self):
        assert _normalize_path("id:abc") == "id:abc"


class TestAccount:
    def test_account_info(self, signed_in_client, session):
        session.add(
            200,
            {
                "account_id": "dbid:1",
                "name": {"display_name": "Ada Lovelace"},
                "email": "ada@example.test",
                "account_type": {".tag": "pro"},
            },
        )
        callback = Mock()

        signed_in_client.account_info(callback)

        error, info = callback.call_args[0]
        assert error is None
        assert isinstance(info, AccountInfo)
        assert info.display_name == "Ada Lovelace"
        assert info.account_type == "pro"
        assert session.sent[0].url == "https://api.dropboxapi.com/2/users/get_current_account"

    def test_error_is_passed_through(self, signed_in_client, session):
        session.add(500, {"error_summary": "internal_error"})
        callback = Mock()

        signed_in_client.account_info(callback)

        error, info = callback.call_args[0]
        assert error.http_status == 500
        assert info is None

    def test_malformed_json_is_reported_through_callback(self, signed_in_client, session):
        session.add(200, content=b"{not json", headers={"Content-Type": "application/json"})
        callback = Mock()

        handle = signed_in_client.account_info(callback)

        error, info = callback.call_args[0]
        assert error.kind is AuthErrorKind.OTHER
        assert error.http_status == 200
        assert error.raw_response == "{not json"
        assert info is None
        assert handle.error is error


class TestFiles:
    def test_read_file_returns_data_and_stat(self, signed_in_client, session):
        session.add(
            200,
            content=b"hello world",
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Result": json.dumps(FILE_META),
            },
        )
        callback = Mock()

        signed_in_client.read_file("Docs/notes.txt", callback, rev="015f")

        error, (data, stat) = callback.call_args[0]
        assert error is None
        assert data == b"hello world"
        assert stat.name == "notes.txt"
        assert stat.is_file
        assert stat.size == 11

        request = session.sent[0]
        assert request.url == "https://content.dropboxapi.com/2/files/download"
        assert json.loads(request.headers["Dropbox-API-Arg"]) == {
            "path": "/Docs/notes.txt",
            "rev": "015f",
        }

    def test_read_file_with_http_cache(self, signed_in_client, session):
        session.add(200, content=b"x", headers={"Dropbox-API-Result": json.dumps(FILE_META)})

        signed_in_client.read_file("/a", Mock(), http_cache=True)

        assert "Cache-Control" not in session.sent[0].headers

    def test_write_file(self, signed_in_client, session):
        session.add(200, FILE_META)
        callback = Mock()

        signed_in_client.write_file("/Docs/notes.txt", "hello world", callback, no_overwrite=True)

        error, stat = callback.call_args[0]
        assert stat.rev == "015f"
        request = session.sent[0]
        assert request.body == b"hello world"
        assert request.headers["Content-Type"] == "application/octet-stream"
        arg = json.loads(request.headers["Dropbox-API-Arg"])
        assert arg["mode"] == "add"

    def test_stat_folder(self, signed_in_client, session):
        session.add(200, FOLDER_META)
        callback = Mock()

        signed_in_client.stat("/Docs", callback)

        stat = callback.call_args[0][1]
        assert stat.is_folder
        assert not stat.is_file
        assert sent_json(session) == {"path": "/Docs", "include_deleted": False}

    def test_readdir_follows_pages(self, signed_in_client, session):
        session.add(200, {"entries": [FOLDER_META], "cursor": "c1", "has_more": True})
        session.add(200, {"entries": [FILE_META], "cursor": "c2", "has_more": False})
        callback = Mock()

        signed_in_client.readdir("/", callback)

        error, listing = callback.call_args[0]
        assert error is None
        assert isinstance(listing, FolderListing)
        assert [entry.name for entry in listing.entries] == ["Docs", "notes.txt"]
        assert listing.cursor == "c2"
        assert sent_json(session, 0)["path"] == ""
        assert sent_json(session, 1) == {"cursor": "c1"}
        assert session.sent[1].url.endswith("/2/files/list_folder/continue")

    def test_readdir_error_on_second_page(self, signed_in_client, session):
        session.add(200, {"entries": [], "cursor": "c1", "has_more": True})
        session.add(409, {"error_summary": "reset/"})
        callback = Mock()

        signed_in_client.readdir("/", callback)

        error, listing = callback.call_args[0]
        assert error.kind is AuthErrorKind.OTHER
        assert listing is None
        callback.assert_called_once()

    def test_mkdir(self, signed_in_client, session):
        session.add(200, {"metadata": {"name": "New", "path_display": "/New"}})
        callback = Mock()

        signed_in_client.mkdir("New", callback)

        assert callback.call_args[0][1].is_folder
        assert sent_json(session) == {"path": "/New"}

    def test_remove(self, signed_in_client, session):
        session.add(200, {"metadata": FILE_META})
        callback = Mock()

        signed_in_client.remove("/Docs/notes.txt", callback)

        assert callback.call_args[0][1].path == "/Docs/notes.txt"
        assert session.sent[0].url.endswith("/2/files/delete_v2")

    def test_copy_and_move(self, signed_in_client, session):
        session.add(200, {"metadata": FILE_META})
        session.add(200, {"metadata": FILE_META})

        signed_in_client.copy("/a.txt", "/b.txt", Mock())
        signed_in_client.move("/b.txt", "/c.txt", Mock())

        assert sent_json(session, 0) == {"from_path": "/a.txt", "to_path": "/b.txt"}
        assert session.sent[1].url.endswith("/2/files/move_v2")

    def test_history(self, signed_in_client, session):
        session.add(200, {"is_deleted": False, "entries": [FILE_META, FILE_META]})
        callback = Mock()

        signed_in_client.history("/Docs/notes.txt", callback, limit=2)

        assert len(callback.call_args[0][1]) == 2
        assert sent_json(session)["limit"] == 2


class TestSearchSharingChanges:
    def test_search(self, signed_in_client, session):
        session.add(
            200,
            {
                "matches": [
                    {"metadata": {".tag": "metadata", "metadata": FILE_META}},
                    {"metadata": {".tag": "other"}},
                ],
                "has_more": False,
            },
        )
        callback = Mock()

        signed_in_client.search("notes", callback, path="/Docs", filename_only=True)

        results = callback.call_args[0][1]
        assert [stat.name for stat in results] == ["notes.txt"]
        body = sent_json(session)
        assert body["query"] == "notes"
        assert body["options"]["path"] == "/Docs"
        assert body["options"]["filename_only"] is True

    def test_make_url_download(self, signed_in_client, session):
        session.add(200, {"metadata": FILE_META, "link": "https://dl.example.test/x"})
        callback = Mock()

        signed_in_client.make_url("/Docs/notes.txt", callback, download=True)

        url = callback.call_args[0][1]
        assert url.is_direct
        assert url.url == "https://dl.example.test/x"

    def test_make_url_shared(self, signed_in_client, session):
        session.add(200, {"url": "https://www.dropbox.com/s/abc", "expires": "2030-01-01T00:00:00Z"})
        callback = Mock()

        signed_in_client.make_url("/Docs/notes.txt", callback)

        url = callback.call_args[0][1]
        assert not url.is_direct
        assert url.expires_at == "2030-01-01T00:00:00Z"
        assert sent_json(session)["settings"] == {"requested_visibility": "public"}

    def test_latest_cursor_and_pull_changes(self, signed_in_client, session):
        session.add(200, {"cursor": "c1"})
        session.add(
            200,
            {
                "entries": [FILE_META, {".tag": "deleted", "name": "old.txt", "path_lower": "/old.txt"}],
                "cursor": "c2",
                "has_more": True,
            },
        )
        cursor_cb = Mock()
        changes_cb = Mock()

        signed_in_client.latest_cursor(cursor_cb)
        signed_in_client.pull_changes(cursor_cb.call_args[0][1], changes_cb)

        changes = changes_cb.call_args[0][1]
        assert isinstance(changes, PulledChanges)
        assert changes.cursor == "c2"
        assert changes.should_pull_again
        assert changes.changes[1].is_removed
        assert sent_json(session, 1) == {"cursor": "c1"}

    def test_unexpected_payload_shape_is_an_error(self, signed_in_client, session):
        errors = []
        signed_in_client.on_error.add_listener(errors.append)
        session.add(200, {"entries": []})
        callback = Mock()

        signed_in_client.latest_cursor(callback)

        error, cursor = callback.call_args[0]
        assert cursor is None
        assert "cursor" in error.message
        assert errors == [error]
