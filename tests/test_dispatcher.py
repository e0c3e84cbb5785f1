"""Tests for request signing, sending and error classification."""

import json
from unittest.mock import Mock

import requests

from dropbox_client import AuthStep
from dropbox_client.client.dispatcher import parse_response
from dropbox_client.core.config import RequestOptions
from dropbox_client.utils.errors import AuthErrorKind

from conftest import SAMPLE_TOKEN, FakeDriver, make_response

ACCOUNT = {
    "account_id": "dbid:1",
    "name": {"display_name": "Ada Lovelace"},
    "email": "ada@example.test",
    "account_type": {".tag": "basic"},
}


def account_request(client):
    return client._rpc("users/get_current_account")


class OrderRecordingDriver(FakeDriver):
    def __init__(self, events):
        super().__init__()
        self.events = events

    def on_auth_step_change(self, client, proceed):
        self.events.append(("driver", client.auth_step))
        proceed()


class TestDispatch:
    """Tests for the happy path of RequestDispatcher.dispatch."""

    def test_success_passes_payload_and_meta(self, signed_in_client, session):
        session.add(200, ACCOUNT)
        callback = Mock()

        handle = signed_in_client.dispatch(account_request(signed_in_client), callback)

        callback.assert_called_once_with(None, ACCOUNT, None)
        assert handle.completed
        assert handle.error is None
        assert handle.response.status_code == 200

    def test_request_is_signed(self, signed_in_client, session):
        session.add(200, ACCOUNT)

        signed_in_client.dispatch(account_request(signed_in_client), Mock())

        sent = session.sent[0]
        assert sent.headers["Authorization"] == f"Bearer {SAMPLE_TOKEN}"
        assert sent.headers["User-Agent"].startswith("dropbox-client/")
        assert sent.headers["Cache-Control"] == "no-cache"

    def test_http_cache_option(self, signed_in_client, session):
        session.add(200, ACCOUNT)

        signed_in_client.dispatch(
            account_request(signed_in_client), Mock(), RequestOptions(http_cache=True)
        )

        assert "Cache-Control" not in session.sent[0].headers

    def test_timeout_falls_back_to_config(self, signed_in_client, session):
        session.add(200, ACCOUNT)
        session.add(200, ACCOUNT)

        signed_in_client.dispatch(account_request(signed_in_client), Mock())
        signed_in_client.dispatch(
            account_request(signed_in_client), Mock(), RequestOptions(timeout=5)
        )

        assert session.send_kwargs[0]["timeout"] == signed_in_client.config.timeout
        assert session.send_kwargs[1]["timeout"] == 5


class TestVeto:
    """Tests for the cancelable on_xhr event."""

    def test_vetoed_request_is_never_sent_and_never_reported(self, signed_in_client, session):
        seen = []
        signed_in_client.on_xhr.add_listener(lambda request: seen.append(request) or False)
        errors = Mock()
        signed_in_client.on_error.add_listener(errors)
        callback = Mock()

        handle = signed_in_client.dispatch(account_request(signed_in_client), callback)

        assert handle.vetoed
        assert not handle.completed
        assert session.sent == []
        callback.assert_not_called()
        errors.assert_not_called()
        assert seen[0] is handle.request

    def test_listener_returning_none_does_not_veto(self, signed_in_client, session):
        signed_in_client.on_xhr.add_listener(lambda request: None)
        session.add(200, ACCOUNT)
        callback = Mock()

        handle = signed_in_client.dispatch(account_request(signed_in_client), callback)

        assert not handle.vetoed
        callback.assert_called_once()

    def test_listener_can_decorate_request(self, signed_in_client, session):
        def tag(request):
            request.headers["X-Trace"] = "t1"

        signed_in_client.on_xhr.add_listener(tag)
        session.add(200, ACCOUNT)

        signed_in_client.dispatch(account_request(signed_in_client), Mock())

        assert session.sent[0].headers["X-Trace"] == "t1"


class TestFailures:
    """Tests for failed requests and the invalid-token transition."""

    def test_invalid_token_moves_client_to_error_first(self, signed_in_client, session):
        events = []
        signed_in_client.set_auth_driver(OrderRecordingDriver(events))
        signed_in_client.on_auth_step_change.add_listener(
            lambda c: events.append(("step", c.auth_step))
        )
        signed_in_client.on_error.add_listener(lambda e: events.append(("error", e.kind)))
        session.add(
            401,
            {"error_summary": "invalid_access_token/", "error": {".tag": "invalid_access_token"}},
        )

        def callback(error, payload, meta):
            events.append(("callback", error.kind))
            assert signed_in_client.auth_step is AuthStep.ERROR

        handle = signed_in_client.dispatch(account_request(signed_in_client), callback)

        assert events == [
            ("step", AuthStep.ERROR),
            ("driver", AuthStep.ERROR),
            ("error", AuthErrorKind.INVALID_TOKEN),
            ("callback", AuthErrorKind.INVALID_TOKEN),
        ]
        assert signed_in_client.auth_error is handle.error
        assert handle.error.http_status == 401
        assert handle.error.error_summary == "invalid_access_token/"

    def test_invalid_token_before_sign_in_keeps_step(self, client, session):
        session.add(401, {"error_summary": "invalid_access_token/"})
        callback = Mock()

        client.dispatch(account_request(client), callback)

        assert callback.call_args[0][0].kind is AuthErrorKind.INVALID_TOKEN
        assert client.auth_step is AuthStep.RESET

    def test_network_error(self, signed_in_client, session):
        session.add_exception(requests.ConnectionError("connection refused"))
        errors = []
        signed_in_client.on_error.add_listener(errors.append)
        callback = Mock()

        handle = signed_in_client.dispatch(account_request(signed_in_client), callback)

        error = callback.call_args[0][0]
        assert error.kind is AuthErrorKind.NETWORK
        assert error.http_status is None
        assert error.url.endswith("/2/users/get_current_account")
        assert errors == [error]
        assert handle.response is None
        assert signed_in_client.auth_step is AuthStep.DONE

    def test_endpoint_error_keeps_step(self, signed_in_client, session):
        session.add(409, {"error_summary": "path/not_found/..", "error": {".tag": "path"}})
        callback = Mock()

        signed_in_client.dispatch(account_request(signed_in_client), callback)

        error = callback.call_args[0][0]
        assert error.kind is AuthErrorKind.OTHER
        assert error.http_status == 409
        assert error.error_summary == "path/not_found/.."
        assert signed_in_client.auth_step is AuthStep.DONE


    def test_undecodable_body_is_reported_not_raised(self, signed_in_client, session):
        session.add(200, content=b"{not json", headers={"Content-Type": "application/json"})
        errors = []
        signed_in_client.on_error.add_listener(errors.append)
        callback = Mock()

        handle = signed_in_client.dispatch(account_request(signed_in_client), callback)

        error = callback.call_args[0][0]
        assert errors == [error]
        assert handle.error is error
        assert handle.completed
        assert error.url.endswith("/2/users/get_current_account")
        assert signed_in_client.auth_step is AuthStep.DONE

    def test_failing_parse_is_reported(self, signed_in_client, session):
        session.add(200, {"unexpected": True})
        callback = Mock()

        signed_in_client.dispatch(
            account_request(signed_in_client),
            callback,
            parse=lambda payload, meta: payload["account_id"],
        )

        error, payload, meta = callback.call_args[0]
        assert error.kind is AuthErrorKind.OTHER
        assert payload is None
        assert error.raw_response == json.dumps({"unexpected": True})


class TestParseResponse:
    """Tests for splitting responses into payload and metadata."""

    def test_json(self):
        payload, meta = parse_response(make_response(200, {"a": 1}))
        assert payload == {"a": 1}
        assert meta is None

    def test_binary_with_result_header(self):
        response = make_response(
            200,
            content=b"\x00\x01",
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Result": json.dumps({"name": "a.bin"}),
            },
        )
        payload, meta = parse_response(response)
        assert payload == b"\x00\x01"
        assert meta == {"name": "a.bin"}

    def test_text(self):
        response = make_response(200, content=b"hello", headers={"Content-Type": "text/plain"})
        assert parse_response(response) == ("hello", None)

    def test_empty_body(self):
        assert parse_response(make_response(200)) == (None, None)
