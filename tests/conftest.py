"""Shared test fixtures for the dropbox-client test suite."""

import json
from typing import Any, Optional

import pytest
import requests

from dropbox_client import ClientConfig, DropboxClient
from dropbox_client.auth.credential_cache import MemoryCredentialCache
from dropbox_client.auth.drivers import AuthDriver

# Sample values used across tests
SAMPLE_KEY = "app_key_123"
SAMPLE_SECRET = "app_secret_456"
SAMPLE_TOKEN = "tok"
SAMPLE_UID = "42"
SAMPLE_CODE = "abc"


def make_response(
    status: int = 200,
    json_body: Any = None,
    content: bytes = b"",
    headers: Optional[dict] = None,
    request: Optional[requests.PreparedRequest] = None,
) -> requests.Response:
    """Build a requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    response.headers.update(headers or {})
    if json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
        response.headers.setdefault("Content-Type", "application/json")
    else:
        response._content = content
    response.request = request
    response.encoding = "utf-8"
    return response


class FakeSession(requests.Session):
    """A requests.Session whose send() returns scripted responses.

    Each queued item is a Response (returned) or an exception (raised).
    """

    def __init__(self) -> None:
        super().__init__()
        self.queue: list = []
        self.sent: list = []
        self.send_kwargs: list = []

    def add(self, status: int = 200, json_body: Any = None, **kwargs: Any) -> None:
        self.queue.append(("response", status, json_body, kwargs))

    def add_exception(self, exc: Exception) -> None:
        self.queue.append(("raise", exc))

    def send(self, request, **kwargs):
        self.sent.append(request)
        self.send_kwargs.append(kwargs)
        if not self.queue:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self.queue.pop(0)
        if item[0] == "raise":
            raise item[1]
        _, status, json_body, extra = item
        return make_response(status, json_body, request=request, **extra)


class FakeDriver(AuthDriver):
    """Driver whose redirect immediately returns scripted parameters.

    The redirect echoes the state parameter unless the script sets "state";
    a state of None leaves it out.
    """

    def __init__(self, redirect_params: Optional[dict] = None, redirect_uri: Optional[str] = None):
        self.redirect_params = redirect_params if redirect_params is not None else {
            "code": SAMPLE_CODE,
            "uid": SAMPLE_UID,
        }
        self.redirect_uri = redirect_uri
        self.calls: list = []

    def url(self):
        return self.redirect_uri

    def do_authorize(self, authorize_url, state_param, client, done):
        self.calls.append(("do_authorize", authorize_url, state_param))
        params = dict(self.redirect_params)
        if params.get("state", "<echo>") == "<echo>":
            params["state"] = state_param
        elif params["state"] is None:
            del params["state"]
        done(params)


class HookDriver(FakeDriver):
    """FakeDriver that also records step changes it is told about."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.seen_steps: list = []

    def on_auth_step_change(self, client, proceed):
        self.seen_steps.append(client.auth_step)
        self.calls.append(("on_auth_step_change", client.auth_step))
        proceed()


@pytest.fixture
def config():
    return ClientConfig(key=SAMPLE_KEY, secret=SAMPLE_SECRET)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(config, session):
    """A fresh client with no credentials and no driver."""
    return DropboxClient(config, session=session)


@pytest.fixture
def signed_in_client(client):
    """A client restored from credentials that hold an access token."""
    client.set_credentials({"key": SAMPLE_KEY, "secret": SAMPLE_SECRET, "token": SAMPLE_TOKEN, "uid": SAMPLE_UID})
    return client


@pytest.fixture
def memory_cache():
    return MemoryCredentialCache()
