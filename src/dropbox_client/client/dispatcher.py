"""Signs, sends and classifies authenticated requests."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from ..auth.credential_store import CredentialStore
from ..auth.state_machine import AuthStateMachine
from ..auth.steps import AuthStep
from ..core.config import RequestOptions
from ..core.events import EventSource
from ..utils.constants import API_RESULT_HEADER, DEFAULT_USER_AGENT
from ..utils.errors import (
    AuthError,
    AuthErrorKind,
    NetworkError,
    classify_response,
    dump_error,
    unexpected_response,
)

logger = logging.getLogger(__name__)

RequestCallback = Callable[..., None]


@dataclass
class RequestHandle:
    """
    What dispatch() returns for one request.

    Attributes:
        request: The signed, prepared request.
        response: The HTTP response, once received.
        error: The classified error, if the request failed.
        vetoed: True if an on_xhr listener canceled the request. A vetoed
            request is never sent and its callback is never called.
        completed: True once the callback has been invoked.
    """

    request: requests.PreparedRequest
    response: Optional[requests.Response] = None
    error: Optional[AuthError] = None
    vetoed: bool = False
    completed: bool = False


def parse_response(response: requests.Response) -> tuple[Any, Any]:
    """Split a successful response into (payload, meta).

    The payload is decoded JSON, text or raw bytes depending on the content
    type. meta is the decoded Dropbox-API-Result header sent by content
    endpoints, or None.
    """
    meta = None
    raw_meta = response.headers.get(API_RESULT_HEADER)
    if raw_meta:
        try:
            meta = json.loads(raw_meta)
        except ValueError:
            logger.warning(f"Could not decode {API_RESULT_HEADER} header")
            meta = raw_meta

    if not response.content:
        return None, meta

    content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
    if content_type == "application/json":
        return response.json(), meta
    if content_type.startswith("text/"):
        return response.text, meta
    return response.content, meta


class RequestDispatcher:
    """
    Sends requests on behalf of one client.

    Independent dispatches do not serialize against each other; each call
    has exactly one outstanding HTTP exchange.
    """

    def __init__(
        self,
        store: CredentialStore,
        auth: AuthStateMachine,
        on_xhr: EventSource,
        on_error: EventSource,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.store = store
        self.auth = auth
        self.on_xhr = on_xhr
        self.on_error = on_error
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent

    def dispatch(
        self,
        request: requests.Request,
        callback: RequestCallback,
        options: Optional[RequestOptions] = None,
        parse: Optional[Callable[[Any, Any], Any]] = None,
    ) -> RequestHandle:
        """
        Sign and send request, then report through callback.

        Args:
            request: The unsigned request.
            callback: Called as callback(error, payload, meta); error is None
                on success.
            options: Per-request RequestOptions.
            parse: Optional parse(payload, meta) whose result replaces the
                payload. A body that fails to decode or parse is reported
                to callback as an error.

        Returns:
            A RequestHandle describing the exchange.
        """
        options = options or RequestOptions()
        signed = self.store.sign(request, allow_http_cache=options.http_cache)
        signed.headers.setdefault("User-Agent", self.user_agent)
        prepared = self.session.prepare_request(signed)
        handle = RequestHandle(request=prepared)

        if not self.on_xhr.dispatch(prepared):
            # The callback is intentionally never called for vetoed requests
            handle.vetoed = True
            logger.info(f"Request vetoed before sending: {prepared.method} {prepared.url}")
            return handle

        timeout = options.timeout if options.timeout is not None else self.timeout
        logger.debug(f"Sending {prepared.method} {prepared.url}")
        try:
            response = self.session.send(prepared, timeout=timeout)
        except requests.RequestException as e:
            error = NetworkError(
                f"Network error: {e}",
                method=prepared.method,
                url=prepared.url,
            )
            self._fail(handle, error, callback)
            return handle

        handle.response = response
        if not 200 <= response.status_code < 300:
            self._fail(handle, classify_response(response), callback)
            return handle

        try:
            payload, meta = parse_response(response)
            if parse is not None:
                payload = parse(payload, meta)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self._fail(handle, unexpected_response(response, e), callback)
            return handle

        handle.completed = True
        callback(None, payload, meta)
        return handle

    def _fail(
        self, handle: RequestHandle, error: AuthError, callback: RequestCallback
    ) -> None:
        handle.error = error
        logger.warning(f"Request failed: {dump_error(error)}")

        def surface() -> None:
            handle.completed = True
            self.on_error.dispatch(error)
            callback(error, None, None)

        if error.kind is AuthErrorKind.INVALID_TOKEN and self.auth.step is AuthStep.DONE:
            # Credential state becomes authoritative before anyone sees the error
            self.auth.force_error(error, surface)
        else:
            surface()
