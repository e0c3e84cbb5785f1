"""Base client: owns the credentials, the auth state machine and the dispatcher."""
import json
import logging
from typing import Any, Callable, Optional, Union, Mapping

import requests

from ..auth.credential_store import Credentials, CredentialStore
from ..auth.scopes import get_scopes
from ..auth.state_machine import AuthStateMachine
from ..auth.steps import AuthStep
from ..core.config import AuthOptions, ClientConfig, RequestOptions
from ..core.events import EventSource
from ..utils.constants import API_ARG_HEADER, REVOKE_PATH, TOKEN_PATH
from ..utils.errors import AuthError, AuthErrorKind, ValidationError
from .dispatcher import RequestDispatcher, RequestHandle

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Optional[AuthError], Any], None]


class DropboxClientBase:
    """Base class holding one user's OAuth state and the request pipeline.

    Events:
        on_auth_step_change: fires with the client whenever auth_step changes.
        on_error: fires with the AuthError of every failed request.
        on_xhr: cancelable; fires with the prepared request right before it
            is sent. A listener returning False drops the request.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        driver: Any = None,
        session: Optional[requests.Session] = None,
        scopes: Optional[list[str]] = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; read from the environment if omitted.
            driver: The AuthDriver used by authenticate().
            session: requests.Session used as the transport.
            scopes: OAuth scopes requested on the authorize page. Defaults to
                every scope the endpoint methods need; pass [] to request none.
        """
        self.config = config or ClientConfig.from_env()
        self.scopes = get_scopes() if scopes is None else list(scopes)

        self.on_auth_step_change = EventSource()
        self.on_error = EventSource()
        self.on_xhr = EventSource(cancelable=True)

        self._store = CredentialStore(
            self.config.key,
            self.config.secret,
            servers=self.config.servers,
            signing=self.config.signing,
        )
        self._auth = AuthStateMachine(self, self._store, self.on_auth_step_change)
        self._dispatcher = RequestDispatcher(
            self._store,
            self._auth,
            self.on_xhr,
            self.on_error,
            session=session,
            timeout=self.config.timeout,
            user_agent=self.config.user_agent,
        )
        if driver is not None:
            self.set_auth_driver(driver)

    # Authentication

    def set_auth_driver(self, driver: Any) -> None:
        """Use driver for the interactive parts of authenticate()."""
        self._auth.driver = driver

    @property
    def auth_driver(self) -> Any:
        return self._auth.driver

    @property
    def auth_step(self) -> AuthStep:
        return self._auth.step

    @property
    def auth_error(self) -> Optional[AuthError]:
        return self._auth.error

    def authenticate(
        self,
        options: Optional[AuthOptions] = None,
        callback: Optional[ResultCallback] = None,
    ) -> "DropboxClientBase":
        """Run the OAuth flow until the user is signed in or it fails.

        Args:
            options: AuthOptions(interactive=...).
            callback: Called as callback(error, client).

        Returns:
            The client, for chaining.

        Raises:
            ValidationError: On misuse (no driver, ERROR state, concurrent run).
        """
        self._auth.authenticate(options, callback)
        return self

    def is_authenticated(self) -> bool:
        return self._auth.step is AuthStep.DONE

    def dropbox_uid(self) -> Optional[str]:
        """The user id of the signed-in user."""
        return self._store.uid

    def credentials(self) -> Credentials:
        """Snapshot of the client's credentials, suitable for persisting."""
        return self._store.credentials()

    def set_credentials(self, credentials: Union[Credentials, Mapping[str, Any]]) -> None:
        """Restore credentials produced by credentials().

        Raises:
            ValidationError: If the key is missing or belongs to another app.
        """
        self._auth.set_credentials(credentials)

    def reset(self) -> None:
        """Drop the user's authorization, keeping the app key and secret."""
        self._auth.reset()

    def app_hash(self) -> str:
        return self._store.app_hash()

    def authorize_url(self) -> str:
        """URL of the authorize page for the current state parameter."""
        driver = self._auth.driver
        if driver is None:
            raise ValidationError("An auth driver is required to build the authorize URL")
        return self._store.authorize_url(
            driver.url(), driver.auth_type(), scopes=self.scopes
        )

    def get_access_token(self, callback: Callable[..., None]) -> RequestHandle:
        """Exchange the held authorization code for an access token."""
        driver = self._auth.driver
        redirect_uri = driver.url() if driver is not None else None
        request = requests.Request(
            "POST",
            self._api_url(TOKEN_PATH),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data=self._store.access_token_params(redirect_uri),
        )
        return self.dispatch(request, callback)

    def sign_out(
        self,
        callback: Optional[Callable[[Optional[AuthError]], None]] = None,
        must_invalidate: bool = True,
    ) -> RequestHandle:
        """Revoke the access token and forget the user's credentials.

        Args:
            callback: Called as callback(error) once the client is signed off.
            must_invalidate: When True, a failed revocation leaves the client
                signed in and is reported to callback. When False, the local
                credentials are dropped regardless.

        Raises:
            ValidationError: If the client is not authenticated.
        """
        if not self.is_authenticated():
            raise ValidationError("Cannot sign out a client that is not signed in")

        def revoked(error: Optional[AuthError], payload: Any = None, meta: Any = None) -> None:
            if error is not None:
                if error.kind is AuthErrorKind.INVALID_TOKEN:
                    # The token is already unusable; treat it as revoked
                    error = None
                elif must_invalidate:
                    if callback:
                        callback(error)
                    return
            logger.info("Signed out")
            self._auth.signed_off(lambda: callback(error) if callback else None)

        return self.dispatch(requests.Request("POST", self._api_url(REVOKE_PATH)), revoked)

    # Requests

    def dispatch(
        self,
        request: requests.Request,
        callback: Callable[..., None],
        options: Optional[RequestOptions] = None,
        parse: Optional[Callable[[Any, Any], Any]] = None,
    ) -> RequestHandle:
        """Sign and send an arbitrary request; see RequestDispatcher.dispatch."""
        return self._dispatcher.dispatch(request, callback, options, parse)

    def _api_url(self, path: str) -> str:
        return f"{self._store.servers.api_server}{path}"

    def _content_url(self, path: str) -> str:
        return f"{self._store.servers.content_server}{path}"

    def _rpc(self, route: str, body: Optional[dict[str, Any]] = None) -> requests.Request:
        """Build an RPC-style request (JSON in, JSON out)."""
        return requests.Request("POST", self._api_url(f"/2/{route}"), json=body)

    def _content(
        self, route: str, arg: dict[str, Any], data: Optional[bytes] = None
    ) -> requests.Request:
        """Build a content-style request (arguments travel in a header)."""
        headers = {API_ARG_HEADER: json.dumps(arg)}
        if data is not None:
            headers["Content-Type"] = "application/octet-stream"
        return requests.Request(
            "POST", self._content_url(f"/2/{route}"), headers=headers, data=data
        )

    def _call(
        self,
        request: requests.Request,
        callback: ResultCallback,
        parse: Callable[[Any, Any], Any],
        options: Optional[RequestOptions] = None,
    ) -> RequestHandle:
        """Dispatch request and hand callback(error, parse(payload, meta))."""

        def done(error: Optional[AuthError], result: Any = None, meta: Any = None) -> None:
            callback(error, None if error is not None else result)

        return self.dispatch(request, done, options, parse)
