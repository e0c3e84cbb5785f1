"""
Auth drivers for the Dropbox client.

A driver connects the OAuth state machine to the host application: it shows
the authorize page to the user and hands the redirect parameters back.
Besides the required do_authorize(), a driver may implement any of these
optional hooks; the state machine checks for them by name:

    get_state_param(done)
        Supply the state parameter instead of a random one.
    resume_authorize(state_param, client, done)
        Finish an authorization whose state parameter was loaded from cache.
    on_auth_step_change(client, proceed)
        React to a step change (e.g. persist credentials), then call proceed().
"""

import logging
import webbrowser
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qsl, urlparse

from ..utils.constants import AUTH_TYPE_CODE
from ..utils.errors import ValidationError
from .credential_cache import CredentialCache, get_credential_cache
from .oauth_callback_server import CallbackServer
from .oauth_config import CALLBACK_PATH, get_oauth_config
from .steps import AuthStep

logger = logging.getLogger(__name__)

RedirectCallback = Callable[[Dict[str, Any]], None]


class AuthDriver(ABC):
    """Base class for drivers. Only do_authorize() is required."""

    def auth_type(self) -> str:
        """Return "code" for the authorization-code grant, "token" for the implicit grant."""
        return AUTH_TYPE_CODE

    def url(self) -> Optional[str]:
        """The redirect URI, or None for the no-redirect (copy/paste) flow."""
        return None

    @abstractmethod
    def do_authorize(
        self, authorize_url: str, state_param: str, client: Any, done: RedirectCallback
    ) -> None:
        """Send the user to authorize_url and call done(redirect_params)."""
        pass


class CredentialCachingDriver(AuthDriver):
    """
    Driver base that persists credentials across runs.

    Credentials are cached under the client's app hash: a pending state
    parameter as soon as the authorize redirect starts, the access token once
    authorization finishes. Errors and sign-outs drop the cache.
    """

    def __init__(
        self, cache: Optional[CredentialCache] = None, remember_user: bool = True
    ) -> None:
        self.cache = cache if cache is not None else get_credential_cache()
        self.remember_user = remember_user

    def load_credentials(self, client: Any) -> bool:
        """
        Restore cached credentials into client.

        Returns:
            True if cached credentials were applied.
        """
        credentials = self.cache.load(client.app_hash())
        if credentials is None:
            return False
        try:
            client.set_credentials(credentials)
        except ValidationError as e:
            logger.warning(f"Discarding unusable cached credentials: {e}")
            self.cache.forget(client.app_hash())
            return False
        logger.info(f"Restored cached credentials (step {client.auth_step.name})")
        return True

    def on_auth_step_change(self, client: Any, proceed: Callable[[], None]) -> None:
        app_hash = client.app_hash()
        step = client.auth_step

        if step is AuthStep.RESET:
            # Pick up an authorization left half-finished by an earlier run
            cached = self.cache.load(app_hash)
            if cached is not None and cached.state_param and not cached.token:
                self.load_credentials(client)
        elif step is AuthStep.PARAM_SET:
            self.cache.store(app_hash, client.credentials())
        elif step is AuthStep.DONE:
            if self.remember_user:
                self.cache.store(app_hash, client.credentials())
            else:
                self.cache.forget(app_hash)
        elif step in (AuthStep.ERROR, AuthStep.SIGNED_OFF):
            self.cache.forget(app_hash)

        proceed()


def parse_redirect(answer: str, state_param: Optional[str] = None) -> Dict[str, Any]:
    """
    Turn what the user pasted into redirect parameters.

    Accepts a full redirect URL (query or fragment) or a bare authorization
    code. An empty answer counts as the user canceling. A bare code is
    paired with state_param, since Dropbox shows it without one when no
    redirect URI is used.
    """
    answer = answer.strip()
    if not answer:
        return {"error": "access_denied", "error_description": "No code was entered"}
    if "://" in answer:
        parsed = urlparse(answer)
        params = dict(parse_qsl(parsed.query))
        params.update(parse_qsl(parsed.fragment))
        return params
    params = {"code": answer}
    if state_param:
        params["state"] = state_param
    return params


class ConsoleDriver(CredentialCachingDriver):
    """
    Driver for terminals: prints the authorize URL and reads back the code.

    Without a redirect URI, Dropbox shows the authorization code on its own
    page and the user pastes it here.
    """

    def __init__(
        self,
        redirect_uri: Optional[str] = None,
        cache: Optional[CredentialCache] = None,
        remember_user: bool = True,
        open_browser: bool = False,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
    ) -> None:
        super().__init__(cache, remember_user)
        self.redirect_uri = redirect_uri
        self.open_browser = open_browser
        self.input_func = input_func
        self.output_func = output_func

    def url(self) -> Optional[str]:
        return self.redirect_uri

    def do_authorize(
        self, authorize_url: str, state_param: str, client: Any, done: RedirectCallback
    ) -> None:
        message_lines = [
            "**ACTION REQUIRED: Dropbox Authorization Needed**",
            "",
            "1. Open this URL in your browser and allow access:",
            f"   {authorize_url}",
            "2. Paste the authorization code (or the full redirect URL) below.",
        ]
        self.output_func("\n".join(message_lines))
        if self.open_browser:
            webbrowser.open(authorize_url)
        answer = self.input_func("Authorization code: ")
        done(parse_redirect(answer, self._bare_code_state(state_param)))

    def resume_authorize(self, state_param: str, client: Any, done: RedirectCallback) -> None:
        """Finish an authorization started in an earlier run of the program."""
        self.output_func(
            "An earlier authorization is still pending. Paste its code or "
            "redirect URL, or press Enter to start over."
        )
        answer = self.input_func("Authorization code: ").strip()
        if not answer:
            # Start over with a fresh authorize page for the same state
            self.do_authorize(client.authorize_url(), state_param, client, done)
            return
        done(parse_redirect(answer, self._bare_code_state(state_param)))

    def _bare_code_state(self, state_param: str) -> Optional[str]:
        # With a redirect URI the state must come back inside the pasted URL
        return None if self.redirect_uri else state_param


class LocalServerDriver(CredentialCachingDriver):
    """
    Driver that opens the browser and receives the redirect on a local server.

    The server runs on a background thread; this driver blocks the calling
    thread until the redirect arrives or redirect_timeout elapses, so every
    state machine callback still runs on the caller's thread.
    """

    def __init__(
        self,
        port: Optional[int] = None,
        base_uri: Optional[str] = None,
        cache: Optional[CredentialCache] = None,
        remember_user: bool = True,
        open_browser: bool = True,
        redirect_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(cache, remember_user)
        config = get_oauth_config()
        self.port = port or config.port
        self.base_uri = base_uri or config.base_uri
        self.open_browser = open_browser
        self.redirect_timeout = redirect_timeout or config.redirect_timeout
        if port is None and base_uri is None:
            # Proxied or pre-registered redirect URIs only apply to the configured server
            self.redirect_uri = config.redirect_uri
            logger.debug(f"Redirect configuration: {config.get_environment_summary()}")
        else:
            self.redirect_uri = f"{self.base_uri}:{self.port}{CALLBACK_PATH}"
        self.server = CallbackServer(self.port, self.base_uri)

    def url(self) -> str:
        return self.redirect_uri

    def do_authorize(
        self, authorize_url: str, state_param: str, client: Any, done: RedirectCallback
    ) -> None:
        success, error_msg = self.server.start()
        if not success:
            done(
                {
                    "error": "server_error",
                    "error_description": f"OAuth callback server unavailable: {error_msg}",
                }
            )
            return

        logger.info(f"Waiting for the authorize redirect on {self.url()}")
        try:
            if not self.open_browser or not webbrowser.open(authorize_url):
                print(f"Open this URL in your browser to authorize:\n{authorize_url}")
            params = self.server.wait_for_redirect(self.redirect_timeout)
        finally:
            self.server.stop()

        if params is None:
            params = {
                "error": "access_denied",
                "error_description": "Timed out waiting for the authorize redirect",
            }
        done(params)
