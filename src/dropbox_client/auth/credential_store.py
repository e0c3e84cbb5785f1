"""
Credential Store for the Dropbox client.

This module owns the OAuth state of one client: the application key and
secret, the state parameter used during the authorize redirect, the
authorization code, the access token and the user id. It signs outgoing
requests and derives the current AuthStep from those fields.
"""

import base64
import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

import requests
from oauthlib.common import generate_token
from oauthlib.oauth2 import MobileApplicationClient, WebApplicationClient
from requests.auth import HTTPBasicAuth

from ..core.config import ServerOverrides
from ..utils.constants import (
    AUTH_TYPE_TOKEN,
    AUTHORIZE_PATH,
    CACHE_BUSTER_PARAM,
    SIGN_HEADER,
    SIGN_QUERY,
)
from ..utils.errors import (
    AuthError,
    AuthErrorKind,
    AuthorizationError,
    ValidationError,
    error_from_redirect,
)
from .steps import AuthStep

logger = logging.getLogger(__name__)

STATE_PARAM_LENGTH = 32


@dataclass(frozen=True)
class Credentials:
    """Immutable snapshot of a client's OAuth identity."""

    key: str
    secret: Optional[str] = None
    token: Optional[str] = None
    uid: Optional[str] = None
    state_param: Optional[str] = None
    servers: Optional[ServerOverrides] = None

    def to_dict(self) -> Dict[str, str]:
        """Flatten to the persisted shape; unset fields are omitted."""
        data = {"key": self.key}
        for name in ("secret", "token", "uid", "state_param"):
            value = getattr(self, name)
            if value:
                data[name] = value
        if self.servers is not None:
            data.update(self.servers.non_default())
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Credentials":
        """Inverse of to_dict. Unknown keys are ignored."""
        servers = ServerOverrides.from_dict(dict(data))
        return cls(
            key=data.get("key"),
            secret=data.get("secret") or None,
            token=data.get("token") or None,
            uid=data.get("uid") or None,
            state_param=data.get("state_param") or None,
            servers=servers if servers.non_default() else None,
        )


class CredentialStore:
    """OAuth key/secret/token state for exactly one client instance."""

    def __init__(
        self,
        key: str,
        secret: Optional[str] = None,
        servers: Optional[ServerOverrides] = None,
        signing: str = SIGN_HEADER,
    ) -> None:
        if not key:
            raise ValidationError("An application key is required")
        self.key = key
        self.secret = secret
        self.servers = servers or ServerOverrides()
        self.signing = signing

        self.token: Optional[str] = None
        self.uid: Optional[str] = None
        self._state_param: Optional[str] = None
        self._state_loaded = False
        self._auth_code: Optional[str] = None
        self._error: Optional[AuthError] = None
        self._credentials: Optional[Credentials] = None

    # Snapshot management

    def credentials(self) -> Credentials:
        """Return the cached Credentials snapshot, rebuilding it if stale."""
        if self._credentials is None:
            non_default = self.servers.non_default()
            self._credentials = Credentials(
                key=self.key,
                secret=self.secret,
                token=self.token,
                uid=self.uid,
                state_param=self._state_param,
                servers=self.servers if non_default else None,
            )
        return self._credentials

    def invalidate(self) -> None:
        """Drop the cached snapshot."""
        self._credentials = None

    def set_credentials(
        self, credentials: Union[Credentials, Mapping[str, Any]]
    ) -> None:
        """
        Replace every OAuth field at once.

        Args:
            credentials: A Credentials snapshot or its to_dict() mapping.

        Raises:
            ValidationError: If the key is missing or belongs to another app.
        """
        if not isinstance(credentials, Credentials):
            credentials = Credentials.from_dict(credentials)
        if not credentials.key:
            raise ValidationError("Credentials must include the application key")
        if credentials.key != self.key:
            raise ValidationError(
                "Credentials belong to a different application key"
            )
        if credentials == self.credentials():
            # Restoring the current snapshot keeps the step unchanged
            self.invalidate()
            return

        self.secret = credentials.secret
        self.token = credentials.token
        self.uid = credentials.uid
        self._state_param = credentials.state_param
        self._state_loaded = credentials.state_param is not None
        self._auth_code = None
        self._error = None
        self.servers = credentials.servers or ServerOverrides()
        self.invalidate()
        logger.debug(f"Credentials replaced, step is now {self.step().name}")

    def reset(self) -> None:
        """Forget the user's authorization; keep the application key/secret."""
        self.token = None
        self.uid = None
        self._state_param = None
        self._state_loaded = False
        self._auth_code = None
        self._error = None
        self.invalidate()

    # Step derivation

    def step(self) -> AuthStep:
        """Compute the AuthStep implied by the current fields."""
        if self.token:
            return AuthStep.DONE
        if self._auth_code:
            return AuthStep.AUTHORIZED
        if self._state_param:
            return AuthStep.PARAM_LOADED if self._state_loaded else AuthStep.PARAM_SET
        if self._error is not None:
            return AuthStep.ERROR
        return AuthStep.RESET

    def error(self) -> Optional[AuthError]:
        """The error captured from the last redirect, if any."""
        return self._error

    # State parameter

    def set_auth_state_param(self, value: str) -> None:
        """Store a state parameter generated (or re-confirmed) this session."""
        self._state_param = value
        self._state_loaded = False
        self._auth_code = None
        self.token = None
        self._error = None
        self.invalidate()

    def auth_state_param(self) -> Optional[str]:
        return self._state_param

    @staticmethod
    def random_auth_state_param() -> str:
        """A cryptographically random state parameter."""
        return generate_token(STATE_PARAM_LENGTH)

    def app_hash(self) -> str:
        """A stable, filesystem-safe identifier derived from the app key."""
        digest = hmac.new(
            f"oauth-{self.key}".encode("utf-8"),
            self.key.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        # Remove padding for cleaner file names
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    # OAuth protocol helpers

    def authorize_url(
        self,
        redirect_uri: Optional[str],
        auth_type: str,
        scopes: Optional[list] = None,
        **extra: str,
    ) -> str:
        """Build the URL of the authorize page for the current state param."""
        endpoint = f"{self.servers.auth_server}{AUTHORIZE_PATH}"
        oauth = (
            MobileApplicationClient(self.key)
            if auth_type == AUTH_TYPE_TOKEN
            else WebApplicationClient(self.key)
        )
        return oauth.prepare_request_uri(
            endpoint,
            redirect_uri=redirect_uri,
            scope=scopes or None,
            state=self._state_param,
            **extra,
        )

    def access_token_params(self, redirect_uri: Optional[str]) -> str:
        """Form body exchanging the held authorization code for a token."""
        if not self._auth_code:
            raise ValidationError("No authorization code to exchange")
        oauth = WebApplicationClient(self.key)
        return oauth.prepare_request_body(
            code=self._auth_code,
            redirect_uri=redirect_uri,
            include_client_id=False,
        )

    def process_redirect_params(self, params: Mapping[str, Any]) -> bool:
        """
        Consume the parameters of an authorize redirect or token response.

        Args:
            params: Query/fragment parameters, or the decoded token JSON.

        While a state parameter is held, a code or token is only accepted
        together with that same state.

        Returns:
            True if the parameters carried an OAuth result, False otherwise.
        """
        returned_state = params.get("state")
        if params.get("error"):
            self._capture_error(error_from_redirect(params))
            return True

        if self._state_param is not None:
            carries_result = bool(params.get("code") or params.get("token_type"))
            if returned_state is None and carries_result:
                self._reject_state(params, "The redirect carried no state parameter")
                return True
            if returned_state is not None and not hmac.compare_digest(
                str(returned_state), self._state_param
            ):
                self._reject_state(
                    params, "The redirect state parameter does not match the one sent"
                )
                return True

        if params.get("code"):
            self._auth_code = params["code"]
            self._state_param = None
            self._state_loaded = False
            self.token = None
            self._set_uid(params)
            self.invalidate()
            return True

        token_type = params.get("token_type")
        if token_type:
            if str(token_type).lower() != "bearer":
                self._capture_error(
                    AuthorizationError(
                        f"Unsupported token type: {token_type}",
                        kind=AuthErrorKind.INVALID_PARAM,
                        raw_response=dict(params),
                    )
                )
                return True
            self.token = params.get("access_token")
            self._auth_code = None
            self._state_param = None
            self._state_loaded = False
            self._set_uid(params)
            self.invalidate()
            return True

        return False

    def _set_uid(self, params: Mapping[str, Any]) -> None:
        uid = params.get("uid")
        if uid:
            self.uid = str(uid)

    def _reject_state(self, params: Mapping[str, Any], message: str) -> None:
        logger.warning(message)
        self._capture_error(
            AuthorizationError(
                message, kind=AuthErrorKind.INVALID_STATE, raw_response=dict(params)
            )
        )

    def _capture_error(self, error: AuthError) -> None:
        self._error = error
        self._state_param = None
        self._state_loaded = False
        self._auth_code = None
        self.token = None
        self.invalidate()

    # Signing

    def sign(
        self, request: requests.Request, allow_http_cache: bool = False
    ) -> requests.Request:
        """
        Return a copy of request carrying this client's authorization.

        With a token, the bearer token is attached. Without one the app key
        and secret are used (HTTP Basic), or just the client_id for public
        clients. Unless allow_http_cache is set, the request is marked so
        intermediate caches never answer it.

        Cookies and hooks are carried over. The request's own auth is kept
        unless the store puts its own Authorization header in its place.
        """
        signed = requests.Request(
            method=request.method,
            url=request.url,
            headers=dict(request.headers or {}),
            params=dict(request.params or {}),
            data=request.data,
            json=request.json,
            files=request.files,
            auth=request.auth,
            cookies=request.cookies,
            hooks=request.hooks,
        )

        if self.signing == SIGN_QUERY:
            if self.token:
                signed.params["access_token"] = self.token
            else:
                signed.params["client_id"] = self.key
                if self.secret:
                    signed.params["client_secret"] = self.secret
            if not allow_http_cache:
                signed.params[CACHE_BUSTER_PARAM] = uuid.uuid4().hex
        else:
            if self.token:
                signed.headers["Authorization"] = f"Bearer {self.token}"
                # prepare() would let an auth handler overwrite the header
                signed.auth = None
            elif self.secret:
                signed.auth = HTTPBasicAuth(self.key, self.secret)
            else:
                signed.params["client_id"] = self.key
            if not allow_http_cache:
                signed.headers["Cache-Control"] = "no-cache"
                signed.headers["Pragma"] = "no-cache"

        return signed
