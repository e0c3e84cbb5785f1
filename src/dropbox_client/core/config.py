"""
Shared configuration for the Dropbox client.

This module centralizes configuration values to avoid hardcoded values
scattered throughout the codebase. Option structs replace the loose option
dictionaries callers would otherwise pass around.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Dict

from dotenv import load_dotenv

from ..utils.constants import (
    DEFAULT_API_SERVER,
    DEFAULT_AUTH_SERVER,
    DEFAULT_CONTENT_SERVER,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    SIGN_HEADER,
    SIGN_QUERY,
)
from ..utils.errors import ValidationError

# Load environment variables
load_dotenv()

# Application credentials
DROPBOX_APP_KEY = os.getenv("DROPBOX_APP_KEY")
DROPBOX_APP_SECRET = os.getenv("DROPBOX_APP_SECRET")

# Transport configuration
DROPBOX_CLIENT_TIMEOUT = float(os.getenv("DROPBOX_CLIENT_TIMEOUT", str(DEFAULT_TIMEOUT)))

# Credentials directory; DROPBOX_CLIENT_CREDENTIALS_DIR overrides the base
DEFAULT_CONFIG_DIR = "~/.config/dropbox-client"


@dataclass(frozen=True)
class ServerOverrides:
    """Base URLs of the three servers the client talks to."""

    api_server: str = DEFAULT_API_SERVER
    auth_server: str = DEFAULT_AUTH_SERVER
    content_server: str = DEFAULT_CONTENT_SERVER

    def non_default(self) -> Dict[str, str]:
        """Return only the URLs that differ from the public defaults."""
        defaults = ServerOverrides()
        return {
            name: value
            for name, value in vars(self).items()
            if value != getattr(defaults, name)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Optional[str]]) -> "ServerOverrides":
        """Build overrides from a mapping, ignoring unknown and empty keys."""
        known = {name for name in vars(cls())}
        return cls(**{k: v for k, v in data.items() if k in known and v})


@dataclass
class ClientConfig:
    """
    Configuration of one client instance.

    Attributes:
        key: The application key (OAuth client_id). Required.
        secret: The application secret. None for public (PKCE-less token) clients.
        servers: Server URL overrides.
        signing: "header" puts the token in the Authorization header, "query"
            puts it in the query string.
        timeout: Transport timeout in seconds, handed to requests.
        user_agent: User-Agent header sent with every request.
    """

    key: str
    secret: Optional[str] = None
    servers: ServerOverrides = field(default_factory=ServerOverrides)
    signing: str = SIGN_HEADER
    timeout: Optional[float] = DROPBOX_CLIENT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not self.key:
            raise ValidationError("ClientConfig requires an application key")
        if self.signing not in (SIGN_HEADER, SIGN_QUERY):
            raise ValidationError(f"Unknown signing mode: {self.signing}")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Build a configuration from DROPBOX_APP_KEY / DROPBOX_APP_SECRET.

        Raises:
            ValidationError: If DROPBOX_APP_KEY is not set.
        """
        key = os.getenv("DROPBOX_APP_KEY", DROPBOX_APP_KEY or "")
        return cls(
            key=key,
            secret=os.getenv("DROPBOX_APP_SECRET", DROPBOX_APP_SECRET or "") or None,
        )


@dataclass(frozen=True)
class AuthOptions:
    """
    Options for Client.authenticate.

    Attributes:
        interactive: When False, only cached credentials are used and the
            authorize redirect is never started.
    """

    interactive: bool = True


@dataclass(frozen=True)
class RequestOptions:
    """
    Options for a single dispatched request.

    Attributes:
        http_cache: Allow intermediate HTTP caches to serve the response.
        timeout: Per-request timeout; falls back to ClientConfig.timeout.
    """

    http_cache: bool = False
    timeout: Optional[float] = None


def get_credentials_dir() -> str:
    """
    Get the credentials directory path, creating it if necessary.

    DROPBOX_CLIENT_CREDENTIALS_DIR is read on every call.

    Returns:
        Path to the credentials directory.
    """
    base_dir = os.path.expanduser(
        os.getenv("DROPBOX_CLIENT_CREDENTIALS_DIR", DEFAULT_CONFIG_DIR)
    )
    credentials_dir = os.path.join(base_dir, "credentials")
    if not os.path.exists(credentials_dir):
        os.makedirs(credentials_dir, exist_ok=True)
    return credentials_dir
