"""
Redirect configuration for the Dropbox client.

Settings of the loopback redirect target used by the local-server driver,
read from the environment once and shared through get_oauth_config().
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

CALLBACK_PATH = "/oauth2callback"


@dataclass(frozen=True)
class OAuthConfig:
    """
    Where the authorize redirect comes back to.

    Attributes:
        base_uri: Scheme and host of the local callback server.
        port: Port of the local callback server.
        external_url: Public URL in front of the server (reverse proxies).
        explicit_redirect_uri: Redirect URI registered with the app, if it
            differs from the one derived from the fields above.
        redirect_timeout: Seconds to wait for the browser to come back.
    """

    base_uri: str = "http://localhost"
    port: int = 9877
    external_url: Optional[str] = None
    explicit_redirect_uri: Optional[str] = None
    redirect_timeout: float = 300.0

    @classmethod
    def from_env(cls) -> "OAuthConfig":
        return cls(
            base_uri=os.getenv("DROPBOX_CLIENT_BASE_URI", "http://localhost"),
            port=int(os.getenv("DROPBOX_CLIENT_PORT", "9877")),
            external_url=os.getenv("DROPBOX_CLIENT_EXTERNAL_URL") or None,
            explicit_redirect_uri=os.getenv("DROPBOX_CLIENT_REDIRECT_URI") or None,
            redirect_timeout=float(os.getenv("DROPBOX_CLIENT_REDIRECT_TIMEOUT", "300")),
        )

    @property
    def local_url(self) -> str:
        return f"{self.base_uri}:{self.port}"

    @property
    def redirect_uri(self) -> str:
        """The redirect URI to send on the authorize page and token exchange."""
        if self.explicit_redirect_uri:
            return self.explicit_redirect_uri
        return f"{self.external_url or self.local_url}{CALLBACK_PATH}"

    def get_environment_summary(self) -> Dict[str, Any]:
        """Summarize the redirect setup for the local-server driver's log."""
        return {
            "local_url": self.local_url,
            "external_url": self.external_url,
            "redirect_uri": self.redirect_uri,
            "redirect_timeout": self.redirect_timeout,
        }


# Global configuration instance
_oauth_config: Optional[OAuthConfig] = None


def get_oauth_config() -> OAuthConfig:
    """Get the shared OAuthConfig, reading the environment on first use."""
    global _oauth_config
    if _oauth_config is None:
        _oauth_config = OAuthConfig.from_env()
    return _oauth_config


def reload_oauth_config() -> OAuthConfig:
    """Re-read the environment, e.g. after a .env file changed."""
    global _oauth_config
    _oauth_config = OAuthConfig.from_env()
    return _oauth_config
