"""Custom exceptions for the Dropbox client.

This module provides structured error handling with specific exception types
for different failure scenarios. All exceptions inherit from DropboxError.
Caller misuse raises ValidationError synchronously; everything that happens
on the wire is reported through an AuthError subclass handed to a callback.
"""
import json
from enum import Enum
from typing import Optional, Any

import requests


class DropboxError(Exception):
    """Base exception for all dropbox-client errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(DropboxError):
    """Raised when the library is used incorrectly (missing driver, bad credentials)."""
    pass


class AuthErrorKind(str, Enum):
    """Classification of a failed request or authorization attempt."""

    INVALID_TOKEN = "InvalidToken"
    INVALID_PARAM = "InvalidParam"
    INVALID_STATE = "InvalidState"
    USER_CANCELED = "UserCanceled"
    NETWORK = "Network"
    OTHER = "Other"


class AuthError(DropboxError):
    """A failed API call or authorization step.

    Attributes:
        kind: The AuthErrorKind classification.
        http_status: HTTP status code, if a response was received.
        raw_response: Decoded response body (dict or text), if any.
        error_summary: Short machine-readable error tag from the server.
        method: HTTP method of the failed request.
        url: URL of the failed request.
    """

    default_kind = AuthErrorKind.OTHER

    def __init__(
        self,
        message: str,
        kind: Optional[AuthErrorKind] = None,
        http_status: Optional[int] = None,
        raw_response: Any = None,
        error_summary: Optional[str] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        self.kind = kind or self.default_kind
        self.http_status = http_status
        self.raw_response = raw_response
        self.error_summary = error_summary
        self.method = method
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        if self.http_status:
            return f"{self.kind.value} (HTTP {self.http_status}): {self.message}"
        return f"{self.kind.value}: {self.message}"


class NetworkError(AuthError):
    """Raised when the transport fails before an HTTP response is received."""

    default_kind = AuthErrorKind.NETWORK


class AuthorizationError(AuthError):
    """The API rejected the credentials or the redirect parameters."""
    pass


class UserCanceledError(AuthError):
    """The authorize redirect came back with an access_denied error."""

    default_kind = AuthErrorKind.USER_CANCELED


class ApiError(AuthError):
    """Any other non-2xx answer (missing path, conflicts, quota, rate limits)."""

    default_kind = AuthErrorKind.OTHER


# Error tags that mean the bearer token is no longer usable
INVALID_TOKEN_TAGS = {
    "invalid_access_token",
    "expired_access_token",
    "invalid_select_user",
    "user_suspended",
}

# OAuth2 token endpoint error codes (RFC 6749 section 5.2)
INVALID_PARAM_CODES = {
    "invalid_request",
    "invalid_client",
    "invalid_grant",
    "unauthorized_client",
    "unsupported_grant_type",
    "invalid_scope",
    "unsupported_response_type",
}


def _decode_body(response: requests.Response) -> Any:
    """Return the response body as JSON if possible, otherwise as text."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_tag(body: Any) -> Optional[str]:
    """Extract the error tag from an API or OAuth error body."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get(".tag")
    if isinstance(error, str):
        return error
    return None


def classify_response(response: requests.Response) -> AuthError:
    """Convert a non-2xx requests.Response to a specific exception.

    Args:
        response: The failed response.

    Returns:
        An appropriate AuthError subclass.
    """
    status = response.status_code
    body = _decode_body(response)
    tag = _error_tag(body)
    summary = body.get("error_summary") if isinstance(body, dict) else None
    summary = summary or tag
    request = response.request
    context = {
        "http_status": status,
        "raw_response": body,
        "error_summary": summary,
        "method": request.method if request is not None else None,
        "url": request.url if request is not None else None,
    }

    if status == 401 or tag in INVALID_TOKEN_TAGS:
        return AuthorizationError(
            "The access token is invalid or has been revoked.",
            kind=AuthErrorKind.INVALID_TOKEN,
            **context,
        )
    elif status == 400 or tag in INVALID_PARAM_CODES:
        description = body.get("error_description") if isinstance(body, dict) else None
        return AuthorizationError(
            description or f"Bad request parameters: {summary or body}",
            kind=AuthErrorKind.INVALID_PARAM,
            **context,
        )
    elif status == 429:
        return ApiError("API rate limit exceeded. Please wait and try again.", **context)
    elif status == 507:
        return ApiError("The user's storage quota is exceeded.", **context)
    elif status == 409:
        return ApiError(f"Endpoint-specific error: {summary}", **context)
    else:
        return ApiError(f"API error (HTTP {status}): {summary or body}", **context)


def unexpected_response(response: requests.Response, error: Exception) -> AuthError:
    """Wrap a 2xx response whose body could not be decoded or parsed."""
    request = response.request
    return ApiError(
        f"Unexpected response body: {error}",
        http_status=response.status_code,
        raw_response=response.text,
        method=request.method if request is not None else None,
        url=request.url if request is not None else None,
    )


def error_from_redirect(params: dict[str, Any]) -> AuthError:
    """Build the error carried by an authorize redirect (?error=...).

    access_denied means the user clicked "Cancel"; anything else is a
    malformed authorize request.
    """
    code = params.get("error")
    description = params.get("error_description") or code
    if code == "access_denied":
        return UserCanceledError(
            f"The user did not authorize the application: {description}",
            raw_response=dict(params),
            error_summary=code,
        )
    return AuthorizationError(
        f"Authorization failed: {description}",
        kind=AuthErrorKind.INVALID_PARAM,
        raw_response=dict(params),
        error_summary=code,
    )


def format_error(action: str, error: Exception) -> str:
    """Format an error message consistently.

    Args:
        action: The action that failed (e.g., "Download", "Sign in").
        error: The exception that occurred.

    Returns:
        Formatted error string.
    """
    if isinstance(error, AuthError):
        return f"{action} failed: {error}"
    if isinstance(error, DropboxError):
        return f"{action} failed: {error.message}"
    return f"{action} failed: {str(error)}"


def dump_error(error: AuthError) -> str:
    """Serialize an AuthError to JSON for logs and cached diagnostics."""
    return json.dumps(
        {
            "kind": error.kind.value,
            "status": error.http_status,
            "summary": error.error_summary,
            "message": error.message,
        }
    )
