"""Dropbox Client - OAuth 2 client library for the Dropbox API.

This package authenticates a user through a pluggable OAuth driver and then
issues signed API calls on the user's behalf.
"""
from .client import DropboxClient
from .auth import AuthStep, Credentials
from .core import AuthOptions, ClientConfig, RequestOptions
from .utils.errors import AuthError, AuthErrorKind, ValidationError

__version__ = "0.1.0"
__all__ = [
    "DropboxClient",
    "AuthStep",
    "Credentials",
    "AuthOptions",
    "ClientConfig",
    "RequestOptions",
    "AuthError",
    "AuthErrorKind",
    "ValidationError",
]
