"""Centralized constants for the Dropbox client."""

# Default servers
DEFAULT_API_SERVER = "https://api.dropboxapi.com"
DEFAULT_CONTENT_SERVER = "https://content.dropboxapi.com"
DEFAULT_AUTH_SERVER = "https://www.dropbox.com"

# OAuth endpoints (relative to the servers above)
AUTHORIZE_PATH = "/oauth2/authorize"
TOKEN_PATH = "/oauth2/token"
REVOKE_PATH = "/2/auth/token/revoke"

# Response header carrying metadata for content endpoints
API_RESULT_HEADER = "Dropbox-API-Result"
API_ARG_HEADER = "Dropbox-API-Arg"

# Auth types understood by drivers
AUTH_TYPE_CODE = "code"
AUTH_TYPE_TOKEN = "token"

# Signing modes
SIGN_HEADER = "header"
SIGN_QUERY = "query"

# Query parameter appended in query signing mode to defeat HTTP caches
CACHE_BUSTER_PARAM = "_nocache"

# Default values
DEFAULT_TIMEOUT = 30.0
DEFAULT_SEARCH_LIMIT = 100
DEFAULT_REVISION_LIMIT = 10
DEFAULT_USER_AGENT = "dropbox-client/0.1.0"
