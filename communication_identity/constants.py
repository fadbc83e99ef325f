"""
Constants for the Communication Identity client.
Values are fixed by the service's 2025-06-30 REST contract.
"""

# HTTP Headers
HEADER_AUTHORIZATION = "Authorization"
HEADER_MS_DATE = "x-ms-date"
HEADER_MS_CONTENT_SHA256 = "x-ms-content-sha256"
HEADER_CONTENT_TYPE = "Content-Type"

CONTENT_TYPE_JSON = "application/json"

# Signing scheme
AUTH_SCHEME = "HMAC-SHA256"
SIGNED_HEADERS = "x-ms-date;host;x-ms-content-sha256"

# API version, sent as the api-version query parameter on every call
API_VERSION = "2025-06-30"
API_VERSION_PARAM = "api-version"

# Endpoint sub-paths
TOKEN_FOR_TEAMS_USER_PATH = "/teamsUser/:exchangeAccessToken"
CREATE_IDENTITY_PATH = "/identities"

# Default configuration values
DEFAULT_CONFIG = {
    'timeout': 30,              # HTTP timeout in seconds
}
