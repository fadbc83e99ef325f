"""
Communication Identity client

A Python client for the Azure Communication Services identity routes.
Requests are signed with the resource access key (HMAC-SHA256).

Example usage:
    from communication_identity import IdentityClient

    client = IdentityClient(
        "https://<resource>.communication.azure.com",
        "<base64 access key>",
        "<app registration id>",
    )
    token = client.token_for_teams_user("<user oid>", "<entra token>")
"""

from .client import IdentityClient
from .exceptions import (
    IdentityClientError,
    ConfigurationError,
    SigningError,
    TransportError,
    RequestCancelledError,
    ResponseDecodeError,
    RemoteServiceError,
    OpaqueRemoteError
)
from .models import AccessToken, IdentityTokenResult, CommunicationError
from .signer import RequestSigner, SignedHeaders
from .constants import (
    API_VERSION,
    HEADER_AUTHORIZATION,
    HEADER_MS_DATE,
    HEADER_MS_CONTENT_SHA256,
    DEFAULT_CONFIG
)

__version__ = "1.0.0"
__all__ = [
    "IdentityClient",
    "RequestSigner",
    "SignedHeaders",
    "AccessToken",
    "IdentityTokenResult",
    "CommunicationError",
    "IdentityClientError",
    "ConfigurationError",
    "SigningError",
    "TransportError",
    "RequestCancelledError",
    "ResponseDecodeError",
    "RemoteServiceError",
    "OpaqueRemoteError",
    "API_VERSION",
    "HEADER_AUTHORIZATION",
    "HEADER_MS_DATE",
    "HEADER_MS_CONTENT_SHA256",
    "DEFAULT_CONFIG"
]
